import logging

from reservation_engine.application.interfaces.clock import Clock
from reservation_engine.application.interfaces.reservation_repo import ReservationRepo
from reservation_engine.application.interfaces.transaction_manager import TransactionManager
from reservation_engine.domain.constants import CANCELLATION_REASON_PAYMENT_EXPIRED

logger = logging.getLogger(__name__)


class ExpirePendingReservationsUseCase:
    """Cancels reservations whose payment never confirmed before the deadline."""

    def __init__(
        self,
        reservation_repo: ReservationRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._reservation_repo = reservation_repo
        self._transaction_manager = transaction_manager
        self._clock = clock

    async def execute(self, limit: int = 100) -> list[str]:
        now = self._clock.now()
        async with self._transaction_manager.start():
            expired = await self._reservation_repo.list_expired_pending(now, limit=limit)
            released = []
            for reservation in expired:
                if await self._reservation_repo.cancel(
                    reservation.id, now, CANCELLATION_REASON_PAYMENT_EXPIRED
                ):
                    released.append(reservation.id)

        if released:
            logger.info(
                "Expired pending reservations released",
                extra={"count": len(released), "reservation_ids": released},
            )
        return released
