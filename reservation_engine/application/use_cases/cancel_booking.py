import logging

from reservation_engine.api.schemas.bookings import ReservationOut
from reservation_engine.application.interfaces.clock import Clock
from reservation_engine.application.interfaces.reservation_repo import ReservationRepo
from reservation_engine.application.interfaces.transaction_manager import TransactionManager
from reservation_engine.domain.constants import CANCELLATION_REASON_REQUESTER
from reservation_engine.domain.entities.reservation import BLOCKING_STATUSES
from reservation_engine.domain.errors import (
    InvalidReservationStatusError,
    NotReservationOwnerError,
    ReservationNotFoundError,
    ReservationWindowEndedError,
)

logger = logging.getLogger(__name__)


class CancelBookingUseCase:
    """Requester-initiated cancellation; frees the window for other bookings."""

    def __init__(
        self,
        reservation_repo: ReservationRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._reservation_repo = reservation_repo
        self._transaction_manager = transaction_manager
        self._clock = clock

    async def execute(self, reservation_id: str, requester_id: str) -> ReservationOut:
        now = self._clock.now()
        async with self._transaction_manager.start():
            reservation = await self._reservation_repo.get(reservation_id)
            if reservation is None:
                raise ReservationNotFoundError(reservation_id)
            if reservation.requester_id != requester_id:
                raise NotReservationOwnerError(reservation_id, requester_id)
            if reservation.window_end <= now:
                raise ReservationWindowEndedError(reservation_id)

            cancelled = await self._reservation_repo.cancel(
                reservation_id, now, CANCELLATION_REASON_REQUESTER
            )
            if not cancelled:
                raise InvalidReservationStatusError(
                    current_status=reservation.status.value,
                    expected_status=[s.value for s in BLOCKING_STATUSES],
                    operation="cancel",
                )
            reservation.cancel(now, CANCELLATION_REASON_REQUESTER)

        logger.info(
            "Reservation cancelled",
            extra={"reservation_id": reservation_id, "requester_id": requester_id},
        )
        return ReservationOut.from_entity(reservation)
