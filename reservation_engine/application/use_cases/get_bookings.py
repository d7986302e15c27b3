from reservation_engine.api.schemas.bookings import BookingResponse, PaymentAttemptOut, ReservationOut
from reservation_engine.application.interfaces.payment_attempt_repo import PaymentAttemptRepo
from reservation_engine.application.interfaces.reservation_repo import ReservationRepo
from reservation_engine.domain.errors import ReservationNotFoundError


class GetBookingsUseCase:
    def __init__(self, reservation_repo: ReservationRepo, payment_repo: PaymentAttemptRepo) -> None:
        self._reservation_repo = reservation_repo
        self._payment_repo = payment_repo

    async def get(self, reservation_id: str) -> BookingResponse:
        reservation = await self._reservation_repo.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        attempt = await self._payment_repo.get_by_reservation(reservation_id)
        return BookingResponse(
            reservation=ReservationOut.from_entity(reservation),
            payment=PaymentAttemptOut.from_entity(attempt) if attempt else None,
        )

    async def list_for_requester(self, requester_id: str) -> list[ReservationOut]:
        reservations = await self._reservation_repo.list_for_requester(requester_id)
        return [ReservationOut.from_entity(r) for r in reservations]
