from datetime import datetime
from typing import Sequence

from reservation_engine.domain.entities.reservation import Reservation


class ReservationRepo:
    """Reservation Ledger: durable store of reservation records."""

    async def create(self, reservation: Reservation) -> Reservation:
        raise NotImplementedError

    async def get(self, reservation_id: str) -> Reservation | None:
        raise NotImplementedError

    async def list_active_for_resource(self, resource_id: str) -> Sequence[Reservation]:
        """Reservations in a blocking status (pending or confirmed)."""
        raise NotImplementedError

    async def list_for_requester(self, requester_id: str) -> Sequence[Reservation]:
        """Newest first."""
        raise NotImplementedError

    async def mark_confirmed(self, reservation_id: str) -> bool:
        """Pending -> confirmed. Returns False when the reservation was not pending."""
        raise NotImplementedError

    async def cancel(self, reservation_id: str, cancelled_at: datetime, reason: str) -> bool:
        """Blocking -> cancelled. Returns False when already cancelled."""
        raise NotImplementedError

    async def list_expired_pending(self, now: datetime, limit: int = 100) -> Sequence[Reservation]:
        raise NotImplementedError
