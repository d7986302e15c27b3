"""In-memory reservation ledger for tests and local runs."""

from dataclasses import replace
from datetime import datetime
from typing import Sequence

from reservation_engine.application.interfaces.reservation_repo import ReservationRepo
from reservation_engine.domain.entities.reservation import Reservation, ReservationStatus


class InMemoryReservationRepo(ReservationRepo):
    """Stores copies so callers cannot mutate the ledger behind its back."""

    def __init__(self) -> None:
        self.reservations: dict[str, Reservation] = {}

    async def create(self, reservation: Reservation) -> Reservation:
        if reservation.id in self.reservations:
            raise ValueError(f"Reservation already exists: {reservation.id}")
        self.reservations[reservation.id] = replace(reservation)
        return replace(reservation)

    async def get(self, reservation_id: str) -> Reservation | None:
        reservation = self.reservations.get(reservation_id)
        return replace(reservation) if reservation else None

    async def list_active_for_resource(self, resource_id: str) -> Sequence[Reservation]:
        return [
            replace(r)
            for r in self.reservations.values()
            if r.resource_id == resource_id and r.is_blocking
        ]

    async def list_for_requester(self, requester_id: str) -> Sequence[Reservation]:
        found = [replace(r) for r in self.reservations.values() if r.requester_id == requester_id]
        return sorted(found, key=lambda r: r.created_at or r.window_start, reverse=True)

    async def mark_confirmed(self, reservation_id: str) -> bool:
        reservation = self.reservations.get(reservation_id)
        if reservation is None or reservation.status != ReservationStatus.PENDING:
            return False
        reservation.confirm()
        return True

    async def cancel(self, reservation_id: str, cancelled_at: datetime, reason: str) -> bool:
        reservation = self.reservations.get(reservation_id)
        if reservation is None or not reservation.is_blocking:
            return False
        reservation.cancel(cancelled_at, reason)
        return True

    async def list_expired_pending(self, now: datetime, limit: int = 100) -> Sequence[Reservation]:
        expired = [replace(r) for r in self.reservations.values() if r.is_expired(now)]
        expired.sort(key=lambda r: r.expires_at)
        return expired[:limit]
