from datetime import datetime
from typing import Any, Mapping, Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.application.interfaces.reservation_repo import ReservationRepo
from reservation_engine.domain.entities.reservation import (
    BLOCKING_STATUSES,
    Reservation,
    ReservationStatus,
)
from reservation_engine.infrastructure.db.tables import reservations
from reservation_engine.infrastructure.db.timeutil import from_db, to_db

BLOCKING_VALUES = [s.value for s in BLOCKING_STATUSES]


def _to_entity(row: Mapping[str, Any]) -> Reservation:
    window_start = from_db(row["window_start"])
    return Reservation(
        id=row["id"],
        resource_id=row["resource_id"],
        requester_id=row["requester_id"],
        window_start=window_start,
        duration=from_db(row["window_end"]) - window_start,
        status=ReservationStatus(row["status"]),
        created_at=from_db(row["created_at"]),
        cancelled_at=from_db(row["cancelled_at"]),
        cancellation_reason=row["cancellation_reason"],
        expires_at=from_db(row["expires_at"]),
        request_id=row["request_id"],
    )


class ReservationRepoSQL(ReservationRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, reservation: Reservation) -> Reservation:
        stmt = insert(reservations).values(
            id=reservation.id,
            resource_id=reservation.resource_id,
            requester_id=reservation.requester_id,
            window_start=to_db(reservation.window_start),
            window_end=to_db(reservation.window_end),
            status=reservation.status.value,
            created_at=to_db(reservation.created_at),
            expires_at=to_db(reservation.expires_at),
            cancelled_at=to_db(reservation.cancelled_at),
            cancellation_reason=reservation.cancellation_reason,
            request_id=reservation.request_id,
        )
        await self._session.execute(stmt)
        return reservation

    async def get(self, reservation_id: str) -> Reservation | None:
        stmt = select(reservations).where(reservations.c.id == reservation_id)
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return _to_entity(row) if row else None

    async def list_active_for_resource(self, resource_id: str) -> Sequence[Reservation]:
        stmt = select(reservations).where(
            reservations.c.resource_id == resource_id,
            reservations.c.status.in_(BLOCKING_VALUES),
        )
        result = await self._session.execute(stmt)
        return [_to_entity(row) for row in result.mappings().all()]

    async def list_for_requester(self, requester_id: str) -> Sequence[Reservation]:
        stmt = (
            select(reservations)
            .where(reservations.c.requester_id == requester_id)
            .order_by(reservations.c.created_at.desc(), reservations.c.id.desc())
        )
        result = await self._session.execute(stmt)
        return [_to_entity(row) for row in result.mappings().all()]

    async def mark_confirmed(self, reservation_id: str) -> bool:
        stmt = (
            update(reservations)
            .where(
                reservations.c.id == reservation_id,
                reservations.c.status == ReservationStatus.PENDING.value,
            )
            .values(status=ReservationStatus.CONFIRMED.value, expires_at=None)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def cancel(self, reservation_id: str, cancelled_at: datetime, reason: str) -> bool:
        stmt = (
            update(reservations)
            .where(
                reservations.c.id == reservation_id,
                reservations.c.status.in_(BLOCKING_VALUES),
            )
            .values(
                status=ReservationStatus.CANCELLED.value,
                cancelled_at=to_db(cancelled_at),
                cancellation_reason=reason,
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def list_expired_pending(self, now: datetime, limit: int = 100) -> Sequence[Reservation]:
        stmt = (
            select(reservations)
            .where(
                reservations.c.status == ReservationStatus.PENDING.value,
                reservations.c.expires_at.is_not(None),
                reservations.c.expires_at <= to_db(now),
            )
            .order_by(reservations.c.expires_at)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [_to_entity(row) for row in result.mappings().all()]
