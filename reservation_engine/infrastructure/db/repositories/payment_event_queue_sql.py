from datetime import datetime, timedelta
from typing import Any, Mapping, Sequence

from sqlalchemy import and_, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.application.interfaces.payment_event_queue import PaymentEventQueue
from reservation_engine.domain.entities.payment_event import (
    PaymentEvent,
    QueuedEventStatus,
    QueuedPaymentEvent,
)
from reservation_engine.infrastructure.db.tables import payment_events
from reservation_engine.infrastructure.db.timeutil import from_db, to_db


def _to_entity(row: Mapping[str, Any]) -> QueuedPaymentEvent:
    return QueuedPaymentEvent(
        id=row["id"],
        event=PaymentEvent.from_payload(row["payload"]),
        status=QueuedEventStatus(row["status"]),
        attempts=row["attempts"] or 0,
        next_attempt_at=from_db(row["next_attempt_at"]),
        locked_by=row["locked_by"],
        lock_expires_at=from_db(row["lock_expires_at"]),
        error_code=row["error_code"],
        error_message=row["error_message"],
        created_at=from_db(row["created_at"]),
    )


def _claimable(now: datetime):
    now = to_db(now)
    return or_(
        and_(
            payment_events.c.status.in_((QueuedEventStatus.NEW.value, QueuedEventStatus.RETRY.value)),
            or_(
                payment_events.c.next_attempt_at.is_(None),
                payment_events.c.next_attempt_at <= now,
            ),
        ),
        # A worker died holding the lock
        and_(
            payment_events.c.status == QueuedEventStatus.IN_PROGRESS.value,
            payment_events.c.lock_expires_at <= now,
        ),
    )


class PaymentEventQueueSQL(PaymentEventQueue):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _find_by_event_id(self, event_id: str) -> QueuedPaymentEvent | None:
        stmt = select(payment_events).where(payment_events.c.gateway_event_id == event_id)
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return _to_entity(row) if row else None

    async def enqueue(self, event: PaymentEvent, now: datetime) -> tuple[QueuedPaymentEvent, bool]:
        existing = await self._find_by_event_id(event.event_id)
        if existing is not None:
            return existing, False
        stmt = insert(payment_events).values(
            gateway_event_id=event.event_id,
            kind=event.kind.value,
            payment_ref=event.payment_ref,
            payload=event.to_payload(),
            status=QueuedEventStatus.NEW.value,
            attempts=0,
            next_attempt_at=to_db(now),
            created_at=to_db(now),
            updated_at=to_db(now),
        )
        result = await self._session.execute(stmt)
        queued = QueuedPaymentEvent(
            id=result.inserted_primary_key[0],
            event=event,
            next_attempt_at=now,
            created_at=now,
        )
        return queued, True

    async def get(self, queued_id: int) -> QueuedPaymentEvent | None:
        stmt = select(payment_events).where(payment_events.c.id == queued_id)
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return _to_entity(row) if row else None

    async def claim(
        self,
        queued_id: int,
        locked_by: str,
        now: datetime,
        lock_ttl_seconds: int = 30,
    ) -> QueuedPaymentEvent | None:
        # UPDATE ... RETURNING is not available on MySQL; check rowcount and re-read
        stmt = (
            update(payment_events)
            .where(payment_events.c.id == queued_id, _claimable(now))
            .values(
                status=QueuedEventStatus.IN_PROGRESS.value,
                locked_by=locked_by,
                locked_at=to_db(now),
                lock_expires_at=to_db(now + timedelta(seconds=lock_ttl_seconds)),
                updated_at=to_db(now),
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            return None
        return await self.get(queued_id)

    async def claim_ready(
        self,
        limit: int,
        locked_by: str,
        now: datetime,
        lock_ttl_seconds: int = 30,
    ) -> Sequence[QueuedPaymentEvent]:
        stmt = (
            select(payment_events.c.id)
            .where(_claimable(now))
            .order_by(payment_events.c.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        result = await self._session.execute(stmt)
        claimed = []
        for queued_id in result.scalars().all():
            queued = await self.claim(queued_id, locked_by, now, lock_ttl_seconds)
            if queued is not None:
                claimed.append(queued)
        return claimed

    async def mark_done(self, queued_id: int, now: datetime) -> None:
        stmt = (
            update(payment_events)
            .where(payment_events.c.id == queued_id)
            .values(
                status=QueuedEventStatus.DONE.value,
                locked_by=None,
                lock_expires_at=None,
                updated_at=to_db(now),
            )
        )
        await self._session.execute(stmt)

    async def mark_retry(
        self,
        queued_id: int,
        attempts: int,
        next_attempt_at: datetime,
        error_code: str | None,
        error_message: str | None,
    ) -> None:
        stmt = (
            update(payment_events)
            .where(payment_events.c.id == queued_id)
            .values(
                status=QueuedEventStatus.RETRY.value,
                attempts=attempts,
                next_attempt_at=to_db(next_attempt_at),
                error_code=error_code,
                error_message=error_message,
                locked_by=None,
                lock_expires_at=None,
            )
        )
        await self._session.execute(stmt)

    async def move_to_dead_letter(
        self,
        queued_id: int,
        attempts: int,
        error_code: str | None,
        error_message: str | None,
    ) -> None:
        stmt = (
            update(payment_events)
            .where(payment_events.c.id == queued_id)
            .values(
                status=QueuedEventStatus.DEAD_LETTER.value,
                attempts=attempts,
                error_code=error_code,
                error_message=error_message,
                locked_by=None,
                lock_expires_at=None,
            )
        )
        await self._session.execute(stmt)

    async def list_dead_letters(self) -> Sequence[QueuedPaymentEvent]:
        stmt = (
            select(payment_events)
            .where(payment_events.c.status == QueuedEventStatus.DEAD_LETTER.value)
            .order_by(payment_events.c.id)
        )
        result = await self._session.execute(stmt)
        return [_to_entity(row) for row in result.mappings().all()]
