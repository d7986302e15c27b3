from dataclasses import replace
from datetime import datetime, timedelta
from typing import Sequence

from reservation_engine.application.interfaces.payment_event_queue import PaymentEventQueue
from reservation_engine.domain.entities.payment_event import (
    PaymentEvent,
    QueuedEventStatus,
    QueuedPaymentEvent,
)

CLAIMABLE = (QueuedEventStatus.NEW, QueuedEventStatus.RETRY, QueuedEventStatus.IN_PROGRESS)


class InMemoryPaymentEventQueue(PaymentEventQueue):
    def __init__(self) -> None:
        self.events: dict[int, QueuedPaymentEvent] = {}
        self._by_event_id: dict[str, int] = {}
        self._next_id = 1

    async def enqueue(self, event: PaymentEvent, now: datetime) -> tuple[QueuedPaymentEvent, bool]:
        existing_id = self._by_event_id.get(event.event_id)
        if existing_id is not None:
            return replace(self.events[existing_id]), False
        queued = QueuedPaymentEvent(
            id=self._next_id,
            event=event,
            next_attempt_at=now,
            created_at=now,
        )
        self._next_id += 1
        self.events[queued.id] = queued
        self._by_event_id[event.event_id] = queued.id
        return replace(queued), True

    async def get(self, queued_id: int) -> QueuedPaymentEvent | None:
        queued = self.events.get(queued_id)
        return replace(queued) if queued else None

    def _is_claimable(self, queued: QueuedPaymentEvent, now: datetime) -> bool:
        if queued.status not in CLAIMABLE:
            return False
        if queued.status == QueuedEventStatus.IN_PROGRESS:
            # Only reclaimable once the previous holder's lock lapsed
            return queued.lock_expires_at is not None and queued.lock_expires_at <= now
        return queued.next_attempt_at is None or queued.next_attempt_at <= now

    def _lock(self, queued: QueuedPaymentEvent, locked_by: str, now: datetime, ttl: int) -> QueuedPaymentEvent:
        queued.status = QueuedEventStatus.IN_PROGRESS
        queued.locked_by = locked_by
        queued.lock_expires_at = now + timedelta(seconds=ttl)
        return replace(queued)

    async def claim(
        self,
        queued_id: int,
        locked_by: str,
        now: datetime,
        lock_ttl_seconds: int = 30,
    ) -> QueuedPaymentEvent | None:
        queued = self.events.get(queued_id)
        if queued is None or not self._is_claimable(queued, now):
            return None
        return self._lock(queued, locked_by, now, lock_ttl_seconds)

    async def claim_ready(
        self,
        limit: int,
        locked_by: str,
        now: datetime,
        lock_ttl_seconds: int = 30,
    ) -> Sequence[QueuedPaymentEvent]:
        ready = [q for q in sorted(self.events.values(), key=lambda q: q.id) if self._is_claimable(q, now)]
        return [self._lock(q, locked_by, now, lock_ttl_seconds) for q in ready[:limit]]

    async def mark_done(self, queued_id: int, now: datetime) -> None:
        queued = self.events[queued_id]
        queued.status = QueuedEventStatus.DONE
        queued.locked_by = None
        queued.lock_expires_at = None

    async def mark_retry(
        self,
        queued_id: int,
        attempts: int,
        next_attempt_at: datetime,
        error_code: str | None,
        error_message: str | None,
    ) -> None:
        queued = self.events[queued_id]
        queued.status = QueuedEventStatus.RETRY
        queued.attempts = attempts
        queued.next_attempt_at = next_attempt_at
        queued.error_code = error_code
        queued.error_message = error_message
        queued.locked_by = None
        queued.lock_expires_at = None

    async def move_to_dead_letter(
        self,
        queued_id: int,
        attempts: int,
        error_code: str | None,
        error_message: str | None,
    ) -> None:
        queued = self.events[queued_id]
        queued.status = QueuedEventStatus.DEAD_LETTER
        queued.attempts = attempts
        queued.error_code = error_code
        queued.error_message = error_message
        queued.locked_by = None
        queued.lock_expires_at = None

    async def list_dead_letters(self) -> Sequence[QueuedPaymentEvent]:
        return [
            replace(q)
            for q in sorted(self.events.values(), key=lambda q: q.id)
            if q.status == QueuedEventStatus.DEAD_LETTER
        ]
