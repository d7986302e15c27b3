from datetime import datetime
from typing import Sequence

from reservation_engine.domain.entities.payment_event import PaymentEvent, QueuedPaymentEvent


class PaymentEventQueue:
    """Durable inbox of gateway events awaiting settlement."""

    async def enqueue(self, event: PaymentEvent, now: datetime) -> tuple[QueuedPaymentEvent, bool]:
        """Returns (record, created). A known event_id returns the existing record."""
        raise NotImplementedError

    async def get(self, queued_id: int) -> QueuedPaymentEvent | None:
        raise NotImplementedError

    async def claim(
        self,
        queued_id: int,
        locked_by: str,
        now: datetime,
        lock_ttl_seconds: int = 30,
    ) -> QueuedPaymentEvent | None:
        raise NotImplementedError

    async def claim_ready(
        self,
        limit: int,
        locked_by: str,
        now: datetime,
        lock_ttl_seconds: int = 30,
    ) -> Sequence[QueuedPaymentEvent]:
        raise NotImplementedError

    async def mark_done(self, queued_id: int, now: datetime) -> None:
        raise NotImplementedError

    async def mark_retry(
        self,
        queued_id: int,
        attempts: int,
        next_attempt_at: datetime,
        error_code: str | None,
        error_message: str | None,
    ) -> None:
        raise NotImplementedError

    async def move_to_dead_letter(
        self,
        queued_id: int,
        attempts: int,
        error_code: str | None,
        error_message: str | None,
    ) -> None:
        raise NotImplementedError

    async def list_dead_letters(self) -> Sequence[QueuedPaymentEvent]:
        raise NotImplementedError
