import logging
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from reservation_engine.application.use_cases.process_payment_events import ProcessPaymentEventsUseCase
from reservation_engine.domain.entities.payment_event import (
    PaymentEvent,
    PaymentEventKind,
    QueuedEventStatus,
)
from reservation_engine.domain.errors import SettlementError
from reservation_engine.domain.value_objects import Money
from tests.helpers import NOW


def _event(event_id="evt_1", payment_ref="pi_unknown") -> PaymentEvent:
    return PaymentEvent(
        event_id=event_id,
        kind=PaymentEventKind.SUCCEEDED,
        payment_ref=payment_ref,
        amount=Money(amount=Decimal("15.00"), currency_code="usd"),
        resource_id="spot-1",
        owner_id="owner-1",
    )


def _failing_processor(bundle, max_attempts=3) -> ProcessPaymentEventsUseCase:
    engine = AsyncMock()
    engine.on_payment_event.side_effect = SettlementError("pi_unknown", "stripe down")
    return ProcessPaymentEventsUseCase(
        event_queue=bundle["event_queue"],
        settlement_engine=engine,
        transaction_manager=bundle["tx_manager"],
        clock=bundle["clock"],
        max_attempts=max_attempts,
        base_backoff_seconds=15,
    )


@pytest.mark.asyncio
class TestQueueProcessing:
    async def test_enqueue_is_deduplicated_by_event_id(self, bundle):
        queue = bundle["event_queue"]
        first, created = await queue.enqueue(_event(), NOW)
        again, created_again = await queue.enqueue(_event(), NOW)
        assert created and not created_again
        assert first.id == again.id

    async def test_successful_event_is_done(self, use_cases, bundle):
        queued, _ = await bundle["event_queue"].enqueue(_event(), NOW)
        result = await use_cases["process_payment_events"].process_one(queued.id)

        assert result["status"] == "DONE"
        stored = await bundle["event_queue"].get(queued.id)
        assert stored.status == QueuedEventStatus.DONE
        # A done event is not claimed again
        assert await use_cases["process_payment_events"].process_one(queued.id) is None

    async def test_failure_schedules_retry_with_backoff(self, bundle):
        processor = _failing_processor(bundle)
        queued, _ = await bundle["event_queue"].enqueue(_event(), NOW)

        result = await processor.process_one(queued.id)

        assert result["status"] == "RETRY"
        assert result["error_code"] == "SETTLEMENT_FAILED"
        stored = await bundle["event_queue"].get(queued.id)
        assert stored.attempts == 1
        assert stored.next_attempt_at == NOW + timedelta(seconds=15)
        # Not due yet
        assert await processor.process_ready() == []

    async def test_backoff_doubles_and_is_capped(self, bundle):
        processor = _failing_processor(bundle, max_attempts=10)
        queued, _ = await bundle["event_queue"].enqueue(_event(), NOW)
        clock = bundle["clock"]

        delays = []
        for _ in range(6):
            before = clock.now()
            await processor.process_one(queued.id)
            stored = await bundle["event_queue"].get(queued.id)
            delays.append((stored.next_attempt_at - before).total_seconds())
            clock.set_time(stored.next_attempt_at)

        assert delays == [15, 30, 60, 120, 240, 300]

    async def test_dead_letter_after_max_attempts(self, bundle, caplog):
        processor = _failing_processor(bundle, max_attempts=3)
        queued, _ = await bundle["event_queue"].enqueue(_event(), NOW)
        clock = bundle["clock"]

        with caplog.at_level(logging.CRITICAL):
            for _ in range(3):
                result = await processor.process_one(queued.id)
                clock.advance(minutes=10)

        assert result["status"] == "DEAD_LETTER"
        [dead] = await processor.list_dead_letters()
        assert dead.id == queued.id
        assert dead.attempts == 3
        assert any(r.levelno == logging.CRITICAL for r in caplog.records)
        assert await processor.process_one(queued.id) is None

    async def test_expired_lock_is_reclaimed(self, bundle):
        queue = bundle["event_queue"]
        queued, _ = await queue.enqueue(_event(), NOW)
        assert await queue.claim(queued.id, "worker-a", NOW, lock_ttl_seconds=30) is not None
        assert await queue.claim(queued.id, "worker-b", NOW + timedelta(seconds=10)) is None
        reclaimed = await queue.claim(queued.id, "worker-b", NOW + timedelta(seconds=31))
        assert reclaimed.locked_by == "worker-b"
