import logging
from datetime import datetime, timedelta

from reservation_engine.application.interfaces.clock import Clock
from reservation_engine.application.interfaces.payment_event_queue import PaymentEventQueue
from reservation_engine.application.interfaces.transaction_manager import TransactionManager
from reservation_engine.application.use_cases.settlement_engine import SettlementEngine
from reservation_engine.domain.entities.payment_event import QueuedPaymentEvent

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
BASE_BACKOFF_SECONDS = 15
MAX_BACKOFF_SECONDS = 300


class ProcessPaymentEventsUseCase:
    """
    Drains the payment event queue through the settlement engine.

    A failed event is retried with exponential backoff; after MAX_ATTEMPTS it
    moves to the dead letter state and is reported at critical level.
    """

    def __init__(
        self,
        event_queue: PaymentEventQueue,
        settlement_engine: SettlementEngine,
        transaction_manager: TransactionManager,
        clock: Clock,
        max_attempts: int = MAX_ATTEMPTS,
        base_backoff_seconds: int = BASE_BACKOFF_SECONDS,
        lock_ttl_seconds: int = 30,
    ) -> None:
        self._event_queue = event_queue
        self._settlement_engine = settlement_engine
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._max_attempts = max_attempts
        self._base_backoff_seconds = base_backoff_seconds
        self._lock_ttl_seconds = lock_ttl_seconds

    async def process_one(self, queued_id: int, worker_id: str = "api") -> dict | None:
        now = self._clock.now()
        async with self._transaction_manager.start():
            queued = await self._event_queue.claim(
                queued_id, worker_id, now, lock_ttl_seconds=self._lock_ttl_seconds
            )
        if queued is None:
            return None
        return await self._process(queued)

    async def process_ready(self, limit: int = 10, worker_id: str = "worker") -> list[dict]:
        now = self._clock.now()
        async with self._transaction_manager.start():
            batch = await self._event_queue.claim_ready(
                limit, worker_id, now, lock_ttl_seconds=self._lock_ttl_seconds
            )
        return [await self._process(queued) for queued in batch]

    async def _process(self, queued: QueuedPaymentEvent) -> dict:
        try:
            result = await self._settlement_engine.on_payment_event(queued.event)
        except Exception as exc:
            return await self._handle_failure(queued, exc)

        async with self._transaction_manager.start():
            await self._event_queue.mark_done(queued.id, self._clock.now())
        return {
            "queued_id": queued.id,
            "event_id": queued.event.event_id,
            "status": "DONE",
            "outcome": result.outcome,
        }

    async def _handle_failure(self, queued: QueuedPaymentEvent, exc: Exception) -> dict:
        attempts = queued.attempts + 1
        error_code = getattr(exc, "code", None) or type(exc).__name__
        error_message = str(exc)[:255]

        if attempts >= self._max_attempts:
            async with self._transaction_manager.start():
                await self._event_queue.move_to_dead_letter(
                    queued.id, attempts, error_code, error_message
                )
            logger.critical(
                "Payment event moved to dead letter after max attempts, needs manual settlement",
                extra={
                    "queued_id": queued.id,
                    "event_id": queued.event.event_id,
                    "payment_ref": queued.event.payment_ref,
                    "attempts": attempts,
                    "error_code": error_code,
                },
            )
            return {
                "queued_id": queued.id,
                "event_id": queued.event.event_id,
                "status": "DEAD_LETTER",
                "error_code": error_code,
            }

        next_attempt_at = self._next_attempt_at(attempts)
        async with self._transaction_manager.start():
            await self._event_queue.mark_retry(
                queued.id, attempts, next_attempt_at, error_code, error_message
            )
        logger.warning(
            "Payment event processing failed, retry scheduled",
            extra={
                "queued_id": queued.id,
                "event_id": queued.event.event_id,
                "attempts": attempts,
                "next_attempt_at": next_attempt_at.isoformat(),
                "error_code": error_code,
            },
        )
        return {
            "queued_id": queued.id,
            "event_id": queued.event.event_id,
            "status": "RETRY",
            "error_code": error_code,
        }

    def _next_attempt_at(self, attempts: int) -> datetime:
        backoff = min(self._base_backoff_seconds * (2 ** (attempts - 1)), MAX_BACKOFF_SECONDS)
        return self._clock.now() + timedelta(seconds=backoff)

    async def list_dead_letters(self) -> list[QueuedPaymentEvent]:
        return list(await self._event_queue.list_dead_letters())
