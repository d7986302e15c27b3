"""Background worker that drains the payment event queue and releases expired holds."""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Callable
from uuid import uuid4

logger = logging.getLogger(__name__)

UseCaseScope = Callable[[], AbstractAsyncContextManager[dict[str, Any]]]


class SettlementWorker:
    """
    Polling loop over the settlement queue.

    Each cycle opens a fresh use-case scope (a new DB session in SQL mode),
    processes up to `batch_size` ready events, then runs the pending-payment
    expiry sweep. Webhook intake schedules immediate processing too; this loop
    picks up retries and anything a crashed process left behind.
    """

    def __init__(
        self,
        use_case_scope: UseCaseScope,
        worker_id: str | None = None,
        poll_interval_seconds: float = 5.0,
        batch_size: int = 10,
    ) -> None:
        self._use_case_scope = use_case_scope
        self._worker_id = worker_id or f"worker-{uuid4().hex[:8]}"
        self._poll_interval = poll_interval_seconds
        self._batch_size = batch_size
        self._running = False

    @property
    def worker_id(self) -> str:
        return self._worker_id

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        self._running = True
        logger.info("SettlementWorker started", extra={"worker_id": self._worker_id})

        while self._running:
            try:
                processed = await self.run_once()
                if processed == 0:
                    await asyncio.sleep(self._poll_interval)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Settlement worker cycle failed", extra={"worker_id": self._worker_id})
                await asyncio.sleep(self._poll_interval)

    async def stop(self) -> None:
        self._running = False
        logger.info("SettlementWorker stopped", extra={"worker_id": self._worker_id})

    async def run_once(self) -> int:
        """One cycle; returns the number of queue events handled."""
        async with self._use_case_scope() as use_cases:
            results = await use_cases["process_payment_events"].process_ready(
                limit=self._batch_size, worker_id=self._worker_id
            )
            await use_cases["expire_pending"].execute()
        return len(results)
