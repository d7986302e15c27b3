from dataclasses import replace
from typing import Sequence

from reservation_engine.application.interfaces.payment_attempt_repo import PaymentAttemptRepo
from reservation_engine.domain.entities.payment_attempt import PaymentAttempt, PaymentAttemptStatus


class InMemoryPaymentAttemptRepo(PaymentAttemptRepo):
    def __init__(self) -> None:
        self.attempts: dict[int, PaymentAttempt] = {}
        self._next_id = 1

    async def create(self, attempt: PaymentAttempt) -> PaymentAttempt:
        stored = replace(attempt, id=self._next_id)
        self._next_id += 1
        self.attempts[stored.id] = stored
        return replace(stored)

    async def get_by_reservation(self, reservation_id: str) -> PaymentAttempt | None:
        attempts = await self.list_by_reservation(reservation_id)
        return attempts[-1] if attempts else None

    async def list_by_reservation(self, reservation_id: str) -> Sequence[PaymentAttempt]:
        return [
            replace(a)
            for a in sorted(self.attempts.values(), key=lambda a: a.id)
            if a.reservation_id == reservation_id
        ]

    async def find_by_gateway_reference(self, gateway_reference: str) -> PaymentAttempt | None:
        for attempt in self.attempts.values():
            if attempt.gateway_reference == gateway_reference:
                return replace(attempt)
        return None

    async def attach_intent(
        self,
        attempt_id: int,
        gateway_reference: str,
        client_secret: str | None,
    ) -> PaymentAttempt:
        attempt = self._require(attempt_id)
        attempt.gateway_reference = gateway_reference
        attempt.client_secret = client_secret
        return replace(attempt)

    async def mark_succeeded(self, attempt_id: int) -> PaymentAttempt:
        attempt = self._require(attempt_id)
        attempt.status = PaymentAttemptStatus.SUCCEEDED
        return replace(attempt)

    async def mark_failed(self, attempt_id: int) -> PaymentAttempt:
        attempt = self._require(attempt_id)
        if attempt.status != PaymentAttemptStatus.SUCCEEDED:
            attempt.status = PaymentAttemptStatus.FAILED
        return replace(attempt)

    def _require(self, attempt_id: int) -> PaymentAttempt:
        attempt = self.attempts.get(attempt_id)
        if attempt is None:
            raise ValueError(f"Payment attempt not found: {attempt_id}")
        return attempt
