from typing import Sequence

from reservation_engine.domain.entities.payment_attempt import PaymentAttempt


class PaymentAttemptRepo:
    async def create(self, attempt: PaymentAttempt) -> PaymentAttempt:
        raise NotImplementedError

    async def get_by_reservation(self, reservation_id: str) -> PaymentAttempt | None:
        """Latest attempt for the reservation."""
        raise NotImplementedError

    async def list_by_reservation(self, reservation_id: str) -> Sequence[PaymentAttempt]:
        raise NotImplementedError

    async def find_by_gateway_reference(self, gateway_reference: str) -> PaymentAttempt | None:
        raise NotImplementedError

    async def attach_intent(
        self,
        attempt_id: int,
        gateway_reference: str,
        client_secret: str | None,
    ) -> PaymentAttempt:
        raise NotImplementedError

    async def mark_succeeded(self, attempt_id: int) -> PaymentAttempt:
        raise NotImplementedError

    async def mark_failed(self, attempt_id: int) -> PaymentAttempt:
        raise NotImplementedError
