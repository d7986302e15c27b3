from dataclasses import dataclass
from decimal import Decimal
from typing import Any


@dataclass
class PaymentIntent:
    intent_id: str
    client_secret: str | None


class PaymentGateway:
    async def create_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> PaymentIntent:
        raise NotImplementedError

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        """Verify the signature and decode the event; ValueError on bad signature or payload."""
        raise NotImplementedError
