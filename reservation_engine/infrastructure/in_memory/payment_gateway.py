import asyncio
import json
from decimal import Decimal
from typing import Any
from uuid import uuid4

import stripe

from reservation_engine.application.interfaces.payment_gateway import PaymentGateway, PaymentIntent


class StubPaymentGateway(PaymentGateway):
    """
    Gateway double that answers locally.

    `delay_seconds` and `fail_with` simulate a slow or failing gateway. Intents
    are keyed by idempotency key, as Stripe does, so a retried capture gets the
    intent it created the first time.
    """

    def __init__(self, delay_seconds: float = 0.0, fail_with: Exception | None = None) -> None:
        self.delay_seconds = delay_seconds
        self.fail_with = fail_with
        self.intents: dict[str, PaymentIntent] = {}
        self.calls: list[dict[str, Any]] = []

    async def create_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> PaymentIntent:
        self.calls.append(
            {"amount": amount, "currency": currency, "metadata": metadata, "idempotency_key": idempotency_key}
        )
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.fail_with is not None:
            raise self.fail_with
        if idempotency_key not in self.intents:
            intent_id = f"pi_{uuid4().hex[:14]}"
            self.intents[idempotency_key] = PaymentIntent(
                intent_id=intent_id, client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}"
            )
        return self.intents[idempotency_key]

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict:
        if not payload:
            raise ValueError("Empty webhook payload")
        if not webhook_secret:
            raise ValueError("Webhook secret is not configured")
        if not signature_header:
            raise ValueError("Missing Stripe-Signature header")
        try:
            stripe.WebhookSignature.verify_header(payload.decode(), signature_header, webhook_secret)
        except stripe.SignatureVerificationError as exc:
            raise ValueError("Invalid Stripe signature") from exc
        try:
            event = json.loads(payload.decode() or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Invalid webhook payload") from exc
        if not isinstance(event, dict):
            raise ValueError("Invalid webhook payload")
        return event
