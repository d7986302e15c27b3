import asyncio
import json
import logging
from decimal import Decimal

import stripe

from reservation_engine.application.interfaces.payment_gateway import PaymentGateway, PaymentIntent
from reservation_engine.config import get_settings
from reservation_engine.domain.value_objects.money import Money
from reservation_engine.infrastructure.circuit_breaker import CircuitBreakerError, stripe_breaker

logger = logging.getLogger(__name__)


class StripePaymentGateway(PaymentGateway):
    def __init__(self, api_key: str | None = None) -> None:
        settings = get_settings()
        stripe.api_key = api_key or settings.stripe_api_key
        stripe.max_network_retries = 2

    async def create_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> PaymentIntent:
        """
        Create a PaymentIntent, protected by the circuit breaker.

        The Stripe SDK is synchronous, so the call runs in a worker thread; the
        caller bounds it with its own timeout. Reusing the idempotency key
        returns the intent created by an earlier, timed-out attempt.

        Raises:
            CircuitBreakerError: When the circuit is open
            stripe.StripeError: When the Stripe API call fails
        """
        try:
            intent = await asyncio.to_thread(
                stripe_breaker.call,
                stripe.PaymentIntent.create,
                amount=Money(amount=amount, currency_code=currency).to_cents(),
                currency=currency.lower(),
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                idempotency_key=idempotency_key,
            )
        except CircuitBreakerError as e:
            logger.error(
                "Stripe circuit breaker is open - service unavailable",
                extra={"circuit_state": str(e)},
            )
            raise
        except stripe.StripeError as e:
            logger.error(
                "Stripe API error",
                exc_info=e,
                extra={"reservation_id": metadata.get("reservation_id")},
            )
            raise
        return PaymentIntent(intent_id=intent.id, client_secret=intent.client_secret)

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict:
        """
        Verify the Stripe-Signature header and return the event as plain JSON.
        Without a configured secret every event is rejected.

        Raises:
            ValueError: No secret configured, a missing or invalid signature,
                or a payload that is not an event object
        """
        if not webhook_secret:
            raise ValueError("Webhook secret is not configured")
        if not signature_header:
            raise ValueError("Missing Stripe-Signature header")
        try:
            stripe.Webhook.construct_event(
                payload=payload.decode(),
                sig_header=signature_header,
                secret=webhook_secret,
            )
        except stripe.SignatureVerificationError as exc:
            raise ValueError("Invalid Stripe signature") from exc
        except Exception as exc:  # noqa: BLE001
            raise ValueError("Invalid Stripe webhook payload") from exc

        try:
            event = json.loads(payload.decode() or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError("Invalid webhook payload") from exc
        if not isinstance(event, dict):
            raise ValueError("Invalid webhook payload")
        return event
