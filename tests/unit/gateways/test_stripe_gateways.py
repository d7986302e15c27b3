import unittest
from decimal import Decimal
from unittest.mock import MagicMock, patch

import stripe

from reservation_engine.domain.errors import NoPayoutDestinationError
from reservation_engine.infrastructure.circuit_breaker import (
    CircuitBreakerError,
    payout_breaker,
    stripe_breaker,
)
from reservation_engine.infrastructure.gateways.stripe_payment_gateway import StripePaymentGateway
from reservation_engine.infrastructure.gateways.stripe_payout_gateway import StripePayoutGateway
from tests.helpers import WEBHOOK_SECRET, as_json, gateway_event, sign_payload


class TestStripePaymentGateway(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        stripe_breaker.close()
        self.gateway = StripePaymentGateway(api_key="sk_test_123")

    def tearDown(self):
        stripe_breaker.close()

    @patch("stripe.PaymentIntent.create")
    async def test_create_intent(self, mock_create):
        mock_create.return_value = MagicMock(id="pi_123", client_secret="pi_123_secret_abc")

        intent = await self.gateway.create_intent(
            amount=Decimal("15.00"),
            currency="USD",
            metadata={"reservation_id": "RSV-1", "resource_id": "spot-1"},
            idempotency_key="req-1",
        )

        self.assertEqual(intent.intent_id, "pi_123")
        self.assertEqual(intent.client_secret, "pi_123_secret_abc")
        kwargs = mock_create.call_args.kwargs
        self.assertEqual(kwargs["amount"], 1500)
        self.assertEqual(kwargs["currency"], "usd")
        self.assertEqual(kwargs["idempotency_key"], "req-1")
        self.assertEqual(kwargs["metadata"]["resource_id"], "spot-1")

    @patch("stripe.PaymentIntent.create")
    async def test_stripe_error_propagates(self, mock_create):
        mock_create.side_effect = stripe.APIConnectionError("network down")

        with self.assertRaises(stripe.StripeError):
            await self.gateway.create_intent(Decimal("15.00"), "usd", {}, "req-1")

    @patch("stripe.PaymentIntent.create")
    async def test_circuit_opens_after_repeated_failures(self, mock_create):
        mock_create.side_effect = stripe.APIConnectionError("network down")

        for _ in range(stripe_breaker.fail_max - 1):
            with self.assertRaises(stripe.StripeError):
                await self.gateway.create_intent(Decimal("15.00"), "usd", {}, "req-1")
        with self.assertRaises(CircuitBreakerError):
            await self.gateway.create_intent(Decimal("15.00"), "usd", {}, "req-1")

        calls = mock_create.call_count
        with self.assertRaises(CircuitBreakerError):
            await self.gateway.create_intent(Decimal("15.00"), "usd", {}, "req-1")
        self.assertEqual(mock_create.call_count, calls)

    async def test_event_rejected_without_configured_secret(self):
        body = as_json(gateway_event("evt_1", "pi_123", 1500))

        with self.assertRaises(ValueError):
            await self.gateway.parse_webhook_event(body.encode(), None, None)
        with self.assertRaises(ValueError):
            await self.gateway.parse_webhook_event(body.encode(), sign_payload(body), None)

    async def test_parse_signed_event(self):
        body = as_json(gateway_event("evt_1", "pi_123", 1500))

        event = await self.gateway.parse_webhook_event(body.encode(), sign_payload(body), WEBHOOK_SECRET)

        self.assertEqual(event["id"], "evt_1")
        self.assertEqual(event["type"], "payment_intent.succeeded")
        self.assertEqual(event["data"]["object"]["id"], "pi_123")

    async def test_bad_signature_is_rejected(self):
        body = as_json(gateway_event("evt_1", "pi_123", 1500))

        with self.assertRaises(ValueError):
            await self.gateway.parse_webhook_event(
                body.encode(), sign_payload(body, "whsec_other"), WEBHOOK_SECRET
            )
        with self.assertRaises(ValueError):
            await self.gateway.parse_webhook_event(body.encode(), None, WEBHOOK_SECRET)


class TestStripePayoutGateway(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        payout_breaker.close()
        self.gateway = StripePayoutGateway(api_key="sk_test_123")

    def tearDown(self):
        payout_breaker.close()

    @patch("stripe.Transfer.create")
    async def test_transfer(self, mock_create):
        mock_create.return_value = MagicMock(id="tr_123")

        result = await self.gateway.transfer(
            destination_id="acct_owner1",
            amount=Decimal("13.50"),
            currency="usd",
            description="Payout for resource spot-1",
            idempotency_key="payout-pi_123",
        )

        self.assertEqual(result.transfer_id, "tr_123")
        kwargs = mock_create.call_args.kwargs
        self.assertEqual(kwargs["amount"], 1350)
        self.assertEqual(kwargs["destination"], "acct_owner1")
        self.assertEqual(kwargs["idempotency_key"], "payout-pi_123")

    @patch("stripe.Transfer.create")
    async def test_transfer_without_destination(self, mock_create):
        with self.assertRaises(NoPayoutDestinationError):
            await self.gateway.transfer(None, Decimal("13.50"), "usd", "payout", "payout-pi_123")
        mock_create.assert_not_called()

    @patch("stripe.Account.create")
    async def test_create_destination(self, mock_create):
        mock_create.return_value = MagicMock(id="acct_new")

        destination_id = await self.gateway.create_destination("owner-2", "owner2@example.com", "US")

        self.assertEqual(destination_id, "acct_new")
        kwargs = mock_create.call_args.kwargs
        self.assertEqual(kwargs["type"], "express")
        self.assertEqual(kwargs["metadata"], {"owner_id": "owner-2"})
