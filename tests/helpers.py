"""Payload builders shared by the test modules."""

import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta, timezone

NOW = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)
WEBHOOK_SECRET = "whsec_test_secret"

CARD = {"method": "card", "card_number": "4242 4242 4242 4242", "expiry": "12/31", "cvv": "123"}


def booking_payload(
    resource_id: str = "spot-1",
    requester_id: str = "driver-1",
    start: datetime | None = None,
    payment_details: dict | None = None,
) -> dict:
    start = start or NOW + timedelta(hours=1)
    return {
        "resource_id": resource_id,
        "requester_id": requester_id,
        "window_start": start.isoformat(),
        "payment_details": payment_details if payment_details is not None else dict(CARD),
    }


def gateway_event(
    event_id: str,
    intent_id: str,
    amount_cents: int,
    event_type: str = "payment_intent.succeeded",
    metadata: dict | None = None,
) -> dict:
    return {
        "id": event_id,
        "type": event_type,
        "data": {
            "object": {
                "id": intent_id,
                "object": "payment_intent",
                "amount": amount_cents,
                "amount_received": amount_cents,
                "currency": "usd",
                "metadata": metadata or {},
            }
        },
    }


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def as_json(data: dict) -> str:
    return json.dumps(data, separators=(",", ":"))


def post_event(client, event: dict, secret: str = WEBHOOK_SECRET):
    body = as_json(event)
    return client.post(
        "/payment-events", content=body, headers={"Stripe-Signature": sign_payload(body, secret)}
    )
