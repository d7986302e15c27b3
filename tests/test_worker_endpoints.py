from fastapi.testclient import TestClient

from tests.helpers import booking_payload, gateway_event, post_event


def _book_and_queue_failing_event(client: TestClient, bundle) -> dict:
    booking = client.post(
        "/bookings", json=booking_payload(), headers={"Idempotency-Key": "req-1"}
    ).json()
    bundle["payout_gateway"].fail_with = RuntimeError("stripe unavailable")
    event = gateway_event(
        "evt_1",
        booking["payment"]["gateway_reference"],
        1500,
        metadata={"resource_id": "spot-1", "owner_id": "owner-1"},
    )
    post_event(client, event)
    return booking


class TestWorkerEndpoints:
    def test_process_ready_retries_after_backoff(self, client: TestClient, bundle):
        _book_and_queue_failing_event(client, bundle)
        bundle["payout_gateway"].fail_with = None

        not_due = client.post("/api/v1/workers/payment-events/process")
        assert not_due.json() == {"processed": 0, "results": []}

        bundle["clock"].advance(seconds=15)
        response = client.post("/api/v1/workers/payment-events/process")

        assert response.status_code == 200
        [result] = response.json()["results"]
        assert result["status"] == "DONE"
        assert result["outcome"] == "settled"
        assert client.get("/payouts/owner-1").json()[0]["status"] == "completed"

    def test_process_one_not_due_conflicts(self, client: TestClient, bundle):
        _book_and_queue_failing_event(client, bundle)
        [queued_id] = bundle["event_queue"].events

        response = client.post(f"/api/v1/workers/payment-events/{queued_id}/process")
        assert response.status_code == 409

    def test_dead_letters_listed(self, client: TestClient, bundle, settings):
        settings.settlement_max_attempts = 2
        _book_and_queue_failing_event(client, bundle)
        [queued_id] = bundle["event_queue"].events

        bundle["clock"].advance(minutes=5)
        response = client.post(f"/api/v1/workers/payment-events/{queued_id}/process")
        assert response.json()["status"] == "DEAD_LETTER"

        [dead] = client.get("/api/v1/workers/payment-events/dead-letters").json()
        assert dead["event_id"] == "evt_1"
        assert dead["attempts"] == 2
        assert dead["error_code"] == "SETTLEMENT_FAILED"

    def test_expire_sweep(self, client: TestClient, bundle):
        booking = client.post(
            "/bookings", json=booking_payload(), headers={"Idempotency-Key": "req-1"}
        ).json()
        bundle["clock"].advance(minutes=31)

        response = client.post("/api/v1/workers/reservations/expire")

        assert response.status_code == 200
        assert response.json() == {"released": [booking["reservation"]["id"]]}
        fetched = client.get(f"/bookings/{booking['reservation']['id']}").json()
        assert fetched["reservation"]["cancellation_reason"] == "payment_expired"
