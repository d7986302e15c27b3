from datetime import timedelta

from fastapi.testclient import TestClient

from tests.helpers import NOW, booking_payload


def _post_booking(client: TestClient, idem_key: str = "req-1", **kwargs):
    return client.post("/bookings", json=booking_payload(**kwargs), headers={"Idempotency-Key": idem_key})


class TestCreateBookingEndpoint:
    def test_create_booking_returns_201(self, client: TestClient):
        response = _post_booking(client)
        assert response.status_code == 201, response.text

        data = response.json()
        assert data["reservation"]["status"] == "pending"
        assert data["reservation"]["id"].startswith("RSV-")
        assert data["payment"]["amount"] == "15.00"
        assert data["payment"]["client_secret"]
        assert "card_number" not in data["payment"]

    def test_idempotency_key_is_required(self, client: TestClient):
        response = client.post("/bookings", json=booking_payload())
        assert response.status_code == 400

    def test_same_key_returns_same_booking(self, client: TestClient):
        first = _post_booking(client).json()
        second = _post_booking(client)
        assert second.status_code == 201
        assert second.json()["reservation"]["id"] == first["reservation"]["id"]

    def test_same_key_different_body_conflicts(self, client: TestClient):
        _post_booking(client)
        response = _post_booking(client, requester_id="driver-2")
        assert response.status_code == 409
        assert response.json()["code"] == "IDEMPOTENCY_CONFLICT"

    def test_overlapping_window_is_rejected(self, client: TestClient):
        _post_booking(client)
        response = _post_booking(client, idem_key="req-2", requester_id="driver-2", start=NOW + timedelta(hours=2))
        assert response.status_code == 409
        assert response.json()["code"] == "RESOURCE_OCCUPIED"

    def test_window_in_past_is_rejected(self, client: TestClient):
        response = _post_booking(client, start=NOW - timedelta(hours=1))
        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_WINDOW"

    def test_invalid_payment_method(self, client: TestClient):
        response = _post_booking(client, payment_details={"method": "mobile_money"})
        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_PAYMENT_METHOD"
        assert response.json()["details"]["field"] == "mobile_number"

    def test_unknown_resource(self, client: TestClient):
        response = _post_booking(client, resource_id="spot-missing")
        assert response.status_code == 404
        assert response.json()["code"] == "RESOURCE_NOT_FOUND"

    def test_extra_fields_are_rejected(self, client: TestClient):
        payload = booking_payload()
        payload["price"] = "0.01"
        response = client.post("/bookings", json=payload, headers={"Idempotency-Key": "req-1"})
        assert response.status_code == 422

    def test_slow_gateway_answers_payment_pending(self, client: TestClient, bundle):
        bundle["payment_gateway"].delay_seconds = 1.0
        response = _post_booking(client)
        assert response.status_code == 202
        assert response.json()["code"] == "PAYMENT_PENDING"

    def test_gateway_failure(self, client: TestClient, bundle):
        bundle["payment_gateway"].fail_with = RuntimeError("card declined")
        response = _post_booking(client)
        assert response.status_code == 402
        assert response.json()["code"] == "PAYMENT_CAPTURE_FAILED"


class TestReadAndCancelEndpoints:
    def test_get_booking(self, client: TestClient):
        created = _post_booking(client).json()
        response = client.get(f"/bookings/{created['reservation']['id']}")
        assert response.status_code == 200
        assert response.json()["payment"]["gateway_reference"] == created["payment"]["gateway_reference"]

    def test_get_unknown_booking(self, client: TestClient):
        response = client.get("/bookings/RSV-MISSING")
        assert response.status_code == 404

    def test_list_bookings_for_requester(self, client: TestClient):
        _post_booking(client)
        _post_booking(client, idem_key="req-2", resource_id="spot-2")
        _post_booking(client, idem_key="req-3", resource_id="spot-free", requester_id="driver-2")

        response = client.get("/bookings", params={"requester_id": "driver-1"})
        assert response.status_code == 200
        assert {r["resource_id"] for r in response.json()} == {"spot-1", "spot-2"}

    def test_cancel_frees_the_window(self, client: TestClient):
        created = _post_booking(client).json()
        reservation_id = created["reservation"]["id"]

        response = client.post(f"/bookings/{reservation_id}/cancel", json={"requester_id": "driver-1"})
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        availability = client.get("/resources/spot-1/availability", params={"at": (NOW + timedelta(hours=1)).isoformat()})
        assert availability.json()["available"] is True
        assert _post_booking(client, idem_key="req-2", requester_id="driver-2").status_code == 201

    def test_cancel_by_other_requester_is_forbidden(self, client: TestClient):
        created = _post_booking(client).json()
        response = client.post(
            f"/bookings/{created['reservation']['id']}/cancel", json={"requester_id": "driver-2"}
        )
        assert response.status_code == 403
        assert response.json()["code"] == "NOT_RESERVATION_OWNER"


class TestAvailabilityEndpoint:
    def test_availability_follows_reservations(self, client: TestClient):
        _post_booking(client)
        inside = (NOW + timedelta(hours=1, minutes=30)).isoformat()
        after = (NOW + timedelta(hours=3)).isoformat()

        assert client.get("/resources/spot-1/availability", params={"at": inside}).json()["available"] is False
        assert client.get("/resources/spot-1/availability", params={"at": after}).json()["available"] is True

    def test_defaults_to_now(self, client: TestClient):
        response = client.get("/resources/spot-1/availability")
        assert response.status_code == 200
        assert response.json()["available"] is True
