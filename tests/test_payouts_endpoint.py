import asyncio
from datetime import timedelta
from decimal import Decimal

from fastapi.testclient import TestClient

from reservation_engine.domain.entities.payout import Payout
from reservation_engine.domain.value_objects import Money, split_platform_fee
from tests.helpers import NOW


async def _seed_payout(bundle, payment_ref: str, created_at) -> None:
    split = split_platform_fee(Money(amount=Decimal("15.00"), currency_code="usd"), Decimal("0.10"))
    await bundle["payout_repo"].create_pending(
        Payout.create_pending("owner-1", "spot-1", payment_ref, split, created_at)
    )


class TestPayoutsEndpoint:
    def test_newest_first(self, client: TestClient, bundle):
        asyncio.run(_seed_payout(bundle, "pi_old", NOW))
        asyncio.run(_seed_payout(bundle, "pi_new", NOW + timedelta(hours=1)))

        response = client.get("/payouts/owner-1")

        assert response.status_code == 200
        assert [p["payment_ref"] for p in response.json()] == ["pi_new", "pi_old"]

    def test_owner_without_payouts(self, client: TestClient):
        response = client.get("/payouts/owner-2")
        assert response.status_code == 200
        assert response.json() == []

    def test_invalid_owner_id(self, client: TestClient):
        response = client.get("/payouts/owner%20one")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestPayoutDestinationEndpoint:
    def test_link_destination(self, client: TestClient, bundle):
        response = client.post("/owners/owner-2/payout-destination", json={"email": "owner2@example.com"})

        assert response.status_code == 201
        data = response.json()
        assert data["destination_id"].startswith("acct_")
        assert data["status"] == "pending"
        assert bundle["resource_directory"].owners["owner-2"].email == "owner2@example.com"

    def test_existing_destination_is_returned(self, client: TestClient):
        response = client.post("/owners/owner-1/payout-destination", json={"email": "owner1@example.com"})
        assert response.status_code == 201
        assert response.json()["destination_id"] == "acct_owner1"

    def test_unknown_owner(self, client: TestClient):
        response = client.post("/owners/owner-9/payout-destination", json={"email": "owner9@example.com"})
        assert response.status_code == 404

    def test_invalid_email(self, client: TestClient):
        response = client.post("/owners/owner-2/payout-destination", json={"email": "not-an-email"})
        assert response.status_code == 422
