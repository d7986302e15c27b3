from decimal import Decimal
from typing import Any
from uuid import uuid4

from reservation_engine.application.interfaces.payout_gateway import PayoutGateway, TransferResult
from reservation_engine.domain.errors import NoPayoutDestinationError


class StubPayoutGateway(PayoutGateway):
    """Records transfers instead of moving money. `fail_with` simulates an outage."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.transfers: list[dict[str, Any]] = []
        self._by_idempotency_key: dict[str, TransferResult] = {}

    async def transfer(
        self,
        destination_id: str | None,
        amount: Decimal,
        currency: str,
        description: str,
        idempotency_key: str,
    ) -> TransferResult:
        if not destination_id:
            raise NoPayoutDestinationError("unlinked")
        if self.fail_with is not None:
            raise self.fail_with
        if idempotency_key in self._by_idempotency_key:
            return self._by_idempotency_key[idempotency_key]
        result = TransferResult(transfer_id=f"tr_{uuid4().hex[:14]}")
        self.transfers.append(
            {
                "destination_id": destination_id,
                "amount": amount,
                "currency": currency,
                "description": description,
                "idempotency_key": idempotency_key,
                "transfer_id": result.transfer_id,
            }
        )
        self._by_idempotency_key[idempotency_key] = result
        return result

    async def create_destination(self, owner_id: str, email: str, country: str) -> str:
        return f"acct_{uuid4().hex[:16]}"
