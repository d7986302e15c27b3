from dataclasses import dataclass
from decimal import Decimal


@dataclass
class TransferResult:
    transfer_id: str


class PayoutGateway:
    async def transfer(
        self,
        destination_id: str | None,
        amount: Decimal,
        currency: str,
        description: str,
        idempotency_key: str,
    ) -> TransferResult:
        """Raises NoPayoutDestinationError when destination_id is empty."""
        raise NotImplementedError

    async def create_destination(self, owner_id: str, email: str, country: str) -> str:
        raise NotImplementedError
