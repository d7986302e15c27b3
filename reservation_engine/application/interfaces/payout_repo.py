from datetime import datetime
from typing import Sequence

from reservation_engine.domain.entities.payout import Payout


class PayoutRepo:
    """Payout Ledger: one payout per settled payment reference."""

    async def create_pending(self, payout: Payout) -> Payout:
        raise NotImplementedError

    async def find_by_payment_ref(self, payment_ref: str) -> Payout | None:
        raise NotImplementedError

    async def mark_completed(
        self,
        payout_id: int,
        transfer_reference: str,
        completed_at: datetime,
    ) -> Payout:
        """Only from pending; raises InvalidPayoutTransitionError otherwise."""
        raise NotImplementedError

    async def mark_failed_manual(self, payout_id: int, reason: str) -> Payout:
        """Only from pending; raises InvalidPayoutTransitionError otherwise."""
        raise NotImplementedError

    async def list_by_owner(self, owner_id: str) -> Sequence[Payout]:
        """Newest first."""
        raise NotImplementedError

    async def count(self) -> int:
        raise NotImplementedError
