from dataclasses import replace
from datetime import datetime
from typing import Sequence

from reservation_engine.application.interfaces.payout_repo import PayoutRepo
from reservation_engine.domain.entities.payout import Payout


class InMemoryPayoutRepo(PayoutRepo):
    def __init__(self) -> None:
        self.payouts: dict[int, Payout] = {}
        self._next_id = 1

    async def create_pending(self, payout: Payout) -> Payout:
        existing = await self.find_by_payment_ref(payout.payment_ref)
        if existing is not None:
            return existing
        stored = replace(payout, id=self._next_id)
        self._next_id += 1
        self.payouts[stored.id] = stored
        return replace(stored)

    async def find_by_payment_ref(self, payment_ref: str) -> Payout | None:
        for payout in self.payouts.values():
            if payout.payment_ref == payment_ref:
                return replace(payout)
        return None

    async def mark_completed(
        self,
        payout_id: int,
        transfer_reference: str,
        completed_at: datetime,
    ) -> Payout:
        payout = self.payouts[payout_id]
        payout.complete(transfer_reference, completed_at)
        return replace(payout)

    async def mark_failed_manual(self, payout_id: int, reason: str) -> Payout:
        payout = self.payouts[payout_id]
        payout.fail_manual(reason)
        return replace(payout)

    async def list_by_owner(self, owner_id: str) -> Sequence[Payout]:
        found = [p for p in self.payouts.values() if p.owner_id == owner_id]
        found.sort(key=lambda p: (p.created_at, p.id), reverse=True)
        return [replace(p) for p in found]

    async def count(self) -> int:
        return len(self.payouts)
