import re

from reservation_engine.api.schemas.payouts import PayoutOut
from reservation_engine.application.interfaces.payout_repo import PayoutRepo
from reservation_engine.domain.errors import OwnerNotFoundError

OWNER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class ListPayoutsUseCase:
    def __init__(self, payout_repo: PayoutRepo) -> None:
        self._payout_repo = payout_repo

    async def execute(self, owner_id: str) -> list[PayoutOut]:
        """Payout history newest first; an owner with no payouts gets an empty list."""
        if not owner_id or not OWNER_ID_RE.match(owner_id):
            raise OwnerNotFoundError(owner_id)
        payouts = await self._payout_repo.list_by_owner(owner_id)
        return [PayoutOut.from_entity(p) for p in payouts]
