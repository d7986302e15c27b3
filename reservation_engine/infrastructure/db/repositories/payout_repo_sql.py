from datetime import datetime
from typing import Any, Mapping, Sequence

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.application.interfaces.payout_repo import PayoutRepo
from reservation_engine.domain.entities.payout import Payout, PayoutStatus
from reservation_engine.domain.errors import InvalidPayoutTransitionError
from reservation_engine.infrastructure.db.tables import payouts
from reservation_engine.infrastructure.db.timeutil import from_db, to_db


def _to_entity(row: Mapping[str, Any]) -> Payout:
    return Payout(
        id=row["id"],
        owner_id=row["owner_id"],
        resource_id=row["resource_id"],
        payment_ref=row["payment_ref"],
        total_amount=row["total_amount"],
        platform_fee=row["platform_fee"],
        owner_amount=row["owner_amount"],
        currency=row["currency"],
        status=PayoutStatus(row["status"]),
        created_at=from_db(row["created_at"]),
        completed_at=from_db(row["completed_at"]),
        transfer_reference=row["transfer_reference"],
        failure_reason=row["failure_reason"],
    )


class PayoutRepoSQL(PayoutRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_pending(self, payout: Payout) -> Payout:
        stmt = insert(payouts).values(
            owner_id=payout.owner_id,
            resource_id=payout.resource_id,
            payment_ref=payout.payment_ref,
            total_amount=payout.total_amount,
            platform_fee=payout.platform_fee,
            owner_amount=payout.owner_amount,
            currency=payout.currency,
            status=PayoutStatus.PENDING.value,
            created_at=to_db(payout.created_at),
        )
        result = await self._session.execute(stmt)
        payout.id = result.inserted_primary_key[0]
        return payout

    async def _fetch(self, payout_id: int) -> Payout:
        stmt = select(payouts).where(payouts.c.id == payout_id)
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        if not row:
            raise ValueError(f"Payout not found: {payout_id}")
        return _to_entity(row)

    async def find_by_payment_ref(self, payment_ref: str) -> Payout | None:
        stmt = select(payouts).where(payouts.c.payment_ref == payment_ref)
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return _to_entity(row) if row else None

    async def _transition(self, payout_id: int, target: PayoutStatus, **values: Any) -> Payout:
        stmt = (
            update(payouts)
            .where(payouts.c.id == payout_id, payouts.c.status == PayoutStatus.PENDING.value)
            .values(status=target.value, **values)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            current = await self._fetch(payout_id)
            raise InvalidPayoutTransitionError(payout_id, current.status.value, target.value)
        return await self._fetch(payout_id)

    async def mark_completed(
        self,
        payout_id: int,
        transfer_reference: str,
        completed_at: datetime,
    ) -> Payout:
        return await self._transition(
            payout_id,
            PayoutStatus.COMPLETED,
            transfer_reference=transfer_reference,
            completed_at=to_db(completed_at),
        )

    async def mark_failed_manual(self, payout_id: int, reason: str) -> Payout:
        return await self._transition(payout_id, PayoutStatus.FAILED_MANUAL, failure_reason=reason)

    async def list_by_owner(self, owner_id: str) -> Sequence[Payout]:
        stmt = (
            select(payouts)
            .where(payouts.c.owner_id == owner_id)
            .order_by(payouts.c.created_at.desc(), payouts.c.id.desc())
        )
        result = await self._session.execute(stmt)
        return [_to_entity(row) for row in result.mappings().all()]

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(payouts))
        return result.scalar_one()
