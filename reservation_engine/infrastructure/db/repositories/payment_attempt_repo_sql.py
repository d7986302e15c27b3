from typing import Any, Mapping, Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.application.interfaces.payment_attempt_repo import PaymentAttemptRepo
from reservation_engine.domain.entities.payment_attempt import PaymentAttempt, PaymentAttemptStatus
from reservation_engine.infrastructure.db.tables import payment_attempts
from reservation_engine.infrastructure.db.timeutil import from_db, to_db


def _to_entity(row: Mapping[str, Any]) -> PaymentAttempt:
    return PaymentAttempt(
        id=row["id"],
        reservation_id=row["reservation_id"],
        amount=row["amount"],
        currency=row["currency"],
        method=row["method"],
        status=PaymentAttemptStatus(row["status"]),
        gateway_reference=row["gateway_reference"],
        client_secret=row["client_secret"],
        card_last4=row["card_last4"],
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
    )


class PaymentAttemptRepoSQL(PaymentAttemptRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, attempt: PaymentAttempt) -> PaymentAttempt:
        stmt = insert(payment_attempts).values(
            reservation_id=attempt.reservation_id,
            amount=attempt.amount,
            currency=attempt.currency,
            method=attempt.method,
            status=attempt.status.value,
            gateway_reference=attempt.gateway_reference,
            client_secret=attempt.client_secret,
            card_last4=attempt.card_last4,
            created_at=to_db(attempt.created_at),
            updated_at=to_db(attempt.updated_at),
        )
        result = await self._session.execute(stmt)
        attempt.id = result.inserted_primary_key[0]
        return attempt

    async def _fetch(self, attempt_id: int) -> PaymentAttempt:
        stmt = select(payment_attempts).where(payment_attempts.c.id == attempt_id)
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        if not row:
            raise ValueError(f"Payment attempt not found: {attempt_id}")
        return _to_entity(row)

    async def get_by_reservation(self, reservation_id: str) -> PaymentAttempt | None:
        stmt = (
            select(payment_attempts)
            .where(payment_attempts.c.reservation_id == reservation_id)
            .order_by(payment_attempts.c.id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return _to_entity(row) if row else None

    async def list_by_reservation(self, reservation_id: str) -> Sequence[PaymentAttempt]:
        stmt = (
            select(payment_attempts)
            .where(payment_attempts.c.reservation_id == reservation_id)
            .order_by(payment_attempts.c.id)
        )
        result = await self._session.execute(stmt)
        return [_to_entity(row) for row in result.mappings().all()]

    async def find_by_gateway_reference(self, gateway_reference: str) -> PaymentAttempt | None:
        stmt = select(payment_attempts).where(
            payment_attempts.c.gateway_reference == gateway_reference
        )
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return _to_entity(row) if row else None

    async def attach_intent(
        self,
        attempt_id: int,
        gateway_reference: str,
        client_secret: str | None,
    ) -> PaymentAttempt:
        stmt = (
            update(payment_attempts)
            .where(payment_attempts.c.id == attempt_id)
            .values(gateway_reference=gateway_reference, client_secret=client_secret)
        )
        await self._session.execute(stmt)
        return await self._fetch(attempt_id)

    async def mark_succeeded(self, attempt_id: int) -> PaymentAttempt:
        stmt = (
            update(payment_attempts)
            .where(payment_attempts.c.id == attempt_id)
            .values(status=PaymentAttemptStatus.SUCCEEDED.value)
        )
        await self._session.execute(stmt)
        return await self._fetch(attempt_id)

    async def mark_failed(self, attempt_id: int) -> PaymentAttempt:
        stmt = (
            update(payment_attempts)
            .where(
                payment_attempts.c.id == attempt_id,
                payment_attempts.c.status != PaymentAttemptStatus.SUCCEEDED.value,
            )
            .values(status=PaymentAttemptStatus.FAILED.value)
        )
        await self._session.execute(stmt)
        return await self._fetch(attempt_id)
