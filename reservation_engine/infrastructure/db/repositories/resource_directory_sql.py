from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.application.interfaces.resource_directory import ResourceDirectory
from reservation_engine.domain.entities.resource import Owner, Resource
from reservation_engine.infrastructure.db.tables import owners, resources
from reservation_engine.infrastructure.db.timeutil import from_db, to_db


def _to_resource(row: Mapping[str, Any]) -> Resource:
    return Resource(
        id=row["id"],
        price=row["price"],
        owner_id=row["owner_id"],
        availability=bool(row["availability"]),
        last_booked_at=from_db(row["last_booked_at"]),
    )


def _to_owner(row: Mapping[str, Any]) -> Owner:
    return Owner(
        id=row["id"],
        payout_destination_id=row["payout_destination_id"],
        payout_destination_status=row["payout_destination_status"],
        email=row["email"],
    )


class ResourceDirectorySQL(ResourceDirectory):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_resource(self, resource_id: str) -> Resource | None:
        result = await self._session.execute(select(resources).where(resources.c.id == resource_id))
        row = result.mappings().first()
        return _to_resource(row) if row else None

    async def get_owner(self, owner_id: str) -> Owner | None:
        result = await self._session.execute(select(owners).where(owners.c.id == owner_id))
        row = result.mappings().first()
        return _to_owner(row) if row else None

    async def set_availability(
        self,
        resource_id: str,
        available: bool,
        last_booked_at: datetime | None = None,
    ) -> None:
        values: dict[str, Any] = {"availability": available}
        if last_booked_at is not None:
            values["last_booked_at"] = to_db(last_booked_at)
        await self._session.execute(
            update(resources).where(resources.c.id == resource_id).values(**values)
        )

    async def lock_for_update(self, resource_id: str) -> None:
        # SELECT ... FOR UPDATE; SQLite has no row locks and ignores the clause
        stmt = select(resources.c.id).where(resources.c.id == resource_id).with_for_update()
        await self._session.execute(stmt)

    async def link_payout_destination(
        self,
        owner_id: str,
        destination_id: str,
        status: str,
        email: str | None = None,
    ) -> Owner:
        values: dict[str, Any] = {
            "payout_destination_id": destination_id,
            "payout_destination_status": status,
        }
        if email:
            values["email"] = email
        result = await self._session.execute(
            update(owners).where(owners.c.id == owner_id).values(**values)
        )
        if result.rowcount == 0:
            await self._session.execute(insert(owners).values(id=owner_id, **values))
        return await self.get_owner(owner_id)
