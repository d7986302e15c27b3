from datetime import datetime

from reservation_engine.domain.entities.resource import Owner, Resource


class ResourceDirectory:
    """Owner/Resource directory. Resources and owners are created outside this service."""

    async def get_resource(self, resource_id: str) -> Resource | None:
        raise NotImplementedError

    async def get_owner(self, owner_id: str) -> Owner | None:
        raise NotImplementedError

    async def set_availability(
        self,
        resource_id: str,
        available: bool,
        last_booked_at: datetime | None = None,
    ) -> None:
        """Overwrite the cached availability flag."""
        raise NotImplementedError

    async def lock_for_update(self, resource_id: str) -> None:
        """Row-level lock on the resource until the current transaction ends."""
        raise NotImplementedError

    async def link_payout_destination(
        self,
        owner_id: str,
        destination_id: str,
        status: str,
        email: str | None = None,
    ) -> Owner:
        raise NotImplementedError
