from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from reservation_engine.application.interfaces.resource_directory import ResourceDirectory
from reservation_engine.domain.entities.resource import Owner, Resource


class InMemoryResourceDirectory(ResourceDirectory):
    def __init__(self) -> None:
        self.resources: dict[str, Resource] = {}
        self.owners: dict[str, Owner] = {}

    def add_owner(
        self,
        owner_id: str,
        payout_destination_id: str | None = None,
        email: str | None = None,
    ) -> Owner:
        owner = Owner(
            id=owner_id,
            payout_destination_id=payout_destination_id,
            payout_destination_status="active" if payout_destination_id else None,
            email=email,
        )
        self.owners[owner_id] = owner
        return replace(owner)

    def add_resource(
        self,
        resource_id: str,
        price: Decimal | str | None = None,
        owner_id: str | None = None,
    ) -> Resource:
        resource = Resource(
            id=resource_id,
            price=Decimal(str(price)) if price is not None else None,
            owner_id=owner_id,
        )
        self.resources[resource_id] = resource
        return replace(resource)

    async def get_resource(self, resource_id: str) -> Resource | None:
        resource = self.resources.get(resource_id)
        return replace(resource) if resource else None

    async def get_owner(self, owner_id: str) -> Owner | None:
        owner = self.owners.get(owner_id)
        return replace(owner) if owner else None

    async def set_availability(
        self,
        resource_id: str,
        available: bool,
        last_booked_at: datetime | None = None,
    ) -> None:
        resource = self.resources.get(resource_id)
        if resource is None:
            return
        resource.availability = available
        if last_booked_at is not None:
            resource.last_booked_at = last_booked_at

    async def lock_for_update(self, resource_id: str) -> None:
        # Serialization comes from the process-local ResourceLockRegistry
        return None

    async def link_payout_destination(
        self,
        owner_id: str,
        destination_id: str,
        status: str,
        email: str | None = None,
    ) -> Owner:
        owner = self.owners.setdefault(owner_id, Owner(id=owner_id))
        owner.payout_destination_id = destination_id
        owner.payout_destination_status = status
        if email:
            owner.email = email
        return replace(owner)
