"""Entities Resource and Owner, read from the directory."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from reservation_engine.domain.constants import MINIMUM_CHARGE


@dataclass
class Resource:
    """
    A bookable, priced unit of capacity.

    `availability` is a cache hint written by settlement. Booking decisions
    never read it; they go through the availability oracle.
    """

    id: str
    price: Decimal | None = None
    owner_id: str | None = None
    availability: bool = True
    last_booked_at: datetime | None = None

    def charge_amount(self, minimum: Decimal = MINIMUM_CHARGE) -> Decimal:
        """Amount charged for one booking; unset or zero prices fall back to the minimum."""
        if not self.price:
            return minimum
        return self.price


@dataclass
class Owner:
    id: str
    payout_destination_id: str | None = None
    payout_destination_status: str | None = None
    email: str | None = None

    @property
    def has_payout_destination(self) -> bool:
        return bool(self.payout_destination_id)
