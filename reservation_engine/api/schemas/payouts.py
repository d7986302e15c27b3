from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, constr

from reservation_engine.domain.entities.payout import Payout


class PayoutOut(BaseModel):
    id: int | None = None
    owner_id: str
    resource_id: str | None = None
    payment_ref: str
    total_amount: Decimal
    platform_fee: Decimal
    owner_amount: Decimal
    currency: str
    status: str
    created_at: datetime | None = None
    completed_at: datetime | None = None
    transfer_reference: str | None = None
    failure_reason: str | None = None

    @classmethod
    def from_entity(cls, payout: Payout) -> "PayoutOut":
        return cls(
            id=payout.id,
            owner_id=payout.owner_id,
            resource_id=payout.resource_id,
            payment_ref=payout.payment_ref,
            total_amount=payout.total_amount,
            platform_fee=payout.platform_fee,
            owner_amount=payout.owner_amount,
            currency=payout.currency,
            status=payout.status.value,
            created_at=payout.created_at,
            completed_at=payout.completed_at,
            transfer_reference=payout.transfer_reference,
            failure_reason=payout.failure_reason,
        )


class LinkPayoutDestinationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    country: constr(strip_whitespace=True, min_length=2, max_length=2) = "US"


class PayoutDestinationResponse(BaseModel):
    owner_id: str
    destination_id: str
    status: str
