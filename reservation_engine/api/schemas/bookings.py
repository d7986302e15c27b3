from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, condecimal, constr

from reservation_engine.domain.entities.payment_attempt import PaymentAttempt
from reservation_engine.domain.entities.reservation import Reservation

Amount = condecimal(max_digits=12, decimal_places=2)
Identifier = constr(strip_whitespace=True, min_length=1, max_length=128)


class CreateBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    resource_id: Identifier
    requester_id: Identifier
    window_start: datetime
    # Validated by the coordinator so that window errors are reported first
    payment_details: dict[str, Any] = Field(default_factory=dict)


class CancelBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    requester_id: Identifier


class ReservationOut(BaseModel):
    id: str
    resource_id: str
    requester_id: str
    window_start: datetime
    window_end: datetime
    status: str
    created_at: datetime | None = None
    expires_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    @classmethod
    def from_entity(cls, reservation: Reservation) -> "ReservationOut":
        return cls(
            id=reservation.id,
            resource_id=reservation.resource_id,
            requester_id=reservation.requester_id,
            window_start=reservation.window_start,
            window_end=reservation.window_end,
            status=reservation.status.value,
            created_at=reservation.created_at,
            expires_at=reservation.expires_at,
            cancelled_at=reservation.cancelled_at,
            cancellation_reason=reservation.cancellation_reason,
        )


class PaymentAttemptOut(BaseModel):
    id: int | None = None
    status: str
    method: str
    amount: Amount
    currency: str
    gateway_reference: str | None = None
    client_secret: str | None = None
    card_last4: str | None = None

    @classmethod
    def from_entity(cls, attempt: PaymentAttempt) -> "PaymentAttemptOut":
        return cls(
            id=attempt.id,
            status=attempt.status.value,
            method=attempt.method,
            amount=attempt.amount,
            currency=attempt.currency,
            gateway_reference=attempt.gateway_reference,
            client_secret=attempt.client_secret,
            card_last4=attempt.card_last4,
        )


class BookingResponse(BaseModel):
    reservation: ReservationOut
    payment: PaymentAttemptOut | None = None


class AvailabilityResponse(BaseModel):
    resource_id: str
    at: datetime
    available: bool
