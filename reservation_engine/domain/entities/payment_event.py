"""Entity PaymentEvent - an asynchronous confirmation or failure from the gateway."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from reservation_engine.domain.value_objects.money import Money


class PaymentEventKind(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


GATEWAY_EVENT_TYPES = {
    "payment_intent.succeeded": PaymentEventKind.SUCCEEDED,
    "payment_intent.payment_failed": PaymentEventKind.FAILED,
    "succeeded": PaymentEventKind.SUCCEEDED,
    "failed": PaymentEventKind.FAILED,
}


class QueuedEventStatus(str, Enum):
    """States of an event in the settlement inbox."""

    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    RETRY = "RETRY"
    DONE = "DONE"
    DEAD_LETTER = "DEAD_LETTER"


@dataclass(frozen=True)
class PaymentEvent:
    """
    Normalized gateway callback.

    event_id identifies the delivery (redeliveries share it); payment_ref
    identifies the payment intent and keys settlement idempotency.
    """

    event_id: str
    kind: PaymentEventKind
    payment_ref: str
    amount: Money
    resource_id: str | None = None
    owner_id: str | None = None
    reservation_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "kind": self.kind.value,
            "payment_ref": self.payment_ref,
            "amount": str(self.amount.amount),
            "currency": self.amount.currency_code,
            "resource_id": self.resource_id,
            "owner_id": self.owner_id,
            "reservation_id": self.reservation_id,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PaymentEvent":
        return cls(
            event_id=payload["event_id"],
            kind=PaymentEventKind(payload["kind"]),
            payment_ref=payload["payment_ref"],
            amount=Money(amount=payload["amount"], currency_code=payload["currency"]),
            resource_id=payload.get("resource_id"),
            owner_id=payload.get("owner_id"),
            reservation_id=payload.get("reservation_id"),
        )


@dataclass
class QueuedPaymentEvent:
    """A PaymentEvent persisted in the settlement inbox with its retry state."""

    id: int
    event: PaymentEvent
    status: QueuedEventStatus = QueuedEventStatus.NEW
    attempts: int = 0
    next_attempt_at: datetime | None = None
    locked_by: str | None = None
    lock_expires_at: datetime | None = None
    error_code: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, QueuedEventStatus):
            self.status = QueuedEventStatus(self.status)
