"""Entity PaymentAttempt - one capture request against the payment gateway."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from reservation_engine.domain.value_objects.money import Money


class PaymentAttemptStatus(str, Enum):
    INITIATED = "initiated"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class PaymentAttempt:
    """
    Capture request for a reservation.

    Created by the booking coordinator; only settlement moves it out of INITIATED.
    """

    id: int | None
    reservation_id: str
    amount: Decimal
    currency: str
    method: str
    status: PaymentAttemptStatus = PaymentAttemptStatus.INITIATED
    gateway_reference: str | None = None
    client_secret: str | None = None
    card_last4: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, PaymentAttemptStatus):
            self.status = PaymentAttemptStatus(self.status)

    @property
    def money(self) -> Money:
        return Money(amount=self.amount, currency_code=self.currency)

    @property
    def is_final(self) -> bool:
        return self.status != PaymentAttemptStatus.INITIATED

    @property
    def needs_capture(self) -> bool:
        """Initiated through the gateway but never got an intent back."""
        return (
            self.status == PaymentAttemptStatus.INITIATED
            and self.method != "cash"
            and self.gateway_reference is None
        )
