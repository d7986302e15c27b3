"""Domain entities."""

from reservation_engine.domain.entities.payment_attempt import PaymentAttempt, PaymentAttemptStatus
from reservation_engine.domain.entities.payment_event import (
    PaymentEvent,
    PaymentEventKind,
    QueuedEventStatus,
    QueuedPaymentEvent,
)
from reservation_engine.domain.entities.payment_method import (
    BankTransferPayment,
    CardPayment,
    CashPayment,
    MobileMoneyPayment,
    PaymentMethod,
    parse_payment_method,
)
from reservation_engine.domain.entities.payout import Payout, PayoutStatus
from reservation_engine.domain.entities.reservation import (
    BLOCKING_STATUSES,
    Reservation,
    ReservationStatus,
)
from reservation_engine.domain.entities.resource import Owner, Resource

__all__ = [
    "BLOCKING_STATUSES",
    "BankTransferPayment",
    "CardPayment",
    "CashPayment",
    "MobileMoneyPayment",
    "Owner",
    "PaymentAttempt",
    "PaymentAttemptStatus",
    "PaymentEvent",
    "PaymentEventKind",
    "PaymentMethod",
    "Payout",
    "PayoutStatus",
    "QueuedEventStatus",
    "QueuedPaymentEvent",
    "Reservation",
    "ReservationStatus",
    "Resource",
    "parse_payment_method",
]
