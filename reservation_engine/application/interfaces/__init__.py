"""Application ports."""

from reservation_engine.application.interfaces.clock import Clock, FakeClock, SystemClock
from reservation_engine.application.interfaces.id_generator import (
    FakeIdGenerator,
    IdGenerator,
    RealIdGenerator,
)
from reservation_engine.application.interfaces.idempotency_repo import (
    IdempotencyRecord,
    IdempotencyRepo,
)
from reservation_engine.application.interfaces.payment_attempt_repo import PaymentAttemptRepo
from reservation_engine.application.interfaces.payment_event_queue import PaymentEventQueue
from reservation_engine.application.interfaces.payment_gateway import PaymentGateway, PaymentIntent
from reservation_engine.application.interfaces.payout_gateway import PayoutGateway, TransferResult
from reservation_engine.application.interfaces.payout_repo import PayoutRepo
from reservation_engine.application.interfaces.reservation_repo import ReservationRepo
from reservation_engine.application.interfaces.resource_directory import ResourceDirectory
from reservation_engine.application.interfaces.resource_lock import ResourceLock
from reservation_engine.application.interfaces.transaction_manager import TransactionManager

__all__ = [
    # Repositories
    "IdempotencyRecord",
    "IdempotencyRepo",
    "PaymentAttemptRepo",
    "PaymentEventQueue",
    "PayoutRepo",
    "ReservationRepo",
    "ResourceDirectory",
    # Gateways
    "PaymentGateway",
    "PaymentIntent",
    "PayoutGateway",
    "TransferResult",
    # Infrastructure
    "ResourceLock",
    "TransactionManager",
    # Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
    "IdGenerator",
    "RealIdGenerator",
    "FakeIdGenerator",
]
