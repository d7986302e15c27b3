"""In-memory implementations for tests and local runs."""

from reservation_engine.infrastructure.in_memory.idempotency_repo import InMemoryIdempotencyRepo
from reservation_engine.infrastructure.in_memory.payment_attempt_repo import InMemoryPaymentAttemptRepo
from reservation_engine.infrastructure.in_memory.payment_event_queue import InMemoryPaymentEventQueue
from reservation_engine.infrastructure.in_memory.payment_gateway import StubPaymentGateway
from reservation_engine.infrastructure.in_memory.payout_gateway import StubPayoutGateway
from reservation_engine.infrastructure.in_memory.payout_repo import InMemoryPayoutRepo
from reservation_engine.infrastructure.in_memory.reservation_repo import InMemoryReservationRepo
from reservation_engine.infrastructure.in_memory.resource_directory import InMemoryResourceDirectory
from reservation_engine.infrastructure.in_memory.resource_lock import ResourceLockRegistry
from reservation_engine.infrastructure.in_memory.transaction_manager import NoopTransactionManager

__all__ = [
    # Repositories
    "InMemoryIdempotencyRepo",
    "InMemoryPaymentAttemptRepo",
    "InMemoryPaymentEventQueue",
    "InMemoryPayoutRepo",
    "InMemoryReservationRepo",
    "InMemoryResourceDirectory",
    # Gateways
    "StubPaymentGateway",
    "StubPayoutGateway",
    # Infrastructure
    "NoopTransactionManager",
    "ResourceLockRegistry",
]
