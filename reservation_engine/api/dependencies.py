from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.api.deps import AsyncSessionLocal
from reservation_engine.application.interfaces.clock import SystemClock
from reservation_engine.application.interfaces.id_generator import RealIdGenerator
from reservation_engine.application.use_cases.cancel_booking import CancelBookingUseCase
from reservation_engine.application.use_cases.check_availability import CheckAvailabilityUseCase
from reservation_engine.application.use_cases.create_booking import CreateBookingUseCase
from reservation_engine.application.use_cases.expire_pending_reservations import (
    ExpirePendingReservationsUseCase,
)
from reservation_engine.application.use_cases.get_bookings import GetBookingsUseCase
from reservation_engine.application.use_cases.link_payout_destination import LinkPayoutDestinationUseCase
from reservation_engine.application.use_cases.list_payouts import ListPayoutsUseCase
from reservation_engine.application.use_cases.process_payment_events import ProcessPaymentEventsUseCase
from reservation_engine.application.use_cases.receive_payment_event import ReceivePaymentEventUseCase
from reservation_engine.application.use_cases.settlement_engine import SettlementEngine
from reservation_engine.config import Settings, get_settings
from reservation_engine.infrastructure.db.repositories.idempotency_repo_sql import IdempotencyRepoSQL
from reservation_engine.infrastructure.db.repositories.payment_attempt_repo_sql import PaymentAttemptRepoSQL
from reservation_engine.infrastructure.db.repositories.payment_event_queue_sql import PaymentEventQueueSQL
from reservation_engine.infrastructure.db.repositories.payout_repo_sql import PayoutRepoSQL
from reservation_engine.infrastructure.db.repositories.reservation_repo_sql import ReservationRepoSQL
from reservation_engine.infrastructure.db.repositories.resource_directory_sql import ResourceDirectorySQL
from reservation_engine.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from reservation_engine.infrastructure.gateways.stripe_payment_gateway import StripePaymentGateway
from reservation_engine.infrastructure.gateways.stripe_payout_gateway import StripePayoutGateway
from reservation_engine.infrastructure.in_memory import (
    InMemoryIdempotencyRepo,
    InMemoryPaymentAttemptRepo,
    InMemoryPaymentEventQueue,
    InMemoryPayoutRepo,
    InMemoryReservationRepo,
    InMemoryResourceDirectory,
    NoopTransactionManager,
    ResourceLockRegistry,
    StubPaymentGateway,
    StubPayoutGateway,
)

# Process-wide: every request for the same resource must see the same lock
_resource_locks = ResourceLockRegistry()


async def get_session(settings: Settings = Depends(get_settings)) -> AsyncSession | None:
    if settings.use_in_memory:
        yield None
        return
    async with AsyncSessionLocal() as session:
        yield session


@lru_cache(maxsize=1)
def _in_memory_bundle() -> dict[str, Any]:
    return {
        "reservation_repo": InMemoryReservationRepo(),
        "payment_repo": InMemoryPaymentAttemptRepo(),
        "payout_repo": InMemoryPayoutRepo(),
        "idempotency_repo": InMemoryIdempotencyRepo(),
        "resource_directory": InMemoryResourceDirectory(),
        "event_queue": InMemoryPaymentEventQueue(),
        "payment_gateway": StubPaymentGateway(),
        "payout_gateway": StubPayoutGateway(),
        "tx_manager": NoopTransactionManager(),
        "resource_lock": ResourceLockRegistry(),
        "clock": SystemClock(),
        "id_generator": RealIdGenerator(),
    }


def _sql_bundle(session: AsyncSession, settings: Settings) -> dict[str, Any]:
    return {
        "reservation_repo": ReservationRepoSQL(session),
        "payment_repo": PaymentAttemptRepoSQL(session),
        "payout_repo": PayoutRepoSQL(session),
        "idempotency_repo": IdempotencyRepoSQL(session),
        "resource_directory": ResourceDirectorySQL(session),
        "event_queue": PaymentEventQueueSQL(session),
        "payment_gateway": StripePaymentGateway(api_key=settings.stripe_api_key),
        "payout_gateway": StripePayoutGateway(api_key=settings.stripe_api_key),
        "tx_manager": SQLAlchemyTransactionManager(session),
        "resource_lock": _resource_locks,
        "clock": SystemClock(),
        "id_generator": RealIdGenerator(),
    }


def build_use_cases(bundle: dict[str, Any], settings: Settings) -> dict[str, Any]:
    settlement_engine = SettlementEngine(
        reservation_repo=bundle["reservation_repo"],
        payment_repo=bundle["payment_repo"],
        payout_repo=bundle["payout_repo"],
        resource_directory=bundle["resource_directory"],
        payout_gateway=bundle["payout_gateway"],
        idempotency_repo=bundle["idempotency_repo"],
        transaction_manager=bundle["tx_manager"],
        clock=bundle["clock"],
        platform_fee_rate=settings.platform_fee_rate,
    )
    return {
        "check_availability": CheckAvailabilityUseCase(
            reservation_repo=bundle["reservation_repo"],
            clock=bundle["clock"],
        ),
        "create_booking": CreateBookingUseCase(
            reservation_repo=bundle["reservation_repo"],
            payment_repo=bundle["payment_repo"],
            idempotency_repo=bundle["idempotency_repo"],
            resource_directory=bundle["resource_directory"],
            payment_gateway=bundle["payment_gateway"],
            transaction_manager=bundle["tx_manager"],
            resource_lock=bundle["resource_lock"],
            clock=bundle["clock"],
            id_generator=bundle["id_generator"],
            booking_window_hours=settings.booking_window_hours,
            pending_payment_ttl_minutes=settings.pending_payment_ttl_minutes,
            minimum_charge=settings.minimum_charge,
            currency=settings.currency,
            capture_timeout_seconds=settings.payment_capture_timeout_seconds,
        ),
        "cancel_booking": CancelBookingUseCase(
            reservation_repo=bundle["reservation_repo"],
            transaction_manager=bundle["tx_manager"],
            clock=bundle["clock"],
        ),
        "get_bookings": GetBookingsUseCase(
            reservation_repo=bundle["reservation_repo"],
            payment_repo=bundle["payment_repo"],
        ),
        "receive_payment_event": ReceivePaymentEventUseCase(
            payment_gateway=bundle["payment_gateway"],
            event_queue=bundle["event_queue"],
            transaction_manager=bundle["tx_manager"],
            clock=bundle["clock"],
            webhook_secret=settings.stripe_webhook_secret,
        ),
        "settlement_engine": settlement_engine,
        "process_payment_events": ProcessPaymentEventsUseCase(
            event_queue=bundle["event_queue"],
            settlement_engine=settlement_engine,
            transaction_manager=bundle["tx_manager"],
            clock=bundle["clock"],
            max_attempts=settings.settlement_max_attempts,
            base_backoff_seconds=settings.settlement_base_backoff_seconds,
        ),
        "expire_pending": ExpirePendingReservationsUseCase(
            reservation_repo=bundle["reservation_repo"],
            transaction_manager=bundle["tx_manager"],
            clock=bundle["clock"],
        ),
        "list_payouts": ListPayoutsUseCase(payout_repo=bundle["payout_repo"]),
        "link_payout_destination": LinkPayoutDestinationUseCase(
            resource_directory=bundle["resource_directory"],
            payout_gateway=bundle["payout_gateway"],
            transaction_manager=bundle["tx_manager"],
        ),
    }


def get_use_cases(
    settings: Settings = Depends(get_settings),
    session: AsyncSession | None = Depends(get_session),
) -> dict[str, Any]:
    if settings.use_in_memory:
        return build_use_cases(_in_memory_bundle(), settings)
    if not session:
        raise RuntimeError("DB session not available")
    return build_use_cases(_sql_bundle(session, settings), settings)


@asynccontextmanager
async def use_case_scope(settings: Settings | None = None) -> AsyncIterator[dict[str, Any]]:
    """Use cases outside a request (background tasks, the worker loop), with their own session."""
    settings = settings or get_settings()
    if settings.use_in_memory:
        yield build_use_cases(_in_memory_bundle(), settings)
        return
    async with AsyncSessionLocal() as session:
        yield build_use_cases(_sql_bundle(session, settings), settings)
