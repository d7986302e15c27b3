import asyncio
import hashlib
import json
import logging
from datetime import timedelta
from decimal import Decimal

from reservation_engine.api.schemas.bookings import (
    BookingResponse,
    CreateBookingRequest,
    PaymentAttemptOut,
    ReservationOut,
)
from reservation_engine.application.interfaces.clock import Clock
from reservation_engine.application.interfaces.id_generator import IdGenerator
from reservation_engine.application.interfaces.idempotency_repo import IdempotencyRecord, IdempotencyRepo
from reservation_engine.application.interfaces.payment_attempt_repo import PaymentAttemptRepo
from reservation_engine.application.interfaces.payment_gateway import PaymentGateway
from reservation_engine.application.interfaces.reservation_repo import ReservationRepo
from reservation_engine.application.interfaces.resource_directory import ResourceDirectory
from reservation_engine.application.interfaces.resource_lock import ResourceLock
from reservation_engine.application.interfaces.transaction_manager import TransactionManager
from reservation_engine.application.use_cases.check_availability import CheckAvailabilityUseCase
from reservation_engine.domain.constants import (
    BOOKING_WINDOW_HOURS,
    CANCELLATION_REASON_PAYMENT_EXPIRED,
    DEFAULT_CURRENCY,
    MINIMUM_CHARGE,
    PENDING_PAYMENT_TTL_MINUTES,
)
from reservation_engine.domain.entities.payment_attempt import PaymentAttempt
from reservation_engine.domain.entities.payment_method import CardPayment, CashPayment, parse_payment_method
from reservation_engine.domain.entities.reservation import Reservation, ReservationStatus
from reservation_engine.domain.entities.resource import Resource
from reservation_engine.domain.errors import (
    IdempotencyConflictError,
    InvalidWindowError,
    PaymentCaptureFailedError,
    PaymentPendingError,
    ResourceNotFoundError,
    ResourceOccupiedError,
)
from reservation_engine.domain.value_objects.time_window import TimeWindow, as_utc

logger = logging.getLogger(__name__)

IDEMPOTENCY_SCOPE = "create_booking"


def _hash_request(payload: dict) -> str:
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(raw.encode()).hexdigest()


class CreateBookingUseCase:
    """
    Booking coordinator.

    Validation runs in a fixed order (window, payment method, availability) and
    stops at the first failure. The availability check and the reservation
    insert happen under the resource's lock and inside one transaction, so two
    concurrent requests for the same window cannot both succeed. The gateway
    call happens after that transaction commits and is bounded by a timeout.
    """

    def __init__(
        self,
        reservation_repo: ReservationRepo,
        payment_repo: PaymentAttemptRepo,
        idempotency_repo: IdempotencyRepo,
        resource_directory: ResourceDirectory,
        payment_gateway: PaymentGateway,
        transaction_manager: TransactionManager,
        resource_lock: ResourceLock,
        clock: Clock,
        id_generator: IdGenerator,
        booking_window_hours: int = BOOKING_WINDOW_HOURS,
        pending_payment_ttl_minutes: int = PENDING_PAYMENT_TTL_MINUTES,
        minimum_charge: Decimal = MINIMUM_CHARGE,
        currency: str = DEFAULT_CURRENCY,
        capture_timeout_seconds: float = 10.0,
    ) -> None:
        self._reservation_repo = reservation_repo
        self._payment_repo = payment_repo
        self._idempotency_repo = idempotency_repo
        self._resource_directory = resource_directory
        self._payment_gateway = payment_gateway
        self._transaction_manager = transaction_manager
        self._resource_lock = resource_lock
        self._clock = clock
        self._id_generator = id_generator
        self._availability = CheckAvailabilityUseCase(reservation_repo, clock)
        self._booking_window_hours = booking_window_hours
        self._pending_ttl = timedelta(minutes=pending_payment_ttl_minutes)
        self._minimum_charge = minimum_charge
        self._currency = currency
        self._capture_timeout = capture_timeout_seconds

    async def execute(self, request: CreateBookingRequest, idem_key: str) -> BookingResponse:
        now = self._clock.now()
        window_start = as_utc(request.window_start)
        if window_start <= now:
            raise InvalidWindowError(window_start.isoformat(), now.isoformat())
        method = parse_payment_method(request.payment_details)

        request_hash = _hash_request(request.model_dump(mode="json"))
        replayed = False

        async with self._resource_lock.hold(request.resource_id):
            async with self._transaction_manager.start():
                existing = await self._idempotency_repo.get(IDEMPOTENCY_SCOPE, idem_key)
                if existing:
                    if existing.request_hash != request_hash:
                        raise IdempotencyConflictError(idem_key, IDEMPOTENCY_SCOPE)
                    replayed = True
                    reservation = await self._reservation_repo.get(existing.reference_reservation_id)
                    attempt = await self._payment_repo.get_by_reservation(reservation.id)
                    resource = await self._resource_directory.get_resource(reservation.resource_id)
                else:
                    await self._resource_directory.lock_for_update(request.resource_id)
                    resource = await self._resource_directory.get_resource(request.resource_id)
                    if resource is None:
                        raise ResourceNotFoundError(request.resource_id)
                    await self._release_expired_holds(resource.id, now)

                    window = TimeWindow.for_booking(window_start, self._booking_window_hours)
                    if not await self._availability.is_window_free(resource.id, window):
                        raise ResourceOccupiedError(resource.id, window_start.isoformat())

                    reservation, attempt = await self._reserve(
                        request, resource, window, method, now, idem_key
                    )
                    await self._idempotency_repo.save(
                        IdempotencyRecord(
                            scope=IDEMPOTENCY_SCOPE,
                            idem_key=idem_key,
                            request_hash=request_hash,
                            response_json={"reservation_id": reservation.id},
                            http_status=201,
                            reference_reservation_id=reservation.id,
                        )
                    )

        if replayed:
            logger.info(
                "Replaying booking for idempotency key",
                extra={"idem_key": idem_key, "reservation_id": reservation.id},
            )
        else:
            logger.info(
                "Reservation created",
                extra={
                    "reservation_id": reservation.id,
                    "resource_id": reservation.resource_id,
                    "status": reservation.status.value,
                    "payment_method": attempt.method,
                },
            )

        # An expired or cancelled hold is replayed as-is, without charging
        if attempt is not None and attempt.needs_capture and reservation.is_blocking:
            attempt = await self._capture(reservation, attempt, resource, idem_key)

        return BookingResponse(
            reservation=ReservationOut.from_entity(reservation),
            payment=PaymentAttemptOut.from_entity(attempt) if attempt else None,
        )

    async def _release_expired_holds(self, resource_id: str, now) -> None:
        for held in await self._reservation_repo.list_active_for_resource(resource_id):
            if held.is_expired(now) and await self._reservation_repo.cancel(
                held.id, now, CANCELLATION_REASON_PAYMENT_EXPIRED
            ):
                logger.info(
                    "Expired pending reservation released before booking",
                    extra={"reservation_id": held.id, "resource_id": resource_id},
                )

    async def _reserve(self, request, resource: Resource, window, method, now, idem_key):
        is_cash = isinstance(method, CashPayment)
        reservation = Reservation(
            id=self._id_generator.generate_reservation_id(),
            resource_id=resource.id,
            requester_id=request.requester_id,
            window_start=window.start,
            duration=window.duration,
            # Cash is settled in person; nothing to wait for
            status=ReservationStatus.CONFIRMED if is_cash else ReservationStatus.PENDING,
            created_at=now,
            expires_at=None if is_cash else now + self._pending_ttl,
            request_id=idem_key,
        )
        reservation = await self._reservation_repo.create(reservation)

        attempt = await self._payment_repo.create(
            PaymentAttempt(
                id=None,
                reservation_id=reservation.id,
                amount=resource.charge_amount(self._minimum_charge),
                currency=self._currency,
                method=method.method,
                card_last4=method.last4 if isinstance(method, CardPayment) else None,
                created_at=now,
                updated_at=now,
            )
        )
        return reservation, attempt

    async def _capture(
        self,
        reservation: Reservation,
        attempt: PaymentAttempt,
        resource: Resource | None,
        idem_key: str,
    ) -> PaymentAttempt:
        metadata = {
            "reservation_id": reservation.id,
            "resource_id": reservation.resource_id,
            "requester_id": reservation.requester_id,
        }
        if resource is not None and resource.owner_id:
            metadata["owner_id"] = resource.owner_id

        try:
            intent = await asyncio.wait_for(
                self._payment_gateway.create_intent(
                    amount=attempt.amount,
                    currency=attempt.currency,
                    metadata=metadata,
                    idempotency_key=idem_key,
                ),
                timeout=self._capture_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning(
                "Payment capture timed out, reservation left pending",
                extra={"reservation_id": reservation.id, "timeout_seconds": self._capture_timeout},
            )
            raise PaymentPendingError(reservation.id, self._capture_timeout) from exc
        except Exception as exc:
            logger.error(
                "Payment capture failed",
                exc_info=True,
                extra={"reservation_id": reservation.id, "attempt_id": attempt.id},
            )
            raise PaymentCaptureFailedError(reservation.id, str(exc)) from exc

        async with self._transaction_manager.start():
            attempt = await self._payment_repo.attach_intent(
                attempt.id, intent.intent_id, intent.client_secret
            )
        logger.info(
            "Payment intent created",
            extra={"reservation_id": reservation.id, "payment_ref": intent.intent_id},
        )
        return attempt
