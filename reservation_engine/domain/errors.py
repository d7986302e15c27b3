"""Domain exceptions for the reservation and settlement engine."""

from typing import Any


class DomainError(Exception):
    """Base class for every domain error."""

    http_status: int = 400

    def __init__(self, message: str, code: str | None = None, details: dict[str, Any] | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


# === Booking validation errors ===


class InvalidWindowError(DomainError):
    """The requested window does not start in the future."""

    http_status = 422

    def __init__(self, window_start: str, now: str):
        super().__init__(
            message=f"Booking window must start in the future: {window_start} <= {now}",
            code="INVALID_WINDOW",
            details={"window_start": window_start, "now": now},
        )


class InvalidPaymentMethodError(DomainError):
    """Payment details do not match any recognized payment method shape."""

    http_status = 422

    def __init__(self, reason: str, field: str | None = None):
        super().__init__(
            message=f"Invalid payment method: {reason}",
            code="INVALID_PAYMENT_METHOD",
            details={"field": field} if field else {},
        )
        self.field = field


# === Conflict errors ===


class ResourceOccupiedError(DomainError):
    """The resource already holds an overlapping reservation."""

    http_status = 409

    def __init__(self, resource_id: str, window_start: str):
        super().__init__(
            message=f"Resource {resource_id} is occupied for the window starting {window_start}",
            code="RESOURCE_OCCUPIED",
            details={"resource_id": resource_id, "window_start": window_start},
        )
        self.resource_id = resource_id


class IdempotencyConflictError(DomainError):
    """Same idempotency key reused with a different payload."""

    http_status = 409

    def __init__(self, idem_key: str, scope: str):
        super().__init__(
            message=f"Idempotency conflict: key '{idem_key}' in scope '{scope}' "
            f"already exists with a different request hash",
            code="IDEMPOTENCY_CONFLICT",
        )
        self.idem_key = idem_key
        self.scope = scope


# === Lookup errors ===


class ResourceNotFoundError(DomainError):
    http_status = 404

    def __init__(self, resource_id: str):
        super().__init__(
            message=f"Resource not found: {resource_id}",
            code="RESOURCE_NOT_FOUND",
        )
        self.resource_id = resource_id


class ReservationNotFoundError(DomainError):
    http_status = 404

    def __init__(self, reservation_id: str):
        super().__init__(
            message=f"Reservation not found: {reservation_id}",
            code="RESERVATION_NOT_FOUND",
        )
        self.reservation_id = reservation_id


class OwnerNotFoundError(DomainError):
    """The owner identifier is structurally invalid."""

    http_status = 404

    def __init__(self, owner_id: str):
        super().__init__(
            message=f"Owner not found: {owner_id!r}",
            code="NOT_FOUND",
        )
        self.owner_id = owner_id


# === Reservation lifecycle errors ===


class NotReservationOwnerError(DomainError):
    http_status = 403

    def __init__(self, reservation_id: str, requester_id: str):
        super().__init__(
            message=f"Reservation {reservation_id} does not belong to {requester_id}",
            code="NOT_RESERVATION_OWNER",
        )
        self.reservation_id = reservation_id


class InvalidReservationStatusError(DomainError):
    """The reservation status does not allow the operation."""

    http_status = 409

    def __init__(self, current_status: str, expected_status: str | list[str], operation: str):
        expected = expected_status if isinstance(expected_status, str) else ", ".join(expected_status)
        super().__init__(
            message=f"Cannot {operation}: current status '{current_status}', expected '{expected}'",
            code="INVALID_RESERVATION_STATUS",
        )
        self.current_status = current_status
        self.expected_status = expected_status
        self.operation = operation


class ReservationWindowEndedError(DomainError):
    http_status = 409

    def __init__(self, reservation_id: str):
        super().__init__(
            message=f"Reservation {reservation_id} window has already ended",
            code="RESERVATION_WINDOW_ENDED",
        )
        self.reservation_id = reservation_id


# === Payment errors ===


class PaymentPendingError(DomainError):
    """The gateway did not answer in time; the booking is not paid yet."""

    http_status = 202

    def __init__(self, reservation_id: str, timeout_seconds: float):
        super().__init__(
            message=f"Payment capture for reservation {reservation_id} timed out after "
            f"{timeout_seconds}s; retry with the same Idempotency-Key",
            code="PAYMENT_PENDING",
            details={"reservation_id": reservation_id},
        )
        self.reservation_id = reservation_id


class PaymentCaptureFailedError(DomainError):
    http_status = 402

    def __init__(self, reservation_id: str, reason: str):
        super().__init__(
            message=f"Payment capture failed for reservation {reservation_id}: {reason}",
            code="PAYMENT_CAPTURE_FAILED",
            details={"reservation_id": reservation_id},
        )
        self.reservation_id = reservation_id


class InvalidWebhookSignatureError(DomainError):
    http_status = 400

    def __init__(self, reason: str):
        super().__init__(message=reason, code="INVALID_SIGNATURE")


# === Settlement errors ===


class InvalidPayoutTransitionError(DomainError):
    http_status = 409

    def __init__(self, payout_id: int | None, current: str, target: str):
        super().__init__(
            message=f"Invalid payout transition for {payout_id}: {current} -> {target}",
            code="INVALID_PAYOUT_TRANSITION",
        )
        self.current = current
        self.target = target


class NoPayoutDestinationError(DomainError):
    """The owner has not linked a payout destination."""

    def __init__(self, owner_id: str):
        super().__init__(
            message=f"Owner {owner_id} has no linked payout destination",
            code="NO_DESTINATION",
        )
        self.owner_id = owner_id


class SettlementError(DomainError):
    """Settlement of a confirmed payment could not be completed."""

    http_status = 500

    def __init__(self, payment_ref: str, reason: str):
        super().__init__(
            message=f"Settlement failed for payment {payment_ref}: {reason}",
            code="SETTLEMENT_FAILED",
        )
        self.payment_ref = payment_ref
