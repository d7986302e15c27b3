"""Entity Reservation - exclusive use of a resource for a time window."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from reservation_engine.domain.constants import BOOKING_WINDOW_HOURS
from reservation_engine.domain.errors import InvalidReservationStatusError
from reservation_engine.domain.value_objects.time_window import TimeWindow, as_utc


class ReservationStatus(str, Enum):
    """Reservation states. PENDING means payment is in flight."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


BLOCKING_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


@dataclass
class Reservation:
    """
    A claim on a resource for a fixed-duration window.

    Only PENDING and CONFIRMED reservations hold the resource. CANCELLED is terminal.
    """

    id: str
    resource_id: str
    requester_id: str
    window_start: datetime
    duration: timedelta = timedelta(hours=BOOKING_WINDOW_HOURS)
    status: ReservationStatus = ReservationStatus.PENDING
    created_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    expires_at: datetime | None = None
    request_id: str | None = None

    def __post_init__(self) -> None:
        self.window_start = as_utc(self.window_start)
        if not isinstance(self.status, ReservationStatus):
            self.status = ReservationStatus(self.status)

    # === Properties ===

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(start=self.window_start, end=self.window_start + self.duration)

    @property
    def window_end(self) -> datetime:
        return self.window_start + self.duration

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES

    def holds_slot(self, now: datetime) -> bool:
        """Blocking, and not a pending hold past its payment deadline."""
        return self.is_blocking and not self.is_expired(now)

    def is_expired(self, now: datetime) -> bool:
        """A pending reservation whose payment deadline passed."""
        return (
            self.status == ReservationStatus.PENDING
            and self.expires_at is not None
            and as_utc(self.expires_at) <= as_utc(now)
        )

    # === Business methods ===

    def confirm(self) -> None:
        if self.status != ReservationStatus.PENDING:
            raise InvalidReservationStatusError(
                current_status=self.status.value,
                expected_status=ReservationStatus.PENDING.value,
                operation="confirm",
            )
        self.status = ReservationStatus.CONFIRMED
        self.expires_at = None

    def cancel(self, cancelled_at: datetime, reason: str) -> None:
        if not self.is_blocking:
            raise InvalidReservationStatusError(
                current_status=self.status.value,
                expected_status=[s.value for s in BLOCKING_STATUSES],
                operation="cancel",
            )
        self.status = ReservationStatus.CANCELLED
        self.cancelled_at = cancelled_at
        self.cancellation_reason = reason
