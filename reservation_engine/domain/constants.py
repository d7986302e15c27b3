"""Business policy constants for reservations and settlement."""

from decimal import Decimal

BOOKING_WINDOW_HOURS = 2

PLATFORM_FEE_RATE = Decimal("0.10")

# Charged when a resource has no hourly price configured
MINIMUM_CHARGE = Decimal("2.00")

DEFAULT_CURRENCY = "usd"

PENDING_PAYMENT_TTL_MINUTES = 30

CANCELLATION_REASON_REQUESTER = "requester_cancelled"
CANCELLATION_REASON_PAYMENT_EXPIRED = "payment_expired"
