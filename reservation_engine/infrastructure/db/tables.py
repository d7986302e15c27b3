from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    UniqueConstraint,
)

metadata = MetaData()

# Times are stored as naive UTC

resources = Table(
    "resources",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("price", Numeric(12, 2)),
    Column("owner_id", String(128), index=True),
    Column("availability", Boolean, nullable=False, default=True),
    Column("last_booked_at", DateTime),
)

owners = Table(
    "owners",
    metadata,
    Column("id", String(128), primary_key=True),
    Column("email", String(255)),
    Column("payout_destination_id", String(64)),
    Column("payout_destination_status", String(32)),
)

reservations = Table(
    "reservations",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("resource_id", String(64), nullable=False, index=True),
    Column("requester_id", String(128), nullable=False, index=True),
    Column("window_start", DateTime, nullable=False),
    Column("window_end", DateTime, nullable=False),
    Column("status", String(16), nullable=False),
    Column("created_at", DateTime),
    Column("expires_at", DateTime),
    Column("cancelled_at", DateTime),
    Column("cancellation_reason", String(64)),
    Column("request_id", String(128)),
)

payment_attempts = Table(
    "payment_attempts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reservation_id", String(32), nullable=False, index=True),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("method", String(32), nullable=False),
    Column("status", String(16), nullable=False),
    Column("gateway_reference", String(64), unique=True),
    Column("client_secret", String(255)),
    Column("card_last4", String(4)),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
)

payouts = Table(
    "payouts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", String(128), nullable=False, index=True),
    Column("resource_id", String(64)),
    Column("payment_ref", String(64), nullable=False, unique=True),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("platform_fee", Numeric(12, 2), nullable=False),
    Column("owner_amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("status", String(16), nullable=False),
    Column("transfer_reference", String(64)),
    Column("failure_reason", String(255)),
    Column("created_at", DateTime),
    Column("completed_at", DateTime),
)

idempotency_keys = Table(
    "idempotency_keys",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("scope", String(32), nullable=False),
    Column("idem_key", String(128), nullable=False),
    Column("request_hash", String(64), nullable=False),
    Column("response_json", JSON),
    Column("http_status", Integer),
    Column("reference_reservation_id", String(32)),
    UniqueConstraint("scope", "idem_key", name="uq_idempotency_scope_key"),
)

payment_events = Table(
    "payment_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("gateway_event_id", String(128), nullable=False, unique=True),
    Column("kind", String(16), nullable=False),
    Column("payment_ref", String(64), nullable=False, index=True),
    Column("payload", JSON, nullable=False),
    Column("status", String(16), nullable=False, default="NEW"),
    Column("attempts", Integer, nullable=False, default=0),
    Column("next_attempt_at", DateTime),
    Column("locked_by", String(64)),
    Column("locked_at", DateTime),
    Column("lock_expires_at", DateTime),
    Column("error_code", String(64)),
    Column("error_message", String(255)),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
)
