from datetime import datetime, timezone

from reservation_engine.domain.value_objects.time_window import as_utc


def to_db(value: datetime | None) -> datetime | None:
    """Aware datetime -> naive UTC for storage."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def from_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value
