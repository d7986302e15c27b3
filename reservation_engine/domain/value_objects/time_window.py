"""Value Object TimeWindow - the span a reservation holds a resource."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeWindow:
    """
    Immutable half-open time range [start, end).

    Attributes:
        start: Window start (UTC).
        end: Window end (UTC), exclusive.
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", as_utc(self.start))
        object.__setattr__(self, "end", as_utc(self.end))
        if self.start >= self.end:
            raise ValueError(f"start must be before end: {self.start} >= {self.end}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps_with(self, other: "TimeWindow") -> bool:
        """Back-to-back windows (one ends where the other starts) do not overlap."""
        return self.start < other.end and other.start < self.end

    def contains(self, instant: datetime) -> bool:
        instant = as_utc(instant)
        return self.start <= instant < self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()} -> {self.end.isoformat()}"

    @classmethod
    def for_booking(cls, start: datetime, hours: int) -> "TimeWindow":
        start = as_utc(start)
        return cls(start=start, end=start + timedelta(hours=hours))
