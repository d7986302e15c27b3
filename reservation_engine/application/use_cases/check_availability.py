"""Availability oracle: is a resource free at a given instant or over a window."""

import logging
from datetime import datetime

from reservation_engine.api.schemas.bookings import AvailabilityResponse
from reservation_engine.application.interfaces.clock import Clock
from reservation_engine.application.interfaces.reservation_repo import ReservationRepo
from reservation_engine.domain.value_objects.time_window import TimeWindow, as_utc

logger = logging.getLogger(__name__)


class CheckAvailabilityUseCase:
    """
    Answers from the reservation ledger, never from the resource's cached
    availability flag. Pending holds past their payment deadline do not
    count, whether or not the expiry sweep has released them yet.

    is_free() fails open: a ledger read error is logged and reported as free.
    Booking decisions use is_window_free(), which propagates errors so that a
    broken ledger can never let a conflicting reservation through.
    """

    def __init__(self, reservation_repo: ReservationRepo, clock: Clock) -> None:
        self._reservation_repo = reservation_repo
        self._clock = clock

    async def execute(self, resource_id: str, at_time: datetime | None = None) -> AvailabilityResponse:
        at_time = as_utc(at_time) if at_time else self._clock.now()
        available = await self.is_free(resource_id, at_time)
        return AvailabilityResponse(resource_id=resource_id, at=at_time, available=available)

    async def is_free(self, resource_id: str, at_time: datetime | None = None) -> bool:
        at_time = as_utc(at_time) if at_time else self._clock.now()
        try:
            active = await self._reservation_repo.list_active_for_resource(resource_id)
        except Exception:
            logger.warning(
                "Availability lookup failed, reporting resource as free",
                exc_info=True,
                extra={"resource_id": resource_id, "at": at_time.isoformat()},
            )
            return True
        now = self._clock.now()
        return not any(r.holds_slot(now) and r.window.contains(at_time) for r in active)

    async def is_window_free(self, resource_id: str, window: TimeWindow) -> bool:
        now = self._clock.now()
        active = await self._reservation_repo.list_active_for_resource(resource_id)
        return not any(r.holds_slot(now) and r.window.overlaps_with(window) for r in active)
