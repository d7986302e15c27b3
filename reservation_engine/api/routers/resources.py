from datetime import datetime

from fastapi import APIRouter, Depends, Query

from reservation_engine.api.dependencies import get_use_cases
from reservation_engine.api.schemas.bookings import AvailabilityResponse

router = APIRouter()


@router.get("/resources/{resource_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    resource_id: str,
    at: datetime | None = Query(default=None),
    use_cases=Depends(get_use_cases),
) -> AvailabilityResponse:
    """Whether the resource is free at `at` (default: now). Derived from reservations only."""
    return await use_cases["check_availability"].execute(resource_id, at)
