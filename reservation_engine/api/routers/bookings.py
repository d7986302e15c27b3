from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from reservation_engine.api.dependencies import get_use_cases
from reservation_engine.api.schemas.bookings import (
    BookingResponse,
    CancelBookingRequest,
    CreateBookingRequest,
    ReservationOut,
)

router = APIRouter()


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: CreateBookingRequest,
    idem_key: str = Header(default=None, convert_underscores=False, alias="Idempotency-Key"),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    if not idem_key:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Idempotency-Key header is required",
        )
    return await use_cases["create_booking"].execute(request=payload, idem_key=idem_key)


@router.get("/bookings/{reservation_id}", response_model=BookingResponse)
async def get_booking(reservation_id: str, use_cases=Depends(get_use_cases)) -> BookingResponse:
    return await use_cases["get_bookings"].get(reservation_id)


@router.get("/bookings", response_model=list[ReservationOut])
async def list_bookings(
    requester_id: str = Query(..., min_length=1, max_length=128),
    use_cases=Depends(get_use_cases),
) -> list[ReservationOut]:
    return await use_cases["get_bookings"].list_for_requester(requester_id)


@router.post("/bookings/{reservation_id}/cancel", response_model=ReservationOut)
async def cancel_booking(
    reservation_id: str,
    payload: CancelBookingRequest,
    use_cases=Depends(get_use_cases),
) -> ReservationOut:
    return await use_cases["cancel_booking"].execute(
        reservation_id=reservation_id, requester_id=payload.requester_id
    )
