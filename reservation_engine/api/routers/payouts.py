from fastapi import APIRouter, Depends, status

from reservation_engine.api.dependencies import get_use_cases
from reservation_engine.api.schemas.payouts import (
    LinkPayoutDestinationRequest,
    PayoutDestinationResponse,
    PayoutOut,
)

router = APIRouter()


@router.get("/payouts/{owner_id}", response_model=list[PayoutOut])
async def list_payouts(owner_id: str, use_cases=Depends(get_use_cases)) -> list[PayoutOut]:
    return await use_cases["list_payouts"].execute(owner_id)


@router.post(
    "/owners/{owner_id}/payout-destination",
    response_model=PayoutDestinationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def link_payout_destination(
    owner_id: str,
    payload: LinkPayoutDestinationRequest,
    use_cases=Depends(get_use_cases),
) -> PayoutDestinationResponse:
    return await use_cases["link_payout_destination"].execute(owner_id, payload)
