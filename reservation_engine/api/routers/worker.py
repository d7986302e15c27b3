from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from reservation_engine.api.dependencies import get_use_cases
from reservation_engine.infrastructure.db.retry import retry_on_deadlock

router = APIRouter()


@router.post("/workers/payment-events/process", status_code=status.HTTP_200_OK)
async def process_payment_events(
    use_cases: Annotated[dict, Depends(get_use_cases)],
    limit: int = Query(default=10, ge=1, le=100),
    worker_id: str | None = Query(default=None, alias="worker-id"),
) -> dict:
    """Drain ready events from the settlement queue, retrying on deadlock."""

    async def execute():
        return await use_cases["process_payment_events"].process_ready(
            limit=limit, worker_id=worker_id or "worker-1"
        )

    results = await retry_on_deadlock(execute, max_attempts=3, base_delay=0.1)
    return {"processed": len(results), "results": results}


@router.post("/workers/payment-events/{queued_id}/process", status_code=status.HTTP_200_OK)
async def process_payment_event(
    queued_id: int,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    worker_id: str | None = Query(default=None, alias="worker-id"),
) -> dict:
    async def execute():
        return await use_cases["process_payment_events"].process_one(
            queued_id, worker_id=worker_id or "worker-1"
        )

    result = await retry_on_deadlock(execute, max_attempts=3, base_delay=0.1)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Event not found, already processed, or not due yet",
        )
    return result


@router.post("/workers/reservations/expire", status_code=status.HTTP_200_OK)
async def expire_pending_reservations(
    use_cases: Annotated[dict, Depends(get_use_cases)],
    limit: int = Query(default=100, ge=1, le=1000),
) -> dict:
    async def execute():
        return await use_cases["expire_pending"].execute(limit=limit)

    released = await retry_on_deadlock(execute, max_attempts=3, base_delay=0.1)
    return {"released": released}


@router.get("/workers/payment-events/dead-letters", status_code=status.HTTP_200_OK)
async def list_dead_letters(use_cases: Annotated[dict, Depends(get_use_cases)]) -> list[dict]:
    dead = await use_cases["process_payment_events"].list_dead_letters()
    return [
        {
            "queued_id": q.id,
            "event_id": q.event.event_id,
            "payment_ref": q.event.payment_ref,
            "attempts": q.attempts,
            "error_code": q.error_code,
            "error_message": q.error_message,
        }
        for q in dead
    ]
