import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status

from reservation_engine.api.dependencies import get_use_cases, use_case_scope
from reservation_engine.api.schemas.payment_events import PaymentEventAck
from reservation_engine.config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


async def process_queued_event(queued_id: int, settings: Settings) -> None:
    """Runs after the response is sent; failures stay in the queue for the worker."""
    try:
        async with use_case_scope(settings) as use_cases:
            await use_cases["process_payment_events"].process_one(queued_id, worker_id="webhook")
    except Exception:
        logger.exception("Immediate settlement failed", extra={"queued_id": queued_id})


@router.post("/payment-events", response_model=PaymentEventAck, status_code=status.HTTP_200_OK)
async def receive_payment_event(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    use_cases=Depends(get_use_cases),
) -> PaymentEventAck:
    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature")
    queued, created = await use_cases["receive_payment_event"].execute(raw_body, signature)
    if created:
        background_tasks.add_task(process_queued_event, queued.id, settings)
    return PaymentEventAck(received=True)
