import logging
from typing import Any

from pydantic import ValidationError

from reservation_engine.api.schemas.payment_events import PaymentEventEnvelope
from reservation_engine.application.interfaces.clock import Clock
from reservation_engine.application.interfaces.payment_event_queue import PaymentEventQueue
from reservation_engine.application.interfaces.payment_gateway import PaymentGateway
from reservation_engine.application.interfaces.transaction_manager import TransactionManager
from reservation_engine.domain.constants import DEFAULT_CURRENCY
from reservation_engine.domain.entities.payment_event import (
    GATEWAY_EVENT_TYPES,
    PaymentEvent,
    QueuedPaymentEvent,
)
from reservation_engine.domain.errors import InvalidWebhookSignatureError
from reservation_engine.domain.value_objects.money import Money

logger = logging.getLogger(__name__)

# Metadata keys written by this service and by older clients
RESOURCE_KEYS = ("resource_id", "parkingSpotId", "spot_id")
OWNER_KEYS = ("owner_id", "ownerId")
RESERVATION_KEYS = ("reservation_id", "bookingId")


def _first(metadata: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = metadata.get(key)
        if value:
            return str(value)
    return None


def normalize_event(envelope: PaymentEventEnvelope) -> PaymentEvent | None:
    """Map a gateway event onto a PaymentEvent; None for event types we do not settle."""
    kind = GATEWAY_EVENT_TYPES.get(envelope.type)
    if kind is None:
        return None

    obj = envelope.data.get("object") or {}
    payment_ref = obj.get("id")
    if not payment_ref:
        raise ValueError("event has no payment reference")

    metadata = obj.get("metadata") or {}
    cents = obj.get("amount_received") or obj.get("amount") or 0
    amount = Money.from_cents(int(cents), obj.get("currency") or DEFAULT_CURRENCY)

    return PaymentEvent(
        event_id=envelope.id or f"{envelope.type}:{payment_ref}",
        kind=kind,
        payment_ref=payment_ref,
        amount=amount,
        resource_id=_first(metadata, RESOURCE_KEYS),
        owner_id=_first(metadata, OWNER_KEYS),
        reservation_id=_first(metadata, RESERVATION_KEYS),
    )


class ReceivePaymentEventUseCase:
    """
    Intake side of the webhook: verify, normalize, enqueue.

    Settlement itself runs later from the queue. Apart from a bad signature,
    nothing about the event's content makes intake fail; malformed or
    unhandled events are logged and dropped.
    """

    def __init__(
        self,
        payment_gateway: PaymentGateway,
        event_queue: PaymentEventQueue,
        transaction_manager: TransactionManager,
        clock: Clock,
        webhook_secret: str | None = None,
    ) -> None:
        self._payment_gateway = payment_gateway
        self._event_queue = event_queue
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._webhook_secret = webhook_secret

    async def execute(
        self,
        payload: bytes,
        signature_header: str | None,
    ) -> tuple[QueuedPaymentEvent | None, bool]:
        """Returns (queued record, created); (None, False) when the event was dropped."""
        try:
            raw = await self._payment_gateway.parse_webhook_event(
                payload, signature_header, self._webhook_secret
            )
        except ValueError as exc:
            logger.warning("Rejected payment event", extra={"reason": str(exc)})
            raise InvalidWebhookSignatureError(str(exc)) from exc

        try:
            event = normalize_event(PaymentEventEnvelope.model_validate(raw))
        except (ValidationError, ValueError, TypeError) as exc:
            logger.warning("Dropping malformed payment event", extra={"reason": str(exc)})
            return None, False

        if event is None:
            logger.info("Ignoring unhandled payment event type", extra={"type": raw.get("type")})
            return None, False

        async with self._transaction_manager.start():
            queued, created = await self._event_queue.enqueue(event, self._clock.now())

        if created:
            logger.info(
                "Payment event queued",
                extra={
                    "event_id": event.event_id,
                    "kind": event.kind.value,
                    "payment_ref": event.payment_ref,
                    "queued_id": queued.id,
                },
            )
        else:
            logger.info(
                "Payment event already received",
                extra={"event_id": event.event_id, "queued_id": queued.id},
            )
        return queued, created
