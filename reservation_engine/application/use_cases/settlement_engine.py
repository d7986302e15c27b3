"""
Settlement of gateway payment events.

Gateways deliver events at least once, so every step here is guarded by the
payment reference: a marker in the idempotency store records whether the
payment side was applied, and the payout ledger (unique per payment reference)
records whether the owner side was. A redelivered event finds both final and does nothing.
"""

import hashlib
import logging
from dataclasses import dataclass
from decimal import Decimal

from reservation_engine.application.interfaces.clock import Clock
from reservation_engine.application.interfaces.idempotency_repo import IdempotencyRecord, IdempotencyRepo
from reservation_engine.application.interfaces.payment_attempt_repo import PaymentAttemptRepo
from reservation_engine.application.interfaces.payout_gateway import PayoutGateway
from reservation_engine.application.interfaces.payout_repo import PayoutRepo
from reservation_engine.application.interfaces.reservation_repo import ReservationRepo
from reservation_engine.application.interfaces.resource_directory import ResourceDirectory
from reservation_engine.application.interfaces.transaction_manager import TransactionManager
from reservation_engine.domain.constants import PLATFORM_FEE_RATE
from reservation_engine.domain.entities.payment_attempt import PaymentAttempt, PaymentAttemptStatus
from reservation_engine.domain.entities.payment_event import PaymentEvent, PaymentEventKind
from reservation_engine.domain.entities.payout import Payout
from reservation_engine.domain.entities.reservation import ReservationStatus
from reservation_engine.domain.errors import NoPayoutDestinationError, SettlementError
from reservation_engine.domain.value_objects.fee_split import split_platform_fee

logger = logging.getLogger(__name__)

NO_DESTINATION_REASON = "owner has no linked payout destination"

# Marks a payment reference whose payment side has been applied
SETTLEMENT_SCOPE = "settlement"


@dataclass
class SettlementResult:
    outcome: str  # settled | duplicate | payment_failed
    payout: Payout | None = None


class SettlementEngine:
    def __init__(
        self,
        reservation_repo: ReservationRepo,
        payment_repo: PaymentAttemptRepo,
        payout_repo: PayoutRepo,
        resource_directory: ResourceDirectory,
        payout_gateway: PayoutGateway,
        idempotency_repo: IdempotencyRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
        platform_fee_rate: Decimal = PLATFORM_FEE_RATE,
    ) -> None:
        self._reservation_repo = reservation_repo
        self._payment_repo = payment_repo
        self._payout_repo = payout_repo
        self._resource_directory = resource_directory
        self._payout_gateway = payout_gateway
        self._idempotency_repo = idempotency_repo
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._platform_fee_rate = platform_fee_rate

    async def on_payment_event(self, event: PaymentEvent) -> SettlementResult:
        if event.kind == PaymentEventKind.SUCCEEDED:
            return await self._on_succeeded(event)
        return await self._on_failed(event)

    async def _on_succeeded(self, event: PaymentEvent) -> SettlementResult:
        attempt = await self._payment_repo.find_by_gateway_reference(event.payment_ref)
        payout = await self._payout_repo.find_by_payment_ref(event.payment_ref)

        if payout is not None and payout.is_final:
            logger.info(
                "Duplicate payment event ignored",
                extra={"event_id": event.event_id, "payment_ref": event.payment_ref},
            )
            return SettlementResult(outcome="duplicate", payout=payout)

        marker = await self._idempotency_repo.get(SETTLEMENT_SCOPE, event.payment_ref)
        payment_applied = marker is not None or (
            attempt is not None and attempt.status == PaymentAttemptStatus.SUCCEEDED
        )
        if payment_applied and not event.owner_id:
            return SettlementResult(outcome="duplicate")

        if not payment_applied:
            async with self._transaction_manager.start():
                await self._apply_payment(event, attempt)

        if not event.owner_id:
            logger.info(
                "Payment settled for unowned resource, no payout",
                extra={"payment_ref": event.payment_ref, "resource_id": event.resource_id},
            )
            return SettlementResult(outcome="settled")

        try:
            payout = await self._settle_payout(event, payout)
        except Exception as exc:
            # Payment side stays applied; the payout is left for the retry or reconciliation
            logger.error(
                "Payout settlement failed",
                exc_info=True,
                extra={
                    "payment_ref": event.payment_ref,
                    "owner_id": event.owner_id,
                    "amount": str(event.amount),
                },
            )
            raise SettlementError(event.payment_ref, str(exc)) from exc
        return SettlementResult(outcome="settled", payout=payout)

    async def _apply_payment(self, event: PaymentEvent, attempt: PaymentAttempt | None) -> None:
        now = self._clock.now()
        if event.resource_id:
            await self._resource_directory.set_availability(
                event.resource_id, False, last_booked_at=now
            )

        reservation_id = event.reservation_id
        if attempt is not None:
            await self._payment_repo.mark_succeeded(attempt.id)
            reservation_id = attempt.reservation_id
        else:
            logger.warning(
                "Payment event does not match any payment attempt",
                extra={"payment_ref": event.payment_ref, "event_id": event.event_id},
            )

        await self._idempotency_repo.save(
            IdempotencyRecord(
                scope=SETTLEMENT_SCOPE,
                idem_key=event.payment_ref,
                request_hash=hashlib.sha256(event.event_id.encode()).hexdigest(),
                response_json={"event_id": event.event_id},
                http_status=200,
                reference_reservation_id=reservation_id,
            )
        )

        if not reservation_id:
            return
        if await self._reservation_repo.mark_confirmed(reservation_id):
            logger.info(
                "Reservation confirmed by payment",
                extra={"reservation_id": reservation_id, "payment_ref": event.payment_ref},
            )
            return
        reservation = await self._reservation_repo.get(reservation_id)
        if reservation is not None and reservation.status == ReservationStatus.CANCELLED:
            logger.warning(
                "Payment captured for a cancelled reservation, needs refund review",
                extra={
                    "reservation_id": reservation_id,
                    "payment_ref": event.payment_ref,
                    "cancellation_reason": reservation.cancellation_reason,
                },
            )

    async def _settle_payout(self, event: PaymentEvent, payout: Payout | None) -> Payout:
        if payout is None:
            split = split_platform_fee(event.amount, self._platform_fee_rate)
            async with self._transaction_manager.start():
                payout = await self._payout_repo.create_pending(
                    Payout.create_pending(
                        owner_id=event.owner_id,
                        resource_id=event.resource_id,
                        payment_ref=event.payment_ref,
                        split=split,
                        created_at=self._clock.now(),
                    )
                )

        owner = await self._resource_directory.get_owner(event.owner_id)
        destination_id = owner.payout_destination_id if owner else None
        try:
            if not destination_id:
                raise NoPayoutDestinationError(event.owner_id)
            transfer = await self._payout_gateway.transfer(
                destination_id=destination_id,
                amount=payout.owner_amount,
                currency=payout.currency,
                description=f"Payout for resource {event.resource_id}",
                idempotency_key=f"payout-{event.payment_ref}",
            )
        except NoPayoutDestinationError:
            async with self._transaction_manager.start():
                payout = await self._payout_repo.mark_failed_manual(payout.id, NO_DESTINATION_REASON)
            logger.warning(
                "Owner has no payout destination, payout needs manual handling",
                extra={"owner_id": event.owner_id, "payout_id": payout.id},
            )
            return payout

        async with self._transaction_manager.start():
            payout = await self._payout_repo.mark_completed(
                payout.id, transfer.transfer_id, self._clock.now()
            )
        logger.info(
            "Payout completed",
            extra={
                "payout_id": payout.id,
                "owner_id": payout.owner_id,
                "owner_amount": str(payout.owner_amount),
                "transfer_reference": transfer.transfer_id,
            },
        )
        return payout

    async def _on_failed(self, event: PaymentEvent) -> SettlementResult:
        async with self._transaction_manager.start():
            if event.resource_id:
                await self._resource_directory.set_availability(event.resource_id, True)
            attempt = await self._payment_repo.find_by_gateway_reference(event.payment_ref)
            if attempt is not None and attempt.status == PaymentAttemptStatus.INITIATED:
                await self._payment_repo.mark_failed(attempt.id)

        logger.info(
            "Payment failed, resource marked available",
            extra={"payment_ref": event.payment_ref, "resource_id": event.resource_id},
        )
        return SettlementResult(outcome="payment_failed")
