import asyncio
import logging
from decimal import Decimal

import stripe

from reservation_engine.application.interfaces.payout_gateway import PayoutGateway, TransferResult
from reservation_engine.config import get_settings
from reservation_engine.domain.errors import NoPayoutDestinationError
from reservation_engine.domain.value_objects.money import Money
from reservation_engine.infrastructure.circuit_breaker import CircuitBreakerError, payout_breaker

logger = logging.getLogger(__name__)


class StripePayoutGateway(PayoutGateway):
    """Owner payouts through Stripe Connect: Express accounts and transfers."""

    def __init__(self, api_key: str | None = None) -> None:
        settings = get_settings()
        stripe.api_key = api_key or settings.stripe_api_key
        stripe.max_network_retries = 2

    async def transfer(
        self,
        destination_id: str | None,
        amount: Decimal,
        currency: str,
        description: str,
        idempotency_key: str,
    ) -> TransferResult:
        if not destination_id:
            raise NoPayoutDestinationError("unlinked")
        try:
            transfer = await asyncio.to_thread(
                payout_breaker.call,
                stripe.Transfer.create,
                amount=Money(amount=amount, currency_code=currency).to_cents(),
                currency=currency.lower(),
                destination=destination_id,
                description=description,
                idempotency_key=idempotency_key,
            )
        except CircuitBreakerError as e:
            logger.error(
                "Payout circuit breaker is open - transfers unavailable",
                extra={"circuit_state": str(e)},
            )
            raise
        except stripe.StripeError as e:
            logger.error(
                "Stripe transfer failed",
                exc_info=e,
                extra={"destination_id": destination_id},
            )
            raise
        return TransferResult(transfer_id=transfer.id)

    async def create_destination(self, owner_id: str, email: str, country: str) -> str:
        account = await asyncio.to_thread(
            payout_breaker.call,
            stripe.Account.create,
            type="express",
            country=country,
            email=email,
            capabilities={"transfers": {"requested": True}},
            metadata={"owner_id": owner_id},
        )
        return account.id
