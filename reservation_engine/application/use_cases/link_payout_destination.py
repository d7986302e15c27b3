import logging

from reservation_engine.api.schemas.payouts import LinkPayoutDestinationRequest, PayoutDestinationResponse
from reservation_engine.application.interfaces.payout_gateway import PayoutGateway
from reservation_engine.application.interfaces.resource_directory import ResourceDirectory
from reservation_engine.application.interfaces.transaction_manager import TransactionManager
from reservation_engine.application.use_cases.list_payouts import OWNER_ID_RE
from reservation_engine.domain.errors import OwnerNotFoundError

logger = logging.getLogger(__name__)


class LinkPayoutDestinationUseCase:
    """Creates a payout destination at the gateway and links it to the owner."""

    def __init__(
        self,
        resource_directory: ResourceDirectory,
        payout_gateway: PayoutGateway,
        transaction_manager: TransactionManager,
    ) -> None:
        self._resource_directory = resource_directory
        self._payout_gateway = payout_gateway
        self._transaction_manager = transaction_manager

    async def execute(
        self, owner_id: str, request: LinkPayoutDestinationRequest
    ) -> PayoutDestinationResponse:
        if not OWNER_ID_RE.match(owner_id):
            raise OwnerNotFoundError(owner_id)

        owner = await self._resource_directory.get_owner(owner_id)
        if owner is None:
            raise OwnerNotFoundError(owner_id)
        if owner.has_payout_destination:
            return PayoutDestinationResponse(
                owner_id=owner_id,
                destination_id=owner.payout_destination_id,
                status=owner.payout_destination_status or "active",
            )

        destination_id = await self._payout_gateway.create_destination(
            owner_id, str(request.email), request.country.upper()
        )
        async with self._transaction_manager.start():
            owner = await self._resource_directory.link_payout_destination(
                owner_id, destination_id, status="pending", email=str(request.email)
            )
        logger.info(
            "Payout destination linked",
            extra={"owner_id": owner_id, "destination_id": destination_id},
        )
        return PayoutDestinationResponse(
            owner_id=owner.id,
            destination_id=owner.payout_destination_id,
            status=owner.payout_destination_status,
        )
