"""Entity Payout - the owner's share of one settled payment."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from reservation_engine.domain.errors import InvalidPayoutTransitionError
from reservation_engine.domain.value_objects.fee_split import FeeSplit


class PayoutStatus(str, Enum):
    """
    Payout lifecycle.

    pending: created on payment confirmation
    completed: transfer to the owner's destination succeeded
    failed_manual: owner has no payout destination; queued for human follow-up
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED_MANUAL = "failed_manual"


PAYOUT_TRANSITIONS = {
    PayoutStatus.PENDING: {PayoutStatus.COMPLETED, PayoutStatus.FAILED_MANUAL},
    PayoutStatus.COMPLETED: set(),
    PayoutStatus.FAILED_MANUAL: set(),
}


def assert_payout_transition(payout_id: int | None, current: PayoutStatus, target: PayoutStatus) -> None:
    if target not in PAYOUT_TRANSITIONS.get(current, set()):
        raise InvalidPayoutTransitionError(payout_id, current.value, target.value)


@dataclass
class Payout:
    id: int | None
    owner_id: str
    resource_id: str | None
    payment_ref: str
    total_amount: Decimal
    platform_fee: Decimal
    owner_amount: Decimal
    currency: str
    status: PayoutStatus = PayoutStatus.PENDING
    created_at: datetime | None = None
    completed_at: datetime | None = None
    transfer_reference: str | None = None
    failure_reason: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, PayoutStatus):
            self.status = PayoutStatus(self.status)
        if self.owner_amount + self.platform_fee != self.total_amount:
            raise ValueError(
                f"owner_amount + platform_fee must equal total_amount: "
                f"{self.owner_amount} + {self.platform_fee} != {self.total_amount}"
            )

    @property
    def is_final(self) -> bool:
        return self.status in (PayoutStatus.COMPLETED, PayoutStatus.FAILED_MANUAL)

    def complete(self, transfer_reference: str, completed_at: datetime) -> None:
        assert_payout_transition(self.id, self.status, PayoutStatus.COMPLETED)
        self.status = PayoutStatus.COMPLETED
        self.transfer_reference = transfer_reference
        self.completed_at = completed_at

    def fail_manual(self, reason: str) -> None:
        assert_payout_transition(self.id, self.status, PayoutStatus.FAILED_MANUAL)
        self.status = PayoutStatus.FAILED_MANUAL
        self.failure_reason = reason

    @classmethod
    def create_pending(
        cls,
        owner_id: str,
        resource_id: str | None,
        payment_ref: str,
        split: FeeSplit,
        created_at: datetime,
    ) -> "Payout":
        return cls(
            id=None,
            owner_id=owner_id,
            resource_id=resource_id,
            payment_ref=payment_ref,
            total_amount=split.total.amount,
            platform_fee=split.platform_fee.amount,
            owner_amount=split.owner_amount.amount,
            currency=split.total.currency_code,
            status=PayoutStatus.PENDING,
            created_at=created_at,
        )
