"""Platform / owner revenue split."""

from dataclasses import dataclass
from decimal import Decimal

from reservation_engine.domain.value_objects.money import Money, quantize


@dataclass(frozen=True)
class FeeSplit:
    """
    Split of one settled payment.

    owner_amount is derived by subtraction so that
    platform_fee + owner_amount == total holds to the cent.
    """

    total: Money
    platform_fee: Money
    owner_amount: Money

    def __post_init__(self) -> None:
        if self.platform_fee + self.owner_amount != self.total:
            raise ValueError(
                f"Fee split does not add up: {self.platform_fee} + {self.owner_amount} != {self.total}"
            )


def split_platform_fee(total: Money, rate: Decimal) -> FeeSplit:
    if rate < 0 or rate > 1:
        raise ValueError(f"platform fee rate must be within [0, 1]: {rate}")
    platform_fee = Money(amount=quantize(total.amount * rate), currency_code=total.currency_code)
    return FeeSplit(total=total, platform_fee=platform_fee, owner_amount=total - platform_fee)
