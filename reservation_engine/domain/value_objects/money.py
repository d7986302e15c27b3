"""Value Object Money - a monetary amount with its currency."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

MINOR_UNIT = Decimal("0.01")


def quantize(amount: Decimal) -> Decimal:
    """Round half-up to the currency's minor unit."""
    return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """
    Immutable monetary amount.

    Attributes:
        amount: Decimal amount, normalized to two decimal places.
        currency_code: ISO 4217 code (usd, eur, kes...). Stored lowercase, as Stripe expects.
    """

    amount: Decimal
    currency_code: str

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        object.__setattr__(self, "amount", quantize(self.amount))
        object.__setattr__(self, "currency_code", self.currency_code.lower())

        if len(self.currency_code) != 3:
            raise ValueError(f"currency_code must have 3 characters: {self.currency_code}")

        if self.amount < 0:
            raise ValueError(f"amount cannot be negative: {self.amount}")

    def __add__(self, other: "Money") -> "Money":
        self._check_compatible(other)
        return Money(amount=self.amount + other.amount, currency_code=self.currency_code)

    def __sub__(self, other: "Money") -> "Money":
        self._check_compatible(other)
        return Money(amount=self.amount - other.amount, currency_code=self.currency_code)

    def _check_compatible(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other)}")
        if self.currency_code != other.currency_code:
            raise ValueError(
                f"Cannot combine amounts in different currencies: "
                f"{self.currency_code} vs {other.currency_code}"
            )

    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency_code.upper()}"

    @classmethod
    def zero(cls, currency_code: str = "usd") -> "Money":
        return cls(amount=Decimal("0"), currency_code=currency_code)

    @classmethod
    def from_cents(cls, cents: int, currency_code: str) -> "Money":
        """Build from minor units (Stripe amounts)."""
        return cls(amount=Decimal(cents) / 100, currency_code=currency_code)

    def to_cents(self) -> int:
        """Convert to minor units (Stripe amounts)."""
        return int(self.amount * 100)
