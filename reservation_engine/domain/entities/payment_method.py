"""
Payment method variants accepted at booking time.

Booking requests carry a loosely-typed `payment_details` object. It is validated into
exactly one of the variants below, selected by its `method` tag, or rejected with
InvalidPaymentMethodError. Instrument data is only checked for shape; nothing
beyond a card's last four digits is kept.
"""

import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from reservation_engine.domain.errors import InvalidPaymentMethodError


def _strip_separators(value: Any) -> Any:
    if value is None:
        return value
    return re.sub(r"[\s-]", "", str(value))


class _PaymentVariant(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class CardPayment(_PaymentVariant):
    method: Literal["card"] = "card"
    card_number: str = Field(pattern=r"^\d{12,19}$")
    expiry: str = Field(pattern=r"^(0[1-9]|1[0-2])/(\d{2}|\d{4})$")
    cvv: str = Field(pattern=r"^\d{3,4}$")

    @field_validator("card_number", "expiry", "cvv", mode="before")
    @classmethod
    def strip_separators(cls, value: Any) -> Any:
        return _strip_separators(value)

    @property
    def last4(self) -> str:
        return self.card_number[-4:]


class MobileMoneyPayment(_PaymentVariant):
    method: Literal["mobile_money", "mobile"] = "mobile_money"
    mobile_number: str = Field(pattern=r"^\+?\d{7,15}$")

    @field_validator("mobile_number", mode="before")
    @classmethod
    def strip_separators(cls, value: Any) -> Any:
        return _strip_separators(value)

    @field_validator("method")
    @classmethod
    def canonical_method(cls, value: str) -> str:
        return "mobile_money"


class BankTransferPayment(_PaymentVariant):
    method: Literal["bank_transfer", "bank"] = "bank_transfer"
    bank_account: str = Field(pattern=r"^[A-Za-z0-9]{4,34}$")

    @field_validator("bank_account", mode="before")
    @classmethod
    def strip_separators(cls, value: Any) -> Any:
        return _strip_separators(value)

    @field_validator("method")
    @classmethod
    def canonical_method(cls, value: str) -> str:
        return "bank_transfer"


class CashPayment(_PaymentVariant):
    method: Literal["cash"] = "cash"


PaymentMethod = Annotated[
    Union[CardPayment, MobileMoneyPayment, BankTransferPayment, CashPayment],
    Field(discriminator="method"),
]

_payment_method_adapter = TypeAdapter(PaymentMethod)


def parse_payment_method(details: Any) -> PaymentMethod:
    try:
        return _payment_method_adapter.validate_python(details)
    except ValidationError as exc:
        error = exc.errors()[0]
        # loc is (tag, field) for variant errors and empty when the tag itself is bad
        loc = error["loc"]
        field = str(loc[1]) if len(loc) > 1 else "method"
        raise InvalidPaymentMethodError(error["msg"], field=field) from exc
