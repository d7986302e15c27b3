from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PaymentEventEnvelope(BaseModel):
    """Gateway webhook event as delivered (Stripe event shape)."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    livemode: bool | None = None
    created: int | None = None


class PaymentEventAck(BaseModel):
    received: bool = True
