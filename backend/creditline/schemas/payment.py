"""Payment and refund records as handed over by the payment processor integration."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Payment(BaseModel):
    """A confirmed payment."""

    id: UUID
    organization_id: UUID
    subscription_id: UUID
    livemode: bool
    amount: int = Field(..., ge=0)
    currency: str = "usd"
    status: str = "succeeded"
    billing_period_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class Refund(BaseModel):
    """A refund issued against a payment."""

    id: UUID
    payment_id: UUID
    organization_id: UUID
    subscription_id: UUID
    livemode: bool
    amount: int = Field(..., ge=0)
    refunded_at: datetime

    model_config = ConfigDict(from_attributes=True)
