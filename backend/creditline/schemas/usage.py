"""Usage event and usage credit schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UsageEvent(BaseModel):
    """A recorded usage event, priced in ``amount``."""

    id: UUID
    organization_id: UUID
    subscription_id: UUID
    usage_meter_id: UUID
    livemode: bool
    amount: int = Field(..., ge=0)
    usage_date: datetime
    billing_period_id: Optional[UUID] = None
    transaction_id: str

    model_config = ConfigDict(from_attributes=True)


class UsageCredit(BaseModel):
    """A prepaid usage allowance."""

    id: UUID
    organization_id: UUID
    subscription_id: UUID
    usage_meter_id: UUID
    livemode: bool
    credit_type: str
    status: str = "posted"
    issued_amount: int = Field(..., ge=0)
    issued_at: datetime
    expires_at: Optional[datetime] = None
    source_reference_type: str
    source_reference_id: Optional[str] = None
    payment_id: Optional[UUID] = None
    billing_period_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class UsageCreditBalanceAdjustment(BaseModel):
    """An administrative reduction of a usage credit's balance."""

    id: UUID
    organization_id: UUID
    adjusted_usage_credit_id: UUID
    livemode: bool
    amount_adjusted: int = Field(..., ge=0)
    reason: str
    adjusted_by_user_id: Optional[UUID] = None
    adjustment_initiated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UsageCreditApplicationCreate(BaseModel):
    """Schema for creating a usage credit application."""

    usage_credit_id: UUID
    usage_event_id: Optional[UUID] = None
    amount_applied: int = Field(..., gt=0)
    applied_at: datetime
    target_usage_meter_id: UUID
    status: str = "posted"
