"""Ledger schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class LedgerAccountCreate(BaseModel):
    """Schema for find-or-create of a ledger account."""

    subscription_id: UUID
    usage_meter_id: UUID
    normal_balance: str = "credit"


class LedgerTransactionCreate(BaseModel):
    """Schema for creating a ledger transaction header."""

    subscription_id: UUID
    type: str
    initiating_source_type: str
    initiating_source_id: str
    description: Optional[str] = None
    transaction_metadata: Optional[dict[str, Any]] = None
    idempotency_key: Optional[str] = None


class LedgerEntryCreate(BaseModel):
    """Schema for creating a ledger entry.

    ``ledger_transaction_id`` is filled in by the processor once the header exists.
    """

    ledger_account_id: UUID
    subscription_id: UUID
    usage_meter_id: Optional[UUID] = None
    direction: str
    entry_type: str
    status: str = "posted"
    amount: int = Field(..., ge=0)
    description: Optional[str] = None
    entry_timestamp: datetime
    discarded_at: Optional[datetime] = None
    billing_period_id: Optional[UUID] = None
    entry_metadata: Optional[dict[str, Any]] = None
    source_usage_event_id: Optional[UUID] = None
    source_usage_credit_id: Optional[UUID] = None
    source_credit_application_id: Optional[UUID] = None
    source_credit_balance_adjustment_id: Optional[UUID] = None
    source_payment_id: Optional[UUID] = None
    source_refund_id: Optional[UUID] = None
