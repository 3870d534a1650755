"""Ledger entry model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from creditline.models._base import OrganizationBase


class LedgerEntry(OrganizationBase):
    """One immutable debit or credit line of a ledger transaction.

    Amounts are always non-negative; the sign comes from ``direction``. The only
    column that may change after insert is ``discarded_at`` on a pending entry.
    """

    __tablename__ = "ledger_entry"

    ledger_transaction_id: Mapped[UUID] = mapped_column(
        ForeignKey("ledger_transaction.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    ledger_account_id: Mapped[UUID] = mapped_column(
        ForeignKey("ledger_account.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    subscription_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscription.id", ondelete="RESTRICT"), nullable=False
    )
    usage_meter_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("usage_meter.id", ondelete="RESTRICT"), nullable=True
    )
    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    entry_type: Mapped[str] = mapped_column(String(60), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="posted")
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    entry_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    discarded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    billing_period_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    entry_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSONB, nullable=True)

    source_usage_event_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("usage_event.id", ondelete="RESTRICT"), nullable=True
    )
    source_usage_credit_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("usage_credit.id", ondelete="RESTRICT"), nullable=True
    )
    source_credit_application_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("usage_credit_application.id", ondelete="RESTRICT"), nullable=True
    )
    source_credit_balance_adjustment_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("usage_credit_balance_adjustment.id", ondelete="RESTRICT"), nullable=True
    )
    # Payments and refunds live in the payment processor integration
    source_payment_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    source_refund_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_ledger_entry_amount_non_negative"),
        CheckConstraint("direction IN ('debit', 'credit')", name="ck_ledger_entry_direction"),
        CheckConstraint("status IN ('posted', 'pending')", name="ck_ledger_entry_status"),
        Index("idx_ledger_entry_account_status", "ledger_account_id", "status"),
        Index("idx_ledger_entry_usage_credit", "source_usage_credit_id"),
        Index("idx_ledger_entry_payment", "source_payment_id"),
    )
