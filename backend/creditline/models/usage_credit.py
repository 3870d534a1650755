"""Usage credit model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from creditline.models._base import OrganizationBase


class UsageCredit(OrganizationBase):
    """A grant of prepaid usage allowance on one subscription and usage meter.

    The grant itself never changes; what is left of it is derived from ledger
    entries referencing ``source_usage_credit_id``.
    """

    __tablename__ = "usage_credit"

    subscription_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscription.id", ondelete="CASCADE"), nullable=False
    )
    usage_meter_id: Mapped[UUID] = mapped_column(
        ForeignKey("usage_meter.id", ondelete="CASCADE"), nullable=False
    )
    credit_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="posted")
    issued_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    source_reference_type: Mapped[str] = mapped_column(String(50), nullable=False)
    source_reference_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    billing_period_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    credit_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSONB, nullable=True)

    __table_args__ = (
        Index("idx_usage_credit_subscription_meter", "subscription_id", "usage_meter_id"),
        Index("idx_usage_credit_expires_at", "expires_at"),
    )
