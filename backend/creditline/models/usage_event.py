"""Usage event model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from creditline.models._base import OrganizationBase


class UsageEvent(OrganizationBase):
    """A single recorded consumption of a usage meter, priced in ``amount``."""

    __tablename__ = "usage_event"

    subscription_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscription.id", ondelete="CASCADE"), nullable=False
    )
    usage_meter_id: Mapped[UUID] = mapped_column(
        ForeignKey("usage_meter.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    usage_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    billing_period_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    # Caller supplied dedupe key for event ingestion
    transaction_id: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        Index(
            "uq_usage_event_transaction",
            "organization_id",
            "livemode",
            "transaction_id",
            unique=True,
        ),
        Index("idx_usage_event_subscription_meter", "subscription_id", "usage_meter_id"),
    )
