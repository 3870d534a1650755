"""Usage credit application model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from creditline.models._base import OrganizationBase


class UsageCreditApplication(OrganizationBase):
    """Records that part of a usage credit was consumed by a usage event."""

    __tablename__ = "usage_credit_application"

    usage_credit_id: Mapped[UUID] = mapped_column(
        ForeignKey("usage_credit.id", ondelete="RESTRICT"), nullable=False
    )
    usage_event_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("usage_event.id", ondelete="RESTRICT"), nullable=True
    )
    amount_applied: Mapped[int] = mapped_column(BigInteger, nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    target_usage_meter_id: Mapped[UUID] = mapped_column(
        ForeignKey("usage_meter.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="posted")

    __table_args__ = (
        Index("idx_usage_credit_application_credit", "usage_credit_id"),
        Index("idx_usage_credit_application_event", "usage_event_id"),
    )
