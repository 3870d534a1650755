"""Usage credit balance adjustment model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from creditline.models._base import OrganizationBase


class UsageCreditBalanceAdjustment(OrganizationBase):
    """An administrative reduction of a usage credit's remaining balance."""

    __tablename__ = "usage_credit_balance_adjustment"

    adjusted_usage_credit_id: Mapped[UUID] = mapped_column(
        ForeignKey("usage_credit.id", ondelete="RESTRICT"), nullable=False
    )
    amount_adjusted: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reason: Mapped[str] = mapped_column(String, nullable=False)
    adjusted_by_user_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("user.id", ondelete="SET NULL"), nullable=True
    )
    adjustment_initiated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
