"""Ledger account model."""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from creditline.models._base import OrganizationBase


class LedgerAccount(OrganizationBase):
    """Balance container for one subscription and usage meter.

    At most one account exists per (organization, subscription, usage meter,
    livemode); accounts are created on demand and never deleted.
    """

    __tablename__ = "ledger_account"

    subscription_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscription.id", ondelete="RESTRICT"), nullable=False
    )
    usage_meter_id: Mapped[UUID] = mapped_column(
        ForeignKey("usage_meter.id", ondelete="RESTRICT"), nullable=False
    )
    normal_balance: Mapped[str] = mapped_column(String(10), nullable=False, default="credit")

    __table_args__ = (
        Index(
            "uq_ledger_account_scope",
            "organization_id",
            "subscription_id",
            "usage_meter_id",
            "livemode",
            unique=True,
        ),
    )
