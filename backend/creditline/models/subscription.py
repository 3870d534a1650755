"""Subscription model."""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from creditline.models._base import OrganizationBase


class Subscription(OrganizationBase):
    """Customer subscription that ledger accounts hang off."""

    __tablename__ = "subscription"

    customer_external_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")
