"""Usage meter model."""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from creditline.models._base import OrganizationBase


class UsageMeter(OrganizationBase):
    """A metered dimension of usage (API calls, tokens, minutes...)."""

    __tablename__ = "usage_meter"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        Index("uq_usage_meter_slug", "organization_id", "livemode", "slug", unique=True),
    )
