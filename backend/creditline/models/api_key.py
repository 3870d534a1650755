"""API key model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from creditline.core.shared_models import ApiKeyType
from creditline.models._base import OrganizationBase


class APIKey(OrganizationBase):
    """API key scoped to one organization and one livemode partition.

    Only an HMAC of the token is stored; the plain token is shown once at creation.
    """

    __tablename__ = "api_key"

    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    token_hash: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    key_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApiKeyType.SECRET.value
    )
    expiration_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_by_user_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("user.id", ondelete="SET NULL"), nullable=True
    )
