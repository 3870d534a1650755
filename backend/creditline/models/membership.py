"""Membership model."""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from creditline.core.shared_models import MembershipRole
from creditline.models._base import OrganizationBase


class Membership(OrganizationBase):
    """Links a user to an organization.

    ``focused`` marks the organization a web session is currently scoped to;
    ``livemode`` is the partition that session works in.
    """

    __tablename__ = "membership"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MembershipRole.MEMBER.value
    )
    focused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("uq_membership_user_org", "user_id", "organization_id", unique=True),)
