"""CRUD operations for memberships and users.

Lookups here run during authentication, before any tenant context exists, so
they are not scoped by organization.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from creditline.models.membership import Membership
from creditline.models.user import User


class CRUDMembership:
    """CRUD operations for memberships."""

    async def get_for_user(
        self,
        db: AsyncSession,
        *,
        user_id: UUID,
        organization_id: Optional[UUID] = None,
    ) -> Optional[Membership]:
        """Get the membership a session acts through.

        Focused memberships come first; with ``organization_id`` only a membership
        in that organization qualifies.
        """
        query = select(Membership).where(Membership.user_id == user_id)
        if organization_id is not None:
            query = query.where(Membership.organization_id == organization_id)
        query = query.order_by(Membership.focused.desc(), Membership.created_at.asc()).limit(1)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_earliest_for_organization(
        self, db: AsyncSession, *, organization_id: UUID
    ) -> Optional[Membership]:
        """Get the oldest membership of an organization."""
        query = (
            select(Membership)
            .where(Membership.organization_id == organization_id)
            .order_by(Membership.created_at.asc())
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()


class CRUDUser:
    """CRUD operations for users."""

    async def get(self, db: AsyncSession, id: UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await db.execute(select(User).where(User.id == id))
        return result.scalar_one_or_none()


membership = CRUDMembership()
user = CRUDUser()
