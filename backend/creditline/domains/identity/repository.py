"""Identity domain repositories wrapping crud.api_key, crud.membership and crud.user."""

from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from creditline import crud
from creditline.models.api_key import APIKey
from creditline.models.membership import Membership
from creditline.models.user import User


class ApiKeyRepositoryProtocol(Protocol):
    """Data access for API keys."""

    async def get_by_token_hash(self, db: AsyncSession, *, token_hash: str) -> Optional[APIKey]:
        """Get an API key by its token digest."""
        ...


class MembershipRepositoryProtocol(Protocol):
    """Data access for memberships."""

    async def get_for_user(
        self, db: AsyncSession, *, user_id: UUID, organization_id: Optional[UUID] = None
    ) -> Optional[Membership]:
        """Get the membership a user's session acts through."""
        ...

    async def get_earliest_for_organization(
        self, db: AsyncSession, *, organization_id: UUID
    ) -> Optional[Membership]:
        """Get the oldest membership of an organization."""
        ...


class UserRepositoryProtocol(Protocol):
    """Data access for users."""

    async def get(self, db: AsyncSession, id: UUID) -> Optional[User]:
        """Get a user by ID."""
        ...


class ApiKeyRepository(ApiKeyRepositoryProtocol):
    """Delegates to the crud.api_key singleton."""

    async def get_by_token_hash(self, db: AsyncSession, *, token_hash: str) -> Optional[APIKey]:
        """Get an API key by its token digest."""
        return await crud.api_key.get_by_token_hash(db, token_hash=token_hash)


class MembershipRepository(MembershipRepositoryProtocol):
    """Delegates to the crud.membership singleton."""

    async def get_for_user(
        self, db: AsyncSession, *, user_id: UUID, organization_id: Optional[UUID] = None
    ) -> Optional[Membership]:
        """Get the membership a user's session acts through."""
        return await crud.membership.get_for_user(
            db, user_id=user_id, organization_id=organization_id
        )

    async def get_earliest_for_organization(
        self, db: AsyncSession, *, organization_id: UUID
    ) -> Optional[Membership]:
        """Get the oldest membership of an organization."""
        return await crud.membership.get_earliest_for_organization(
            db, organization_id=organization_id
        )


class UserRepository(UserRepositoryProtocol):
    """Delegates to the crud.user singleton."""

    async def get(self, db: AsyncSession, id: UUID) -> Optional[User]:
        """Get a user by ID."""
        return await crud.user.get(db, id)
