"""Fake identity repositories for testing."""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from creditline.models.api_key import APIKey
from creditline.models.membership import Membership
from creditline.models.user import User


class FakeApiKeyRepository:
    """In-memory fake for ApiKeyRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize empty store."""
        self._by_hash: dict[str, APIKey] = {}
        self._calls: list[tuple] = []

    def seed(self, api_key: APIKey) -> None:
        """Store an API key under its token hash."""
        self._by_hash[api_key.token_hash] = api_key

    def call_count(self, method: str) -> int:
        """Return the number of times a method was called."""
        return sum(1 for name, *_ in self._calls if name == method)

    async def get_by_token_hash(self, db: AsyncSession, *, token_hash: str) -> Optional[APIKey]:
        """Get an API key by its token digest."""
        self._calls.append(("get_by_token_hash", token_hash))
        return self._by_hash.get(token_hash)


class FakeMembershipRepository:
    """In-memory fake for MembershipRepositoryProtocol.

    Seed order stands in for ``created_at``.
    """

    def __init__(self) -> None:
        """Initialize empty store."""
        self._store: list[Membership] = []
        self._calls: list[tuple] = []

    def seed(self, membership: Membership) -> None:
        """Add a membership."""
        self._store.append(membership)

    def call_count(self, method: str) -> int:
        """Return the number of times a method was called."""
        return sum(1 for name, *_ in self._calls if name == method)

    async def get_for_user(
        self, db: AsyncSession, *, user_id: UUID, organization_id: Optional[UUID] = None
    ) -> Optional[Membership]:
        """Focused membership first, then the oldest."""
        self._calls.append(("get_for_user", user_id, organization_id))
        candidates = [
            m
            for m in self._store
            if m.user_id == user_id
            and (organization_id is None or m.organization_id == organization_id)
        ]
        candidates.sort(key=lambda m: not m.focused)
        return candidates[0] if candidates else None

    async def get_earliest_for_organization(
        self, db: AsyncSession, *, organization_id: UUID
    ) -> Optional[Membership]:
        """Get the first seeded membership of an organization."""
        self._calls.append(("get_earliest_for_organization", organization_id))
        for m in self._store:
            if m.organization_id == organization_id:
                return m
        return None


class FakeUserRepository:
    """In-memory fake for UserRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize empty store."""
        self._store: dict[UUID, User] = {}

    def seed(self, user: User) -> None:
        """Add a user."""
        self._store[user.id] = user

    async def get(self, db: AsyncSession, id: UUID) -> Optional[User]:
        """Get a user by ID."""
        return self._store.get(id)
