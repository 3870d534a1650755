"""Fake identity resolver for testing."""

from typing import Optional, Union
from uuid import UUID

from creditline.domains.identity.exceptions import AuthorizationError
from creditline.domains.identity.protocols import IdentityResolverProtocol
from creditline.domains.identity.types import (
    ApiKeyCredential,
    ResolvedIdentity,
    SessionIdentity,
    TenantCredential,
)


class FakeIdentityResolver(IdentityResolverProtocol):
    """Test implementation of IdentityResolverProtocol.

    Usage:
        resolver = FakeIdentityResolver()
        resolver.register(ApiKeyCredential("sk_test_x"), identity)
        resolver.register_user(user_id, identity)

    Unregistered credentials raise AuthorizationError.
    """

    def __init__(self) -> None:
        """Initialize empty registrations."""
        self._identities: dict[Union[str, tuple], ResolvedIdentity] = {}
        self._users: dict[UUID, ResolvedIdentity] = {}
        self.resolved: list[TenantCredential] = []

    @staticmethod
    def _key(credential: TenantCredential) -> Union[str, tuple]:
        if isinstance(credential, ApiKeyCredential):
            return credential.token
        if isinstance(credential, SessionIdentity):
            return (credential.user_id, credential.organization_id)
        raise AuthorizationError("Unsupported credential")

    def register(self, credential: TenantCredential, identity: ResolvedIdentity) -> None:
        """Make ``credential`` resolve to ``identity``."""
        self._identities[self._key(credential)] = identity

    def register_user(self, user_id: UUID, identity: ResolvedIdentity) -> None:
        """Make impersonation of ``user_id`` resolve to ``identity``."""
        self._users[user_id] = identity

    async def resolve(self, credential: TenantCredential) -> ResolvedIdentity:
        """Return the registered identity or raise AuthorizationError."""
        self.resolved.append(credential)
        identity = self._identities.get(self._key(credential))
        if identity is None:
            raise AuthorizationError("Invalid credential")
        return identity

    async def resolve_user(
        self, user_id: UUID, organization_id: Optional[UUID] = None
    ) -> ResolvedIdentity:
        """Return the registered impersonation identity or raise AuthorizationError."""
        identity = self._users.get(user_id)
        if identity is None or (
            organization_id is not None and identity.organization_id != organization_id
        ):
            raise AuthorizationError(f"User {user_id} cannot be impersonated")
        return identity
