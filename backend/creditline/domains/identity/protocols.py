"""Identity domain protocols."""

from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from creditline.domains.identity.types import ResolvedIdentity, TenantCredential


@runtime_checkable
class IdentityResolverProtocol(Protocol):
    """Turns credentials into a ResolvedIdentity. Read-only.

    Raises AuthorizationError for missing, unknown, expired or unusable
    credentials.
    """

    async def resolve(self, credential: TenantCredential) -> ResolvedIdentity:
        """Resolve an API key token or a web session identity."""
        ...

    async def resolve_user(
        self, user_id: UUID, organization_id: Optional[UUID] = None
    ) -> ResolvedIdentity:
        """Resolve the identity used when impersonating ``user_id``."""
        ...
