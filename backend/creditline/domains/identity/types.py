"""Identity domain types and pure functions."""

from dataclasses import dataclass
from typing import Any, Optional, Union
from uuid import UUID

from creditline.core.shared_models import AuthMethod


@dataclass(frozen=True)
class ApiKeyCredential:
    """A plain API key token as presented by a caller."""

    token: str

    def __repr__(self) -> str:
        """Never print the token."""
        return "ApiKeyCredential(token=***)"


@dataclass(frozen=True)
class SessionIdentity:
    """A web identity already authenticated by the external identity provider.

    ``organization_id`` pins the session to one organization; when omitted the
    user's focused membership decides.
    """

    user_id: UUID
    organization_id: Optional[UUID] = None


TenantCredential = Union[ApiKeyCredential, SessionIdentity]


@dataclass(frozen=True)
class ResolvedIdentity:
    """Who is acting, for which tenant, in which livemode partition."""

    organization_id: UUID
    user_id: UUID
    livemode: bool
    role: str
    auth_method: AuthMethod
    email: Optional[str] = None


def build_claims(identity: ResolvedIdentity) -> dict[str, Any]:
    """Build the claim set injected into the database session.

    Row-level security policies read ``organization_id`` and ``sub`` from it.
    """
    return {
        "sub": str(identity.user_id),
        "role": identity.role,
        "organization_id": str(identity.organization_id),
        "email": identity.email or "",
        "livemode": identity.livemode,
        "app_metadata": {"provider": identity.auth_method.value},
    }
