"""Base context for all operations.

Provides the context types that every data-access call receives explicitly.
CRUD layer and services type-hint against BaseContext. ``RequestContext`` is
produced by the tenant transaction establisher for authenticated and impersonated
work; ``SystemContext`` is used by trusted administrative code paths.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import UUID

from creditline.core.logging import ContextualLogger
from creditline.core.shared_models import AuthMethod


@dataclass
class BaseContext:
    """Base context for all operations.

    Carries the tenant scope (organization and livemode partition) used by the
    CRUD base class, plus a contextual logger carrying the same dimensions.

    ``organization_id`` is None only for administrative contexts, which are not
    scoped to a single tenant.
    """

    organization_id: Optional[UUID]
    livemode: bool

    logger: ContextualLogger = field(default=None, kw_only=True, repr=False)

    def __post_init__(self):
        """Auto-derive logger from tenant identity if not provided."""
        if self.logger is None:
            from creditline.core.logging import logger as base_logger

            dims: Dict[str, str] = {
                "organization_id": str(self.organization_id),
                "livemode": str(self.livemode).lower(),
            }
            self.logger = base_logger.with_context(**dims)

    @property
    def user_id(self) -> Optional[UUID]:
        """User ID if available."""
        return None

    @property
    def is_admin(self) -> bool:
        """Whether this context bypasses tenant scoping."""
        return False


@dataclass
class RequestContext(BaseContext):
    """Context for work performed on behalf of a tenant user.

    Created by the tenant transaction service once the identity has been resolved.
    ``claims`` is exactly what was injected into the database session.
    """

    acting_user_id: Optional[UUID] = None
    role: str = ""
    auth_method: AuthMethod = AuthMethod.API_KEY
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def user_id(self) -> Optional[UUID]:
        """User ID if available."""
        return self.acting_user_id

    def __str__(self) -> str:
        """String representation for logging."""
        return (
            f"RequestContext(method={self.auth_method.value}, user={self.acting_user_id}, "
            f"org={self.organization_id}, livemode={self.livemode})"
        )


@dataclass
class SystemContext(BaseContext):
    """Context for trusted internal code (scheduled jobs, reconciliation)."""

    auth_method: AuthMethod = AuthMethod.SYSTEM

    @property
    def is_admin(self) -> bool:
        """Administrative contexts are not restricted to one tenant."""
        return True
