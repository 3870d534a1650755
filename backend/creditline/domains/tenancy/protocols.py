"""Tenancy domain protocols."""

from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from creditline.domains.identity.types import TenantCredential
from creditline.domains.tenancy.types import T, UnitOfWork


@runtime_checkable
class TenantTransactionServiceProtocol(Protocol):
    """Runs a unit of work inside one database transaction scoped to a tenant.

    Every entry point resolves the identity before a session is opened, so an
    authorization failure has no database side effect.
    """

    async def run_as_tenant(self, credential: TenantCredential, work: UnitOfWork[T]) -> T:
        """Run ``work`` as the tenant behind an API key or web session."""
        ...

    async def run_as_user(
        self,
        user_id: UUID,
        work: UnitOfWork[T],
        organization_id: Optional[UUID] = None,
    ) -> T:
        """Run ``work`` impersonating ``user_id``."""
        ...

    async def run_as_admin(self, work: UnitOfWork[T], livemode: bool = True) -> T:
        """Run ``work`` with no tenant restriction. Trusted internal code only."""
        ...
