"""Fake tenant transaction service for testing."""

from typing import Optional
from unittest.mock import AsyncMock
from uuid import UUID

from creditline.core.context import RequestContext, SystemContext
from creditline.core.shared_models import AuthMethod
from creditline.domains.identity.types import TenantCredential
from creditline.domains.tenancy.protocols import TenantTransactionServiceProtocol
from creditline.domains.tenancy.types import T, TenantTransaction, UnitOfWork


class FakeTenantTransactionService(TenantTransactionServiceProtocol):
    """Test implementation of TenantTransactionServiceProtocol.

    Runs the unit of work immediately with a mock session and a context for the
    configured tenant. Every run is recorded in ``runs`` as (entry point, ctx).
    """

    def __init__(self, organization_id: UUID, user_id: UUID, livemode: bool = True) -> None:
        """Configure the tenant every non-admin run acts as."""
        self.organization_id = organization_id
        self.user_id = user_id
        self.livemode = livemode
        self.session = AsyncMock()
        self.runs: list[tuple[str, object]] = []

    async def run_as_tenant(self, credential: TenantCredential, work: UnitOfWork[T]) -> T:
        """Run ``work`` as the configured tenant."""
        return await self._run("tenant", AuthMethod.API_KEY, self.user_id, work)

    async def run_as_user(
        self,
        user_id: UUID,
        work: UnitOfWork[T],
        organization_id: Optional[UUID] = None,
    ) -> T:
        """Run ``work`` impersonating ``user_id`` in the configured tenant."""
        return await self._run("user", AuthMethod.IMPERSONATION, user_id, work)

    async def run_as_admin(self, work: UnitOfWork[T], livemode: bool = True) -> T:
        """Run ``work`` with a system context."""
        ctx = SystemContext(organization_id=None, livemode=livemode)
        self.runs.append(("admin", ctx))
        return await work(TenantTransaction(session=self.session, ctx=ctx))

    async def _run(self, kind: str, method: AuthMethod, user_id: UUID, work: UnitOfWork[T]) -> T:
        ctx = RequestContext(
            organization_id=self.organization_id,
            livemode=self.livemode,
            acting_user_id=user_id,
            role="merchant",
            auth_method=method,
        )
        self.runs.append((kind, ctx))
        return await work(TenantTransaction(session=self.session, ctx=ctx))
