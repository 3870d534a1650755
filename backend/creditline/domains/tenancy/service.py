"""Tenant transaction service.

Turns the shared connection pool into a per-call security boundary. Each unit of
work gets one transaction whose session state tells PostgreSQL row-level
security who is acting:

    1. residual role and claims are cleared
    2. claims, role and livemode are set transaction-locally
    3. the unit of work runs
    4. the role is reset before commit or rollback
"""

import json
import re
from typing import AsyncContextManager, Callable, Optional
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_random_exponential

from creditline.core.context import BaseContext, RequestContext, SystemContext
from creditline.core.exceptions import InvalidStateError
from creditline.core.logging import logger
from creditline.domains.identity.protocols import IdentityResolverProtocol
from creditline.domains.identity.types import ResolvedIdentity, TenantCredential, build_claims
from creditline.domains.tenancy.protocols import TenantTransactionServiceProtocol
from creditline.domains.tenancy.types import T, TenantTransaction, UnitOfWork

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})

RESET_ROLE = text("RESET ROLE")
SET_CLAIMS = text("SELECT set_config('request.jwt.claims', :claims, true)")
SET_LIVEMODE = text("SELECT set_config('app.livemode', :livemode, true)")


def _is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code in RETRYABLE_SQLSTATES


def set_role_statement(role: str):
    """``SET LOCAL ROLE`` for a validated role name (roles cannot be bound)."""
    if not _IDENTIFIER.match(role):
        raise InvalidStateError(f"Refusing to switch to invalid role {role!r}")
    return text(f'SET LOCAL ROLE "{role}"')


class TenantTransactionService(TenantTransactionServiceProtocol):
    """Establishes tenant-scoped transactions for units of work."""

    def __init__(
        self,
        *,
        session_factory: Callable[[], AsyncContextManager[AsyncSession]],
        identity_resolver: IdentityResolverProtocol,
        max_attempts: int = 3,
    ) -> None:
        """Initialize with a session factory and the identity resolver."""
        self._session_factory = session_factory
        self._resolver = identity_resolver
        self._max_attempts = max_attempts

    async def run_as_tenant(self, credential: TenantCredential, work: UnitOfWork[T]) -> T:
        """Run ``work`` as the tenant behind an API key or web session."""
        identity = await self._resolver.resolve(credential)
        return await self._run_as_identity(identity, work)

    async def run_as_user(
        self,
        user_id: UUID,
        work: UnitOfWork[T],
        organization_id: Optional[UUID] = None,
    ) -> T:
        """Run ``work`` impersonating ``user_id``."""
        identity = await self._resolver.resolve_user(user_id, organization_id)
        return await self._run_as_identity(identity, work)

    async def run_as_admin(self, work: UnitOfWork[T], livemode: bool = True) -> T:
        """Run ``work`` with no tenant restriction. Trusted internal code only."""
        ctx = SystemContext(organization_id=None, livemode=livemode)
        ctx.logger.debug("Opening administrative transaction")
        return await self._with_retries(ctx, None, work)

    async def _run_as_identity(self, identity: ResolvedIdentity, work: UnitOfWork[T]) -> T:
        claims = build_claims(identity)
        ctx = RequestContext(
            organization_id=identity.organization_id,
            livemode=identity.livemode,
            acting_user_id=identity.user_id,
            role=identity.role,
            auth_method=identity.auth_method,
            claims=claims,
        )
        ctx.logger.debug(f"Opening tenant transaction for {ctx}")
        return await self._with_retries(ctx, claims, work)

    async def _with_retries(
        self, ctx: BaseContext, claims: Optional[dict], work: UnitOfWork[T]
    ) -> T:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            retry=retry_if_exception(_is_retryable),
            wait=wait_random_exponential(multiplier=0.05, max=1),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    ctx.logger.warning(
                        f"Retrying transaction (attempt {attempt.retry_state.attempt_number})"
                    )
                return await self._execute(ctx, claims, work)

    async def _execute(
        self, ctx: BaseContext, claims: Optional[dict], work: UnitOfWork[T]
    ) -> T:
        async with self._session_factory() as session:
            async with session.begin():
                await self._clear_security_state(session)
                if claims is not None:
                    await session.execute(SET_CLAIMS, {"claims": json.dumps(claims)})
                    await session.execute(set_role_statement(ctx.role))
                await session.execute(SET_LIVEMODE, {"livemode": str(ctx.livemode).lower()})
                try:
                    return await work(TenantTransaction(session=session, ctx=ctx))
                finally:
                    await self._reset_role(session, ctx)

    @staticmethod
    async def _clear_security_state(session: AsyncSession) -> None:
        await session.execute(RESET_ROLE)
        await session.execute(SET_CLAIMS, {"claims": ""})

    @staticmethod
    async def _reset_role(session: AsyncSession, ctx: BaseContext) -> None:
        try:
            await session.execute(RESET_ROLE)
        except SQLAlchemyError as e:
            # An aborted transaction rejects every statement until rollback
            ctx.logger.debug(f"Role reset skipped on aborted transaction: {e}")
