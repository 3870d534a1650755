"""Identity resolver: API keys and web sessions to tenant identities."""

from datetime import datetime, timezone
from typing import AsyncContextManager, Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from creditline.core.credentials import hash_api_key_token
from creditline.core.logging import logger
from creditline.core.shared_models import ApiKeyType, AuthMethod
from creditline.domains.identity.exceptions import AuthorizationError
from creditline.domains.identity.protocols import IdentityResolverProtocol
from creditline.domains.identity.repository import (
    ApiKeyRepositoryProtocol,
    MembershipRepositoryProtocol,
    UserRepositoryProtocol,
)
from creditline.domains.identity.types import (
    ApiKeyCredential,
    ResolvedIdentity,
    SessionIdentity,
    TenantCredential,
)


class IdentityResolver(IdentityResolverProtocol):
    """Resolves credentials with plain lookups; never writes.

    Lookups run on their own short-lived session, outside any tenant
    transaction, because the tenant is not known yet.
    """

    def __init__(
        self,
        *,
        api_key_repo: ApiKeyRepositoryProtocol,
        membership_repo: MembershipRepositoryProtocol,
        user_repo: UserRepositoryProtocol,
        db_context: Callable[[], AsyncContextManager[AsyncSession]],
        tenant_role: str,
        hash_secret: Optional[str] = None,
    ) -> None:
        """Initialize with repositories and the role tenant work runs as."""
        self._api_keys = api_key_repo
        self._memberships = membership_repo
        self._users = user_repo
        self._db_context = db_context
        self._tenant_role = tenant_role
        self._hash_secret = hash_secret

    async def resolve(self, credential: TenantCredential) -> ResolvedIdentity:
        """Resolve an API key token or a web session identity."""
        if isinstance(credential, ApiKeyCredential):
            return await self._resolve_api_key(credential.token)
        if isinstance(credential, SessionIdentity):
            return await self._resolve_membership(
                credential.user_id, credential.organization_id, AuthMethod.SESSION
            )
        raise AuthorizationError("Unsupported credential")

    async def resolve_user(
        self, user_id: UUID, organization_id: Optional[UUID] = None
    ) -> ResolvedIdentity:
        """Resolve the identity used when impersonating ``user_id``."""
        return await self._resolve_membership(user_id, organization_id, AuthMethod.IMPERSONATION)

    async def _resolve_api_key(self, token: str) -> ResolvedIdentity:
        if not token:
            raise AuthorizationError("Missing API key")

        token_hash = hash_api_key_token(token, self._hash_secret)
        async with self._db_context() as db:
            api_key = await self._api_keys.get_by_token_hash(db, token_hash=token_hash)
            if api_key is None:
                raise AuthorizationError("Invalid API key")
            if api_key.key_type != ApiKeyType.SECRET.value:
                raise AuthorizationError("Publishable keys cannot open tenant transactions")
            if api_key.expiration_date and api_key.expiration_date <= datetime.now(timezone.utc):
                raise AuthorizationError("API key has expired")

            user_id = api_key.created_by_user_id
            if user_id is None:
                membership = await self._memberships.get_earliest_for_organization(
                    db, organization_id=api_key.organization_id
                )
                if membership is None:
                    raise AuthorizationError("API key organization has no members")
                user_id = membership.user_id
            user = await self._users.get(db, user_id)

        logger.with_context(organization_id=str(api_key.organization_id)).debug(
            f"Resolved API key {api_key.id} to user {user_id}"
        )
        return ResolvedIdentity(
            organization_id=api_key.organization_id,
            user_id=user_id,
            livemode=api_key.livemode,
            role=self._tenant_role,
            auth_method=AuthMethod.API_KEY,
            email=user.email if user else None,
        )

    async def _resolve_membership(
        self,
        user_id: UUID,
        organization_id: Optional[UUID],
        auth_method: AuthMethod,
    ) -> ResolvedIdentity:
        async with self._db_context() as db:
            membership = await self._memberships.get_for_user(
                db, user_id=user_id, organization_id=organization_id
            )
            if membership is None:
                if organization_id is not None:
                    raise AuthorizationError(
                        f"User {user_id} is not a member of organization {organization_id}"
                    )
                raise AuthorizationError(f"User {user_id} has no organization membership")
            user = await self._users.get(db, user_id)
            if user is None:
                raise AuthorizationError(f"User {user_id} not found")

        return ResolvedIdentity(
            organization_id=membership.organization_id,
            user_id=user_id,
            livemode=membership.livemode,
            role=self._tenant_role,
            auth_method=auth_method,
            email=user.email,
        )
