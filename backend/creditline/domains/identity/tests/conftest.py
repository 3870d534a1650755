"""Identity domain test fixtures and helpers."""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

from creditline.core.credentials import hash_api_key_token
from creditline.core.shared_models import ApiKeyType, MembershipRole
from creditline.domains.identity.fakes.repository import (
    FakeApiKeyRepository,
    FakeMembershipRepository,
    FakeUserRepository,
)
from creditline.domains.identity.resolver import IdentityResolver
from creditline.models.api_key import APIKey
from creditline.models.membership import Membership
from creditline.models.user import User

DEFAULT_ORG_ID = UUID("00000000-0000-0000-0000-000000000001")
OTHER_ORG_ID = UUID("00000000-0000-0000-0000-000000000002")
DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-0000000000a1")
HASH_SECRET = "test-hash-secret"
TENANT_ROLE = "merchant"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _fake_db_context():
    yield AsyncMock()


def _make_user(user_id: UUID = DEFAULT_USER_ID, email: str = "owner@example.com") -> User:
    return User(id=user_id, email=email, full_name="Test Owner")


def _make_membership(
    user_id: UUID = DEFAULT_USER_ID,
    org_id: UUID = DEFAULT_ORG_ID,
    *,
    focused: bool = False,
    livemode: bool = True,
) -> Membership:
    return Membership(
        id=uuid4(),
        user_id=user_id,
        organization_id=org_id,
        role=MembershipRole.OWNER.value,
        focused=focused,
        livemode=livemode,
    )


def _make_api_key(
    token: str,
    org_id: UUID = DEFAULT_ORG_ID,
    **overrides: Any,
) -> APIKey:
    defaults = dict(
        id=uuid4(),
        organization_id=org_id,
        livemode=False,
        name="test key",
        token_hash=hash_api_key_token(token, HASH_SECRET),
        key_type=ApiKeyType.SECRET.value,
        expiration_date=datetime.now(timezone.utc) + timedelta(days=30),
        created_by_user_id=DEFAULT_USER_ID,
    )
    defaults.update(overrides)
    return APIKey(**defaults)


def _make_resolver(
    *,
    api_key_repo: Optional[FakeApiKeyRepository] = None,
    membership_repo: Optional[FakeMembershipRepository] = None,
    user_repo: Optional[FakeUserRepository] = None,
):
    """Build an IdentityResolver wired to fakes; the default user is always seeded."""
    akr = api_key_repo or FakeApiKeyRepository()
    mr = membership_repo or FakeMembershipRepository()
    ur = user_repo or FakeUserRepository()
    ur.seed(_make_user())

    resolver = IdentityResolver(
        api_key_repo=akr,
        membership_repo=mr,
        user_repo=ur,
        db_context=_fake_db_context,
        tenant_role=TENANT_ROLE,
        hash_secret=HASH_SECRET,
    )
    return resolver, akr, mr, ur
