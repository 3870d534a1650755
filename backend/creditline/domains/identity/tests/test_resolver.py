"""Unit tests for IdentityResolver."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from creditline.core.shared_models import ApiKeyType, AuthMethod
from creditline.domains.identity.exceptions import AuthorizationError
from creditline.domains.identity.tests.conftest import (
    DEFAULT_ORG_ID,
    DEFAULT_USER_ID,
    OTHER_ORG_ID,
    TENANT_ROLE,
    _make_api_key,
    _make_membership,
    _make_resolver,
    _make_user,
)
from creditline.domains.identity.types import ApiKeyCredential, SessionIdentity

TOKEN = "sk_test_abc123"


# ---------------------------------------------------------------------------
# API keys
# ---------------------------------------------------------------------------


class TestResolveApiKey:
    @pytest.mark.asyncio
    async def test_valid_key_resolves_org_user_and_livemode(self):
        resolver, api_keys, *_ = _make_resolver()
        api_keys.seed(_make_api_key(TOKEN, livemode=False))

        identity = await resolver.resolve(ApiKeyCredential(TOKEN))

        assert identity.organization_id == DEFAULT_ORG_ID
        assert identity.user_id == DEFAULT_USER_ID
        assert identity.livemode is False
        assert identity.role == TENANT_ROLE
        assert identity.auth_method == AuthMethod.API_KEY
        assert identity.email == "owner@example.com"

    @pytest.mark.asyncio
    async def test_lookup_uses_hash_not_plain_token(self):
        resolver, api_keys, *_ = _make_resolver()
        api_keys.seed(_make_api_key(TOKEN))

        await resolver.resolve(ApiKeyCredential(TOKEN))

        (_, looked_up), = api_keys._calls
        assert looked_up != TOKEN
        assert len(looked_up) == 64

    @pytest.mark.asyncio
    async def test_unknown_key_is_rejected(self):
        resolver, *_ = _make_resolver()

        with pytest.raises(AuthorizationError, match="Invalid API key"):
            await resolver.resolve(ApiKeyCredential("sk_test_unknown"))

    @pytest.mark.asyncio
    async def test_empty_token_is_rejected_without_lookup(self):
        resolver, api_keys, *_ = _make_resolver()

        with pytest.raises(AuthorizationError, match="Missing API key"):
            await resolver.resolve(ApiKeyCredential(""))

        assert api_keys.call_count("get_by_token_hash") == 0

    @pytest.mark.asyncio
    async def test_expired_key_is_rejected(self):
        resolver, api_keys, *_ = _make_resolver()
        api_keys.seed(
            _make_api_key(TOKEN, expiration_date=datetime.now(timezone.utc) - timedelta(days=1))
        )

        with pytest.raises(AuthorizationError, match="expired"):
            await resolver.resolve(ApiKeyCredential(TOKEN))

    @pytest.mark.asyncio
    async def test_key_without_expiry_is_accepted(self):
        resolver, api_keys, *_ = _make_resolver()
        api_keys.seed(_make_api_key(TOKEN, expiration_date=None))

        identity = await resolver.resolve(ApiKeyCredential(TOKEN))

        assert identity.organization_id == DEFAULT_ORG_ID

    @pytest.mark.asyncio
    async def test_publishable_key_is_rejected(self):
        resolver, api_keys, *_ = _make_resolver()
        api_keys.seed(_make_api_key(TOKEN, key_type=ApiKeyType.PUBLISHABLE.value))

        with pytest.raises(AuthorizationError, match="Publishable"):
            await resolver.resolve(ApiKeyCredential(TOKEN))

    @pytest.mark.asyncio
    async def test_key_without_creator_falls_back_to_earliest_member(self):
        resolver, api_keys, memberships, users = _make_resolver()
        first_user = uuid4()
        users.seed(_make_user(first_user, email="first@example.com"))
        memberships.seed(_make_membership(first_user))
        memberships.seed(_make_membership(DEFAULT_USER_ID))
        api_keys.seed(_make_api_key(TOKEN, created_by_user_id=None))

        identity = await resolver.resolve(ApiKeyCredential(TOKEN))

        assert identity.user_id == first_user
        assert identity.email == "first@example.com"

    @pytest.mark.asyncio
    async def test_key_without_creator_or_members_is_rejected(self):
        resolver, api_keys, *_ = _make_resolver()
        api_keys.seed(_make_api_key(TOKEN, created_by_user_id=None))

        with pytest.raises(AuthorizationError, match="no members"):
            await resolver.resolve(ApiKeyCredential(TOKEN))

    def test_credential_repr_hides_token(self):
        assert TOKEN not in repr(ApiKeyCredential(TOKEN))


# ---------------------------------------------------------------------------
# Web sessions and impersonation
# ---------------------------------------------------------------------------


class TestResolveSession:
    @pytest.mark.asyncio
    async def test_focused_membership_wins(self):
        resolver, _, memberships, _ = _make_resolver()
        memberships.seed(_make_membership(org_id=OTHER_ORG_ID, focused=False))
        memberships.seed(_make_membership(org_id=DEFAULT_ORG_ID, focused=True, livemode=False))

        identity = await resolver.resolve(SessionIdentity(DEFAULT_USER_ID))

        assert identity.organization_id == DEFAULT_ORG_ID
        assert identity.livemode is False
        assert identity.auth_method == AuthMethod.SESSION

    @pytest.mark.asyncio
    async def test_explicit_organization_must_be_a_membership(self):
        resolver, _, memberships, _ = _make_resolver()
        memberships.seed(_make_membership(org_id=DEFAULT_ORG_ID, focused=True))

        with pytest.raises(AuthorizationError, match="not a member"):
            await resolver.resolve(SessionIdentity(DEFAULT_USER_ID, OTHER_ORG_ID))

    @pytest.mark.asyncio
    async def test_explicit_organization_overrides_focus(self):
        resolver, _, memberships, _ = _make_resolver()
        memberships.seed(_make_membership(org_id=DEFAULT_ORG_ID, focused=True))
        memberships.seed(_make_membership(org_id=OTHER_ORG_ID, focused=False))

        identity = await resolver.resolve(SessionIdentity(DEFAULT_USER_ID, OTHER_ORG_ID))

        assert identity.organization_id == OTHER_ORG_ID

    @pytest.mark.asyncio
    async def test_user_without_membership_is_rejected(self):
        resolver, *_ = _make_resolver()

        with pytest.raises(AuthorizationError, match="no organization membership"):
            await resolver.resolve(SessionIdentity(DEFAULT_USER_ID))

    @pytest.mark.asyncio
    async def test_impersonation_is_marked(self):
        resolver, _, memberships, _ = _make_resolver()
        memberships.seed(_make_membership(focused=True))

        identity = await resolver.resolve_user(DEFAULT_USER_ID)

        assert identity.auth_method == AuthMethod.IMPERSONATION
        assert identity.user_id == DEFAULT_USER_ID

    @pytest.mark.asyncio
    async def test_unsupported_credential_is_rejected(self):
        resolver, *_ = _make_resolver()

        with pytest.raises(AuthorizationError):
            await resolver.resolve("not-a-credential")
