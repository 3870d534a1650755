"""Fake implementations for identity domain testing."""

from creditline.domains.identity.fakes.repository import (
    FakeApiKeyRepository,
    FakeMembershipRepository,
    FakeUserRepository,
)
from creditline.domains.identity.fakes.resolver import FakeIdentityResolver

__all__ = [
    "FakeApiKeyRepository",
    "FakeIdentityResolver",
    "FakeMembershipRepository",
    "FakeUserRepository",
]
