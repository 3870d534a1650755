"""Root conftest for pytest configuration and shared fixtures.

This conftest is loaded before both testpaths (tests/ and creditline/domains/),
making its fixtures available to centralized tests AND colocated domain tests.
"""

import os
from uuid import UUID

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables: must be set before any creditline module import
# Uses setdefault so real env vars (CI) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test_user")
os.environ.setdefault("POSTGRES_PASSWORD", "test_password")
os.environ.setdefault("POSTGRES_DB", "test_db")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("API_KEY_HASH_SECRET", "test-api-key-hash-secret")

TEST_ORG_ID = UUID("00000000-0000-0000-0000-00000000f001")
TEST_USER_ID = UUID("00000000-0000-0000-0000-00000000f0a1")


# ---------------------------------------------------------------------------
# Shared fake fixtures: individual protocol fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_identity_resolver():
    """Fake IdentityResolver with no registered credentials."""
    from creditline.domains.identity.fakes.resolver import FakeIdentityResolver

    return FakeIdentityResolver()


@pytest.fixture
def fake_tenant_transactions():
    """Fake TenantTransactionService that runs work immediately for one tenant."""
    from creditline.domains.tenancy.fakes.service import FakeTenantTransactionService

    return FakeTenantTransactionService(TEST_ORG_ID, TEST_USER_ID)


@pytest.fixture
def fake_ledger_repositories():
    """In-memory ledger repositories, keyed by role."""
    from creditline.domains.ledger.fakes.repository import (
        FakeLedgerAccountRepository,
        FakeLedgerEntryRepository,
        FakeLedgerTransactionRepository,
        FakeSubscriptionRepository,
        FakeUsageCreditApplicationRepository,
    )

    return {
        "subscription_repo": FakeSubscriptionRepository(),
        "account_repo": FakeLedgerAccountRepository(),
        "transaction_repo": FakeLedgerTransactionRepository(),
        "entry_repo": FakeLedgerEntryRepository(),
        "application_repo": FakeUsageCreditApplicationRepository(),
    }


# ---------------------------------------------------------------------------
# Test container: fully faked Container for injection
# ---------------------------------------------------------------------------


@pytest.fixture
def test_container(fake_identity_resolver, fake_tenant_transactions, fake_ledger_repositories):
    """A Container whose services run on fakes.

    For partial overrides, use container.replace():
        modified = test_container.replace(ledger_processor=other_processor)
    """
    from creditline.core.container import Container
    from creditline.domains.ledger.balance import BalanceAggregator
    from creditline.domains.ledger.processor import LedgerCommandProcessor

    repos = fake_ledger_repositories
    return Container(
        identity_resolver=fake_identity_resolver,
        tenant_transactions=fake_tenant_transactions,
        ledger_processor=LedgerCommandProcessor(**repos),
        balance_aggregator=BalanceAggregator(
            account_repo=repos["account_repo"], entry_repo=repos["entry_repo"]
        ),
    )
