"""Fake implementations for ledger domain testing."""

from creditline.domains.ledger.fakes.repository import (
    FakeLedgerAccountRepository,
    FakeLedgerEntryRepository,
    FakeLedgerTransactionRepository,
    FakeSubscriptionRepository,
    FakeUsageCreditApplicationRepository,
)

__all__ = [
    "FakeLedgerAccountRepository",
    "FakeLedgerEntryRepository",
    "FakeLedgerTransactionRepository",
    "FakeSubscriptionRepository",
    "FakeUsageCreditApplicationRepository",
]
