"""Tests for the ORM listeners that keep ledger records append-only."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.orm import make_transient_to_detached

from creditline.core.exceptions import ImmutableFieldError
from creditline.db.immutability import (
    _check_ledger_entry_update,
    _reject_delete,
    _reject_update,
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from creditline.models.ledger_entry import LedgerEntry
from creditline.models.ledger_transaction import LedgerTransaction
from creditline.models.usage_credit_application import UsageCreditApplication

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def _persisted(obj):
    """Mark a freshly built instance as loaded so later assignments show up in history."""
    make_transient_to_detached(obj)
    return obj


def _entry(status: str) -> LedgerEntry:
    return _persisted(
        LedgerEntry(
            id=uuid4(),
            organization_id=uuid4(),
            livemode=True,
            ledger_transaction_id=uuid4(),
            ledger_account_id=uuid4(),
            subscription_id=uuid4(),
            direction="credit",
            entry_type="credit_grant_recognized",
            status=status,
            amount=10,
            entry_timestamp=NOW,
            discarded_at=None,
        )
    )


class TestLedgerEntryUpdates:
    def test_discarding_a_pending_entry_is_allowed(self):
        entry = _entry("pending")
        entry.discarded_at = NOW

        _check_ledger_entry_update(None, None, entry)

    def test_discarding_a_posted_entry_is_rejected(self):
        entry = _entry("posted")
        entry.discarded_at = NOW

        with pytest.raises(ImmutableFieldError) as exc_info:
            _check_ledger_entry_update(None, None, entry)
        assert exc_info.value.field_name == "discarded_at"

    def test_changing_amount_of_pending_entry_is_rejected(self):
        entry = _entry("pending")
        entry.amount = 11

        with pytest.raises(ImmutableFieldError):
            _check_ledger_entry_update(None, None, entry)

    def test_unchanged_entry_passes(self):
        _check_ledger_entry_update(None, None, _entry("posted"))


class TestAppendOnlyRecords:
    def test_transaction_update_is_rejected(self):
        header = _persisted(
            LedgerTransaction(
                id=uuid4(),
                organization_id=uuid4(),
                livemode=True,
                subscription_id=uuid4(),
                type="usage_event_processed",
                initiating_source_type="usage_event",
                initiating_source_id=str(uuid4()),
            )
        )
        header.description = "rewritten"

        with pytest.raises(ImmutableFieldError):
            _reject_update(None, None, header)

    def test_application_delete_is_rejected(self):
        application = UsageCreditApplication(id=uuid4(), amount_applied=5)

        with pytest.raises(ImmutableFieldError):
            _reject_delete(None, None, application)


class TestRegistration:
    def test_register_is_idempotent_and_reversible(self):
        register_immutability_listeners()
        register_immutability_listeners()

        assert event.contains(LedgerTransaction, "before_update", _reject_update)
        assert event.contains(LedgerEntry, "before_delete", _reject_delete)

        unregister_immutability_listeners()

        assert not event.contains(LedgerTransaction, "before_update", _reject_update)
        assert not event.contains(LedgerEntry, "before_update", _check_ledger_entry_update)
