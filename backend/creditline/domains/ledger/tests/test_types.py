"""Tests for ledger pure functions: credit allocation and balance arithmetic."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import UUID

import pytest

from creditline.domains.ledger.exceptions import LedgerInvariantError
from creditline.domains.ledger.types import (
    BalanceType,
    CreditAllocation,
    CreditBalance,
    NormalBalance,
    allocate_credits,
    allocation_order,
    balance_from_entries,
)

NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)
A = UUID("00000000-0000-0000-0000-00000000000a")
B = UUID("00000000-0000-0000-0000-00000000000b")
C = UUID("00000000-0000-0000-0000-00000000000c")


def _entry(direction: str, amount: int, status: str = "posted", discarded_at=None):
    return SimpleNamespace(
        direction=direction, amount=amount, status=status, discarded_at=discarded_at
    )


# ---------------------------------------------------------------------------
# allocate_credits
# ---------------------------------------------------------------------------


class TestAllocateCredits:
    def test_greedy_in_given_order(self):
        balances = [CreditBalance(A, 30), CreditBalance(B, 90)]

        assert allocate_credits(100, balances) == [
            CreditAllocation(A, 30),
            CreditAllocation(B, 70),
        ]

    def test_zero_balance_is_skipped(self):
        balances = [CreditBalance(A, 0), CreditBalance(B, 50)]

        assert allocate_credits(20, balances) == [CreditAllocation(B, 20)]

    def test_stops_once_covered(self):
        balances = [CreditBalance(A, 50), CreditBalance(B, 50), CreditBalance(C, 50)]

        assert allocate_credits(60, balances) == [
            CreditAllocation(A, 50),
            CreditAllocation(B, 10),
        ]

    def test_exhausted_credits_leave_remainder_uncovered(self):
        allocations = allocate_credits(100, [CreditBalance(A, 40)])

        assert allocations == [CreditAllocation(A, 40)]

    def test_no_credits(self):
        assert allocate_credits(100, []) == []

    def test_zero_charge(self):
        assert allocate_credits(0, [CreditBalance(A, 10)]) == []

    def test_negative_charge_is_rejected(self):
        with pytest.raises(LedgerInvariantError):
            allocate_credits(-1, [CreditBalance(A, 10)])


class TestAllocationOrder:
    def test_soonest_expiry_first_and_non_expiring_last(self):
        never = CreditBalance(A, 10, None)
        late = CreditBalance(B, 10, NOW + timedelta(days=30))
        soon = CreditBalance(C, 10, NOW + timedelta(days=1))

        assert sorted([never, late, soon], key=allocation_order) == [soon, late, never]

    def test_equal_expiry_breaks_ties_on_credit_id(self):
        expires = NOW + timedelta(days=5)
        first = CreditBalance(A, 10, expires)
        second = CreditBalance(B, 10, expires)

        assert sorted([second, first], key=allocation_order) == [first, second]


# ---------------------------------------------------------------------------
# balance_from_entries
# ---------------------------------------------------------------------------


class TestBalanceFromEntries:
    def _balance(self, entries, balance_type, normal=NormalBalance.CREDIT):
        return balance_from_entries(entries, balance_type, normal, NOW)

    def test_credit_adds_and_debit_subtracts_on_credit_normal_account(self):
        entries = [_entry("credit", 120), _entry("debit", 100)]

        assert self._balance(entries, BalanceType.POSTED) == 20

    def test_debit_normal_account_flips_signs(self):
        entries = [_entry("credit", 120), _entry("debit", 100)]

        assert self._balance(entries, BalanceType.POSTED, NormalBalance.DEBIT) == -20

    def test_posted_ignores_pending(self):
        entries = [_entry("credit", 50), _entry("debit", 10, "pending")]

        assert self._balance(entries, BalanceType.POSTED) == 50

    def test_pending_includes_both_directions(self):
        entries = [
            _entry("credit", 50),
            _entry("debit", 10, "pending"),
            _entry("credit", 5, "pending"),
        ]

        assert self._balance(entries, BalanceType.PENDING) == 45

    def test_available_excludes_pending_credits(self):
        entries = [
            _entry("credit", 50),
            _entry("debit", 10, "pending"),
            _entry("credit", 5, "pending"),
        ]

        assert self._balance(entries, BalanceType.AVAILABLE) == 40

    def test_discarded_entries_are_ignored_in_every_mode(self):
        entries = [
            _entry("credit", 50),
            _entry("debit", 10, "pending", discarded_at=NOW - timedelta(seconds=1)),
        ]

        for balance_type in BalanceType:
            assert self._balance(entries, balance_type) == 50

    def test_future_discard_has_not_taken_effect(self):
        entries = [
            _entry("credit", 50),
            _entry("debit", 10, "pending", discarded_at=NOW + timedelta(hours=1)),
        ]

        assert self._balance(entries, BalanceType.AVAILABLE) == 40

    def test_empty(self):
        assert self._balance([], BalanceType.AVAILABLE) == 0
