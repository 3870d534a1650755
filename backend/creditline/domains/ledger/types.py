"""Ledger domain types and shared pure functions.

Allocation and balance arithmetic live here as plain functions so the database
queries and the in-memory fakes agree on one definition.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Protocol
from uuid import UUID

from creditline.domains.ledger.exceptions import LedgerInvariantError


class LedgerTransactionType(str, Enum):
    """One per ledger command variant."""

    USAGE_EVENT_PROCESSED = "usage_event_processed"
    PAYMENT_CONFIRMED = "payment_confirmed"
    PROMO_CREDIT_GRANTED = "promo_credit_granted"
    BILLING_RUN_USAGE_PROCESSED = "billing_run_usage_processed"
    BILLING_RUN_CREDIT_APPLIED = "billing_run_credit_applied"
    ADMIN_CREDIT_ADJUSTED = "admin_credit_adjusted"
    CREDIT_GRANT_EXPIRED = "credit_grant_expired"
    PAYMENT_REFUNDED = "payment_refunded"
    BILLING_RECALCULATED = "billing_recalculated"
    BILLING_PERIOD_TRANSITION = "billing_period_transition"


class LedgerEntryType(str, Enum):
    """What a ledger entry records."""

    USAGE_COST = "usage_cost"
    PAYMENT_RECOGNIZED = "payment_recognized"
    CREDIT_GRANT_RECOGNIZED = "credit_grant_recognized"
    CREDIT_APPLICATION_DEBIT_FROM_CREDIT_BALANCE = "credit_application_debit_from_credit_balance"
    CREDIT_APPLICATION_CREDIT_TOWARDS_USAGE_COST = "credit_application_credit_towards_usage_cost"
    CREDIT_BALANCE_ADJUSTED = "credit_balance_adjusted"
    CREDIT_GRANT_EXPIRED = "credit_grant_expired"
    PAYMENT_REFUNDED = "payment_refunded"


class LedgerEntryDirection(str, Enum):
    """Side of the entry."""

    DEBIT = "debit"
    CREDIT = "credit"


class LedgerEntryStatus(str, Enum):
    """Pending entries may still be discarded; posted entries are final."""

    POSTED = "posted"
    PENDING = "pending"


class NormalBalance(str, Enum):
    """Direction that increases an account's balance."""

    DEBIT = "debit"
    CREDIT = "credit"


class BalanceType(str, Enum):
    """Which entries a balance counts.

    POSTED: posted entries only.
    PENDING: posted plus pending entries in both directions.
    AVAILABLE: posted entries minus pending debits; pending credits are not yet
    spendable.
    """

    POSTED = "posted"
    PENDING = "pending"
    AVAILABLE = "available"


class InitiatingSourceType(str, Enum):
    """Kind of business event a ledger transaction records."""

    USAGE_EVENT = "usage_event"
    PAYMENT = "payment"
    USAGE_CREDIT = "usage_credit"
    BILLING_RUN = "billing_run"
    CREDIT_BALANCE_ADJUSTMENT = "credit_balance_adjustment"
    REFUND = "refund"
    BILLING_CALCULATION = "billing_calculation"
    BILLING_PERIOD = "billing_period"


@dataclass(frozen=True)
class CreditBalance:
    """Remaining balance of one usage credit on an account."""

    usage_credit_id: UUID
    balance: int
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class CreditAllocation:
    """Amount of one usage credit to apply to a charge."""

    usage_credit_id: UUID
    amount: int


@dataclass
class LedgerCommandResult:
    """Outcome of processing a ledger command.

    ``already_processed`` is True when the command had been recorded before; the
    header and entries are then the ones written the first time.
    """

    ledger_transaction: object
    ledger_entries: list = field(default_factory=list)
    usage_credit_applications: list = field(default_factory=list)
    already_processed: bool = False


class _Entry(Protocol):
    direction: str
    amount: int
    status: str
    discarded_at: Optional[datetime]


def allocation_order(balance: CreditBalance) -> tuple:
    """Sort key: soonest expiry first, non-expiring last, credit id breaks ties."""
    return (
        balance.expires_at is None,
        balance.expires_at or datetime.min,
        str(balance.usage_credit_id),
    )


def allocate_credits(charge: int, balances: Iterable[CreditBalance]) -> list[CreditAllocation]:
    """Greedily cover ``charge`` from ``balances`` in the order given.

    Credits with nothing left are skipped. Allocation stops once the charge is
    covered or the credits run out; any uncovered remainder stays on the account.
    """
    if charge < 0:
        raise LedgerInvariantError(f"Charge must not be negative, got {charge}")

    remaining = charge
    allocations: list[CreditAllocation] = []
    for credit in balances:
        if remaining == 0:
            break
        if credit.balance <= 0:
            continue
        applied = min(remaining, credit.balance)
        allocations.append(CreditAllocation(usage_credit_id=credit.usage_credit_id, amount=applied))
        remaining -= applied
    return allocations


def is_discarded(entry: _Entry, now: datetime) -> bool:
    """A discard takes effect once its timestamp has passed."""
    return entry.discarded_at is not None and entry.discarded_at <= now


def counts_towards(entry: _Entry, balance_type: BalanceType) -> bool:
    """Whether a non-discarded entry is part of ``balance_type``."""
    status = LedgerEntryStatus(entry.status)
    if status == LedgerEntryStatus.POSTED:
        return True
    if balance_type == BalanceType.PENDING:
        return True
    if balance_type == BalanceType.AVAILABLE:
        return entry.direction == LedgerEntryDirection.DEBIT.value
    return False


def signed_amount(entry: _Entry, normal_balance: NormalBalance) -> int:
    """Entry amount, positive on the account's normal side."""
    if entry.direction == normal_balance.value:
        return entry.amount
    return -entry.amount


def balance_from_entries(
    entries: Iterable[_Entry],
    balance_type: BalanceType,
    normal_balance: NormalBalance,
    now: datetime,
) -> int:
    """Signed balance of ``entries`` for one balance type."""
    return sum(
        signed_amount(entry, normal_balance)
        for entry in entries
        if not is_discarded(entry, now) and counts_towards(entry, balance_type)
    )
