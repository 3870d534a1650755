"""Ledger domain protocols.

LedgerCommandProcessor: writes. Turns one command into one ledger transaction.
BalanceAggregator: reads. Computes balances from entries on every call.
"""

from typing import Protocol, runtime_checkable
from uuid import UUID

from creditline.domains.ledger.commands import LedgerCommand
from creditline.domains.ledger.types import BalanceType, LedgerCommandResult
from creditline.domains.tenancy.types import TenantTransaction


@runtime_checkable
class LedgerCommandProcessorProtocol(Protocol):
    """Persists ledger commands inside the caller's tenant transaction.

    Replaying a command is a no-op that returns the originally written records.
    """

    async def process(self, command: LedgerCommand, tx: TenantTransaction) -> LedgerCommandResult:
        """Record ``command`` as one ledger transaction and its entries."""
        ...

    async def expire_pending_entries_for_payment(
        self, payment_id: UUID, subscription_id: UUID, tx: TenantTransaction
    ) -> int:
        """Discard a payment's pending entries. Returns how many were discarded."""
        ...


@runtime_checkable
class BalanceAggregatorProtocol(Protocol):
    """Read-only balance computation."""

    async def compute_balance(
        self, ledger_account_id: UUID, mode: BalanceType, tx: TenantTransaction
    ) -> int:
        """Signed balance of an account in the given mode."""
        ...
