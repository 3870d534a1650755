"""Balance aggregator: account balances computed from entries on every read."""

from datetime import datetime
from typing import Callable
from uuid import UUID

from creditline.core.datetime_utils import utc_now
from creditline.domains.ledger.exceptions import LedgerReferenceError
from creditline.domains.ledger.protocols import BalanceAggregatorProtocol
from creditline.domains.ledger.repository import (
    LedgerAccountRepositoryProtocol,
    LedgerEntryRepositoryProtocol,
)
from creditline.domains.ledger.types import BalanceType, NormalBalance
from creditline.domains.tenancy.types import TenantTransaction


class BalanceAggregator(BalanceAggregatorProtocol):
    """Sums an account's entries; nothing is cached between calls.

    The result is positive on the account's normal side, so a credit-normal
    usage credit account reports remaining prepaid usage as a positive number.
    """

    def __init__(
        self,
        *,
        account_repo: LedgerAccountRepositoryProtocol,
        entry_repo: LedgerEntryRepositoryProtocol,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize with repositories."""
        self._accounts = account_repo
        self._entries = entry_repo
        self._clock = clock

    async def compute_balance(
        self, ledger_account_id: UUID, mode: BalanceType, tx: TenantTransaction
    ) -> int:
        """Signed balance of an account in the given mode.

        Raises:
            LedgerReferenceError: the account is not visible in this transaction
        """
        account = await self._accounts.get(tx.session, ledger_account_id, tx.ctx)
        if account is None:
            raise LedgerReferenceError(f"Ledger account {ledger_account_id} not found")

        return await self._entries.aggregate_balance(
            tx.session,
            ledger_account_id=account.id,
            balance_type=BalanceType(mode),
            normal_balance=NormalBalance(account.normal_balance),
            now=self._clock(),
            ctx=tx.ctx,
        )
