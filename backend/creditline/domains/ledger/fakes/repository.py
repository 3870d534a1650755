"""Fake ledger repositories for testing.

The fakes enforce the same unique keys as the database and compute balances
with the pure functions from ``domains.ledger.types``, so processor tests
exercise real idempotency and allocation behavior without PostgreSQL.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from creditline.core.context import BaseContext
from creditline.domains.ledger.types import (
    BalanceType,
    CreditBalance,
    LedgerEntryStatus,
    NormalBalance,
    allocation_order,
    balance_from_entries,
)
from creditline.models.ledger_account import LedgerAccount
from creditline.models.ledger_entry import LedgerEntry
from creditline.models.ledger_transaction import LedgerTransaction
from creditline.models.subscription import Subscription
from creditline.models.usage_credit_application import UsageCreditApplication
from creditline.schemas.ledger import LedgerAccountCreate, LedgerTransactionCreate
from creditline.schemas.usage import UsageCredit, UsageCreditApplicationCreate


def _visible(obj: Any, ctx: BaseContext) -> bool:
    if obj.livemode != ctx.livemode:
        return False
    return ctx.is_admin or obj.organization_id == ctx.organization_id


class _CallRecorder:
    def __init__(self) -> None:
        self._calls: list[tuple] = []

    def call_count(self, method: str) -> int:
        """Return the number of times a method was called."""
        return sum(1 for name, *_ in self._calls if name == method)


class FakeSubscriptionRepository(_CallRecorder):
    """In-memory fake for SubscriptionRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize empty store."""
        super().__init__()
        self._store: dict[UUID, Subscription] = {}

    def seed(self, subscription: Subscription) -> None:
        """Add a subscription."""
        self._store[subscription.id] = subscription

    async def get(self, db: AsyncSession, id: UUID, ctx: BaseContext) -> Optional[Subscription]:
        """Get a subscription visible in the context."""
        self._calls.append(("get", id))
        subscription = self._store.get(id)
        if subscription is None or not _visible(subscription, ctx):
            return None
        return subscription


class FakeLedgerAccountRepository(_CallRecorder):
    """In-memory fake for LedgerAccountRepositoryProtocol, unique per scope."""

    def __init__(self) -> None:
        """Initialize empty store."""
        super().__init__()
        self._by_scope: dict[tuple, LedgerAccount] = {}

    @property
    def accounts(self) -> list[LedgerAccount]:
        """All stored accounts."""
        return list(self._by_scope.values())

    async def get(self, db: AsyncSession, id: UUID, ctx: BaseContext) -> Optional[LedgerAccount]:
        """Get a ledger account visible in the context."""
        self._calls.append(("get", id))
        for account in self._by_scope.values():
            if account.id == id and _visible(account, ctx):
                return account
        return None

    async def find_or_create(
        self, db: AsyncSession, *, obj_in: LedgerAccountCreate, ctx: BaseContext
    ) -> LedgerAccount:
        """Return the account for the scope, creating it on first use."""
        self._calls.append(("find_or_create", obj_in))
        key = (ctx.organization_id, obj_in.subscription_id, obj_in.usage_meter_id, ctx.livemode)
        if key not in self._by_scope:
            self._by_scope[key] = LedgerAccount(
                id=uuid4(),
                organization_id=ctx.organization_id,
                livemode=ctx.livemode,
                **obj_in.model_dump(),
            )
        return self._by_scope[key]


class FakeLedgerTransactionRepository(_CallRecorder):
    """In-memory fake for LedgerTransactionRepositoryProtocol.

    Enforces both unique keys: the initiating source and the optional
    (subscription, idempotency key) pair.
    """

    def __init__(self) -> None:
        """Initialize empty store."""
        super().__init__()
        self._by_source: dict[tuple, LedgerTransaction] = {}
        self._by_idempotency_key: dict[tuple, LedgerTransaction] = {}

    @property
    def transactions(self) -> list[LedgerTransaction]:
        """All stored headers."""
        return list(self._by_source.values())

    async def insert_or_get_existing(
        self, db: AsyncSession, *, obj_in: LedgerTransactionCreate, ctx: BaseContext
    ) -> tuple[LedgerTransaction, bool]:
        """Insert a header or return the one already holding either key."""
        self._calls.append(("insert_or_get_existing", obj_in))
        source_key = (
            obj_in.type,
            obj_in.initiating_source_type,
            obj_in.initiating_source_id,
            ctx.livemode,
            ctx.organization_id,
        )
        if source_key in self._by_source:
            return self._by_source[source_key], False
        idem_key = None
        if obj_in.idempotency_key is not None:
            idem_key = (obj_in.subscription_id, obj_in.idempotency_key)
            if idem_key in self._by_idempotency_key:
                return self._by_idempotency_key[idem_key], False

        header = LedgerTransaction(
            id=uuid4(),
            organization_id=ctx.organization_id,
            livemode=ctx.livemode,
            **obj_in.model_dump(),
        )
        self._by_source[source_key] = header
        if idem_key is not None:
            self._by_idempotency_key[idem_key] = header
        return header, True


class FakeLedgerEntryRepository(_CallRecorder):
    """In-memory fake for LedgerEntryRepositoryProtocol.

    Usage credits must be seeded with ``seed_usage_credit`` so per-credit balances
    know each credit's expiry, mirroring the join in the real query.
    Set ``fail_on_create`` to make the next ``create_many`` raise.
    """

    def __init__(self) -> None:
        """Initialize empty store."""
        super().__init__()
        self.entries: list[LedgerEntry] = []
        self._credit_expiry: dict[UUID, Optional[datetime]] = {}
        self.fail_on_create: Optional[BaseException] = None

    def seed_usage_credit(self, credit: UsageCredit) -> None:
        """Register a usage credit's expiry."""
        self._credit_expiry[credit.id] = credit.expires_at

    def seed(self, entry: LedgerEntry) -> None:
        """Add an entry directly."""
        self.entries.append(entry)

    async def create_many(
        self, db: AsyncSession, *, objs_in: Sequence[dict[str, Any]], ctx: BaseContext
    ) -> list[LedgerEntry]:
        """Store entries."""
        self._calls.append(("create_many", list(objs_in)))
        if self.fail_on_create is not None:
            raise self.fail_on_create
        created = [
            LedgerEntry(
                id=uuid4(),
                organization_id=ctx.organization_id,
                livemode=ctx.livemode,
                **row,
            )
            for row in objs_in
        ]
        self.entries.extend(created)
        return created

    async def get_by_transaction(
        self, db: AsyncSession, *, ledger_transaction_id: UUID, ctx: BaseContext
    ) -> list[LedgerEntry]:
        """Get all entries of a ledger transaction."""
        self._calls.append(("get_by_transaction", ledger_transaction_id))
        return [
            e
            for e in self.entries
            if e.ledger_transaction_id == ledger_transaction_id and _visible(e, ctx)
        ]

    async def aggregate_balance(
        self,
        db: AsyncSession,
        *,
        ledger_account_id: UUID,
        balance_type: BalanceType,
        normal_balance: NormalBalance,
        now: datetime,
        ctx: BaseContext,
    ) -> int:
        """Signed balance of an account."""
        self._calls.append(("aggregate_balance", ledger_account_id, balance_type))
        entries = [
            e for e in self.entries if e.ledger_account_id == ledger_account_id and _visible(e, ctx)
        ]
        return balance_from_entries(entries, balance_type, normal_balance, now)

    async def usage_credit_balances(
        self,
        db: AsyncSession,
        *,
        ledger_account_id: UUID,
        normal_balance: NormalBalance,
        now: datetime,
        ctx: BaseContext,
    ) -> list[CreditBalance]:
        """Unexpired usage credits with a positive balance, in allocation order."""
        self._calls.append(("usage_credit_balances", ledger_account_id))
        by_credit: dict[UUID, list[LedgerEntry]] = defaultdict(list)
        for e in self.entries:
            if (
                e.ledger_account_id == ledger_account_id
                and e.source_usage_credit_id is not None
                and _visible(e, ctx)
            ):
                by_credit[e.source_usage_credit_id].append(e)

        balances = []
        for credit_id, entries in by_credit.items():
            expires_at = self._credit_expiry.get(credit_id)
            if expires_at is not None and expires_at <= now:
                continue
            balance = balance_from_entries(entries, BalanceType.POSTED, normal_balance, now)
            if balance > 0:
                balances.append(CreditBalance(credit_id, balance, expires_at))
        return sorted(balances, key=allocation_order)

    async def balance_for_usage_credit(
        self,
        db: AsyncSession,
        *,
        usage_credit_id: UUID,
        normal_balance: NormalBalance,
        now: datetime,
        ctx: BaseContext,
    ) -> int:
        """Remaining balance of one usage credit."""
        self._calls.append(("balance_for_usage_credit", usage_credit_id))
        entries = [
            e
            for e in self.entries
            if e.source_usage_credit_id == usage_credit_id and _visible(e, ctx)
        ]
        return balance_from_entries(entries, BalanceType.POSTED, normal_balance, now)

    async def discard_pending_for_payment(
        self,
        db: AsyncSession,
        *,
        payment_id: UUID,
        subscription_id: UUID,
        now: datetime,
        ctx: BaseContext,
    ) -> int:
        """Discard the pending entries of a payment."""
        self._calls.append(("discard_pending_for_payment", payment_id))
        count = 0
        for e in self.entries:
            if (
                e.source_payment_id == payment_id
                and e.subscription_id == subscription_id
                and e.status == LedgerEntryStatus.PENDING.value
                and e.discarded_at is None
                and _visible(e, ctx)
            ):
                e.discarded_at = now
                count += 1
        return count


class FakeUsageCreditApplicationRepository(_CallRecorder):
    """In-memory fake for UsageCreditApplicationRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize empty store."""
        super().__init__()
        self.applications: list[UsageCreditApplication] = []

    async def create_many(
        self,
        db: AsyncSession,
        *,
        objs_in: Sequence[UsageCreditApplicationCreate],
        ctx: BaseContext,
    ) -> list[UsageCreditApplication]:
        """Store applications in input order."""
        self._calls.append(("create_many", list(objs_in)))
        created = [
            UsageCreditApplication(
                id=uuid4(),
                organization_id=ctx.organization_id,
                livemode=ctx.livemode,
                **obj_in.model_dump(),
            )
            for obj_in in objs_in
        ]
        self.applications.extend(created)
        return created

    async def get_by_usage_event(
        self, db: AsyncSession, *, usage_event_id: UUID, ctx: BaseContext
    ) -> list[UsageCreditApplication]:
        """Get the applications recorded for a usage event."""
        self._calls.append(("get_by_usage_event", usage_event_id))
        return [
            a for a in self.applications if a.usage_event_id == usage_event_id and _visible(a, ctx)
        ]
