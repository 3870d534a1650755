"""Ledger domain repositories wrapping the ledger crud singletons."""

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from creditline import crud
from creditline.core.context import BaseContext
from creditline.domains.ledger.types import BalanceType, CreditBalance, NormalBalance
from creditline.models.ledger_account import LedgerAccount
from creditline.models.ledger_entry import LedgerEntry
from creditline.models.ledger_transaction import LedgerTransaction
from creditline.models.subscription import Subscription
from creditline.models.usage_credit_application import UsageCreditApplication
from creditline.schemas.ledger import LedgerAccountCreate, LedgerTransactionCreate
from creditline.schemas.usage import UsageCreditApplicationCreate


class SubscriptionRepositoryProtocol(Protocol):
    """Data access for subscriptions."""

    async def get(self, db: AsyncSession, id: UUID, ctx: BaseContext) -> Optional[Subscription]:
        """Get a subscription visible in the context."""
        ...


class LedgerAccountRepositoryProtocol(Protocol):
    """Data access for ledger accounts."""

    async def get(self, db: AsyncSession, id: UUID, ctx: BaseContext) -> Optional[LedgerAccount]:
        """Get a ledger account visible in the context."""
        ...

    async def find_or_create(
        self, db: AsyncSession, *, obj_in: LedgerAccountCreate, ctx: BaseContext
    ) -> LedgerAccount:
        """Return the unique account for the subscription and meter, creating it if needed."""
        ...


class LedgerTransactionRepositoryProtocol(Protocol):
    """Data access for ledger transaction headers."""

    async def insert_or_get_existing(
        self, db: AsyncSession, *, obj_in: LedgerTransactionCreate, ctx: BaseContext
    ) -> tuple[LedgerTransaction, bool]:
        """Insert a header or return the existing one; the flag is True when inserted."""
        ...


class LedgerEntryRepositoryProtocol(Protocol):
    """Data access for ledger entries and the balances derived from them."""

    async def create_many(
        self, db: AsyncSession, *, objs_in: Sequence[dict[str, Any]], ctx: BaseContext
    ) -> list[LedgerEntry]:
        """Bulk insert entries."""
        ...

    async def get_by_transaction(
        self, db: AsyncSession, *, ledger_transaction_id: UUID, ctx: BaseContext
    ) -> list[LedgerEntry]:
        """Get all entries of a ledger transaction."""
        ...

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
        ...

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
        ...

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
        ...

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
        ...


class UsageCreditApplicationRepositoryProtocol(Protocol):
    """Data access for usage credit applications."""

    async def create_many(
        self,
        db: AsyncSession,
        *,
        objs_in: Sequence[UsageCreditApplicationCreate],
        ctx: BaseContext,
    ) -> list[UsageCreditApplication]:
        """Bulk insert applications, returned in input order."""
        ...

    async def get_by_usage_event(
        self, db: AsyncSession, *, usage_event_id: UUID, ctx: BaseContext
    ) -> list[UsageCreditApplication]:
        """Get the applications recorded for a usage event."""
        ...


class SubscriptionRepository(SubscriptionRepositoryProtocol):
    """Delegates to the crud.subscription singleton."""

    async def get(self, db: AsyncSession, id: UUID, ctx: BaseContext) -> Optional[Subscription]:
        """Get a subscription visible in the context."""
        return await crud.subscription.get(db, id, ctx)


class LedgerAccountRepository(LedgerAccountRepositoryProtocol):
    """Delegates to the crud.ledger_account singleton."""

    async def get(self, db: AsyncSession, id: UUID, ctx: BaseContext) -> Optional[LedgerAccount]:
        """Get a ledger account visible in the context."""
        return await crud.ledger_account.get(db, id, ctx)

    async def find_or_create(
        self, db: AsyncSession, *, obj_in: LedgerAccountCreate, ctx: BaseContext
    ) -> LedgerAccount:
        """Return the unique account for the subscription and meter, creating it if needed."""
        return await crud.ledger_account.find_or_create(db, obj_in=obj_in, ctx=ctx)


class LedgerTransactionRepository(LedgerTransactionRepositoryProtocol):
    """Delegates to the crud.ledger_transaction singleton."""

    async def insert_or_get_existing(
        self, db: AsyncSession, *, obj_in: LedgerTransactionCreate, ctx: BaseContext
    ) -> tuple[LedgerTransaction, bool]:
        """Insert a header or return the existing one."""
        return await crud.ledger_transaction.insert_or_get_existing(db, obj_in=obj_in, ctx=ctx)


class LedgerEntryRepository(LedgerEntryRepositoryProtocol):
    """Delegates to the crud.ledger_entry singleton."""

    async def create_many(
        self, db: AsyncSession, *, objs_in: Sequence[dict[str, Any]], ctx: BaseContext
    ) -> list[LedgerEntry]:
        """Bulk insert entries."""
        return await crud.ledger_entry.create_many(db, objs_in=objs_in, ctx=ctx)

    async def get_by_transaction(
        self, db: AsyncSession, *, ledger_transaction_id: UUID, ctx: BaseContext
    ) -> list[LedgerEntry]:
        """Get all entries of a ledger transaction."""
        return await crud.ledger_entry.get_by_transaction(
            db, ledger_transaction_id=ledger_transaction_id, ctx=ctx
        )

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
        return await crud.ledger_entry.aggregate_balance(
            db,
            ledger_account_id=ledger_account_id,
            balance_type=balance_type.value,
            normal_balance=normal_balance.value,
            now=now,
            ctx=ctx,
        )

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
        rows = await crud.ledger_entry.usage_credit_balances(
            db,
            ledger_account_id=ledger_account_id,
            normal_balance=normal_balance.value,
            now=now,
            ctx=ctx,
        )
        return [
            CreditBalance(usage_credit_id=credit_id, balance=balance, expires_at=expires_at)
            for credit_id, balance, expires_at in rows
        ]

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
        return await crud.ledger_entry.balance_for_usage_credit(
            db,
            usage_credit_id=usage_credit_id,
            normal_balance=normal_balance.value,
            now=now,
            ctx=ctx,
        )

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
        return await crud.ledger_entry.discard_pending_for_payment(
            db, payment_id=payment_id, subscription_id=subscription_id, now=now, ctx=ctx
        )


class UsageCreditApplicationRepository(UsageCreditApplicationRepositoryProtocol):
    """Delegates to the crud.usage_credit_application singleton."""

    async def create_many(
        self,
        db: AsyncSession,
        *,
        objs_in: Sequence[UsageCreditApplicationCreate],
        ctx: BaseContext,
    ) -> list[UsageCreditApplication]:
        """Bulk insert applications, returned in input order."""
        return await crud.usage_credit_application.create_many(db, objs_in=objs_in, ctx=ctx)

    async def get_by_usage_event(
        self, db: AsyncSession, *, usage_event_id: UUID, ctx: BaseContext
    ) -> list[UsageCreditApplication]:
        """Get the applications recorded for a usage event."""
        return await crud.usage_credit_application.get_by_usage_event(
            db, usage_event_id=usage_event_id, ctx=ctx
        )
