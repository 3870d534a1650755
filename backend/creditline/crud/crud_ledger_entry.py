"""CRUD operations for ledger entries.

Balances are never stored; every figure here is summed from entries at read time.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from creditline.core.context import BaseContext
from creditline.crud._base_organization import CRUDBaseOrganization
from creditline.models.ledger_entry import LedgerEntry
from creditline.models.usage_credit import UsageCredit
from creditline.schemas.ledger import LedgerEntryCreate

POSTED = "posted"
PENDING = "pending"
DEBIT = "debit"


def _not_discarded(now: datetime):
    return or_(LedgerEntry.discarded_at.is_(None), LedgerEntry.discarded_at > now)


def _signed_amount(normal_balance: str):
    return case(
        (LedgerEntry.direction == normal_balance, LedgerEntry.amount),
        else_=-LedgerEntry.amount,
    )


class CRUDLedgerEntry(CRUDBaseOrganization[LedgerEntry, LedgerEntryCreate]):
    """CRUD operations for ledger entries."""

    async def get_by_transaction(
        self, db: AsyncSession, *, ledger_transaction_id: UUID, ctx: BaseContext
    ) -> list[LedgerEntry]:
        """Get all entries of a ledger transaction."""
        query = self._scoped(
            select(LedgerEntry)
            .where(LedgerEntry.ledger_transaction_id == ledger_transaction_id)
            .order_by(LedgerEntry.entry_timestamp, LedgerEntry.id),
            ctx,
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def aggregate_balance(
        self,
        db: AsyncSession,
        *,
        ledger_account_id: UUID,
        balance_type: str,
        normal_balance: str,
        now: datetime,
        ctx: BaseContext,
    ) -> int:
        """Sum the signed entries of an account.

        ``posted`` counts posted entries only, ``pending`` adds pending entries in
        both directions, ``available`` adds pending debits only.
        """
        if balance_type == POSTED:
            status_filter = LedgerEntry.status == POSTED
        elif balance_type == PENDING:
            status_filter = LedgerEntry.status.in_([POSTED, PENDING])
        else:
            status_filter = or_(
                LedgerEntry.status == POSTED,
                and_(LedgerEntry.status == PENDING, LedgerEntry.direction == DEBIT),
            )

        query = self._scoped(
            select(func.coalesce(func.sum(_signed_amount(normal_balance)), 0)).where(
                LedgerEntry.ledger_account_id == ledger_account_id,
                status_filter,
                _not_discarded(now),
            ),
            ctx,
        )
        result = await db.execute(query)
        return int(result.scalar_one())

    async def usage_credit_balances(
        self,
        db: AsyncSession,
        *,
        ledger_account_id: UUID,
        normal_balance: str,
        now: datetime,
        ctx: BaseContext,
    ) -> list[tuple[UUID, int, Optional[datetime]]]:
        """Remaining balance per unexpired usage credit with something left.

        Rows come back as (usage_credit_id, balance, expires_at), soonest expiry
        first, non-expiring credits last, credit id breaking ties.
        """
        balance = func.sum(_signed_amount(normal_balance))
        query = self._scoped(
            select(LedgerEntry.source_usage_credit_id, balance, UsageCredit.expires_at)
            .join(UsageCredit, UsageCredit.id == LedgerEntry.source_usage_credit_id)
            .where(
                LedgerEntry.ledger_account_id == ledger_account_id,
                LedgerEntry.status == POSTED,
                _not_discarded(now),
                or_(UsageCredit.expires_at.is_(None), UsageCredit.expires_at > now),
            )
            .group_by(LedgerEntry.source_usage_credit_id, UsageCredit.expires_at)
            .having(balance > 0)
            .order_by(
                UsageCredit.expires_at.asc().nulls_last(),
                LedgerEntry.source_usage_credit_id.asc(),
            ),
            ctx,
        )
        result = await db.execute(query)
        return [(row[0], int(row[1]), row[2]) for row in result.all()]

    async def balance_for_usage_credit(
        self,
        db: AsyncSession,
        *,
        usage_credit_id: UUID,
        normal_balance: str,
        now: datetime,
        ctx: BaseContext,
    ) -> int:
        """Remaining posted balance of a single usage credit."""
        query = self._scoped(
            select(func.coalesce(func.sum(_signed_amount(normal_balance)), 0)).where(
                LedgerEntry.source_usage_credit_id == usage_credit_id,
                LedgerEntry.status == POSTED,
                _not_discarded(now),
            ),
            ctx,
        )
        result = await db.execute(query)
        return int(result.scalar_one())

    async def discard_pending_for_payment(
        self,
        db: AsyncSession,
        *,
        payment_id: UUID,
        subscription_id: UUID,
        now: datetime,
        ctx: BaseContext,
    ) -> int:
        """Mark pending entries of a payment as discarded. Returns the row count."""
        stmt = update(LedgerEntry).where(
            LedgerEntry.source_payment_id == payment_id,
            LedgerEntry.subscription_id == subscription_id,
            LedgerEntry.status == PENDING,
            LedgerEntry.discarded_at.is_(None),
            LedgerEntry.livemode == ctx.livemode,
        )
        if not ctx.is_admin:
            stmt = stmt.where(LedgerEntry.organization_id == ctx.organization_id)
        result = await db.execute(
            stmt.values(discarded_at=now).execution_options(synchronize_session=False)
        )
        return result.rowcount


ledger_entry = CRUDLedgerEntry(LedgerEntry)
