"""CRUD operations for ledger transactions."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from creditline.core.context import BaseContext
from creditline.core.exceptions import InvalidStateError
from creditline.crud._base_organization import CRUDBaseOrganization
from creditline.models.ledger_transaction import LedgerTransaction
from creditline.schemas.ledger import LedgerTransactionCreate


class CRUDLedgerTransaction(CRUDBaseOrganization[LedgerTransaction, LedgerTransactionCreate]):
    """CRUD operations for ledger transactions.

    Headers are never updated or deleted; there are no such methods here.
    """

    async def get_by_initiating_source(
        self,
        db: AsyncSession,
        *,
        type: str,
        initiating_source_type: str,
        initiating_source_id: str,
        ctx: BaseContext,
    ) -> Optional[LedgerTransaction]:
        """Get the header recorded for a business event, if any."""
        query = self._scoped(
            select(LedgerTransaction).where(
                LedgerTransaction.type == type,
                LedgerTransaction.initiating_source_type == initiating_source_type,
                LedgerTransaction.initiating_source_id == initiating_source_id,
            ),
            ctx,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_idempotency_key(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        idempotency_key: str,
        ctx: BaseContext,
    ) -> Optional[LedgerTransaction]:
        """Get the header recorded under a caller supplied idempotency key."""
        query = self._scoped(
            select(LedgerTransaction).where(
                LedgerTransaction.subscription_id == subscription_id,
                LedgerTransaction.idempotency_key == idempotency_key,
            ),
            ctx,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def insert_or_get_existing(
        self,
        db: AsyncSession,
        *,
        obj_in: LedgerTransactionCreate,
        ctx: BaseContext,
    ) -> tuple[LedgerTransaction, bool]:
        """Insert a header unless one already exists for the same source or key.

        Conflicts on either unique index are absorbed by ON CONFLICT DO NOTHING;
        the existing row is then looked up and returned.

        Returns:
            (header, created) where ``created`` is False for a replay
        """
        values = self._scope_values(obj_in.model_dump(), ctx)
        table = LedgerTransaction.__table__
        stmt = (
            insert(table)
            .values(self._column_values(values))
            .on_conflict_do_nothing()
            .returning(table.c.id)
        )
        inserted_id = (await db.execute(stmt)).scalar_one_or_none()

        if inserted_id is not None:
            result = await db.execute(
                select(LedgerTransaction).where(LedgerTransaction.id == inserted_id)
            )
            return result.scalar_one(), True

        existing = await self.get_by_initiating_source(
            db,
            type=obj_in.type,
            initiating_source_type=obj_in.initiating_source_type,
            initiating_source_id=obj_in.initiating_source_id,
            ctx=ctx,
        )
        if existing is None and obj_in.idempotency_key is not None:
            existing = await self.get_by_idempotency_key(
                db,
                subscription_id=obj_in.subscription_id,
                idempotency_key=obj_in.idempotency_key,
                ctx=ctx,
            )
        if existing is None:
            raise InvalidStateError(
                f"Ledger transaction for {obj_in.initiating_source_type}:"
                f"{obj_in.initiating_source_id} conflicts with a row outside this context"
            )
        return existing, False


ledger_transaction = CRUDLedgerTransaction(LedgerTransaction)
