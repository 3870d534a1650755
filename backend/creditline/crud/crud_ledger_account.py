"""CRUD operations for ledger accounts."""

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from creditline.core.context import BaseContext
from creditline.crud._base_organization import CRUDBaseOrganization
from creditline.models.ledger_account import LedgerAccount
from creditline.schemas.ledger import LedgerAccountCreate

_SCOPE_COLUMNS = ["organization_id", "subscription_id", "usage_meter_id", "livemode"]


class CRUDLedgerAccount(CRUDBaseOrganization[LedgerAccount, LedgerAccountCreate]):
    """CRUD operations for ledger accounts."""

    async def find_or_create(
        self,
        db: AsyncSession,
        *,
        obj_in: LedgerAccountCreate,
        ctx: BaseContext,
    ) -> LedgerAccount:
        """Return the account for (organization, subscription, meter, livemode).

        Uses INSERT ... ON CONFLICT DO NOTHING on the scope index followed by a
        SELECT ... FOR UPDATE, so concurrent callers converge on the same row and
        then queue on it. Credit balances on the account are read only after this
        lock is held, so two commands cannot spend the same credit balance.
        The lock is held until the surrounding transaction ends.

        Args:
            db: Database session
            obj_in: Account scope
            ctx: Operation context with organization and livemode

        Returns:
            The existing or newly created ledger account, locked for this transaction
        """
        values = self._scope_values(obj_in.model_dump(), ctx)
        stmt = (
            insert(LedgerAccount.__table__)
            .values(self._column_values(values))
            .on_conflict_do_nothing(index_elements=_SCOPE_COLUMNS)
        )
        await db.execute(stmt)

        query = (
            select(LedgerAccount)
            .where(
                LedgerAccount.organization_id == values["organization_id"],
                LedgerAccount.subscription_id == obj_in.subscription_id,
                LedgerAccount.usage_meter_id == obj_in.usage_meter_id,
                LedgerAccount.livemode == ctx.livemode,
            )
            .with_for_update()
        )
        result = await db.execute(query)
        return result.scalar_one()


ledger_account = CRUDLedgerAccount(LedgerAccount)
