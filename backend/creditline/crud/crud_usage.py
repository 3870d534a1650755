"""CRUD operations for subscriptions and usage credit applications."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from creditline.core.context import BaseContext
from creditline.crud._base_organization import CRUDBaseOrganization
from creditline.models.subscription import Subscription
from creditline.models.usage_credit_application import UsageCreditApplication
from creditline.schemas.usage import UsageCreditApplicationCreate


class CRUDUsageCreditApplication(
    CRUDBaseOrganization[UsageCreditApplication, UsageCreditApplicationCreate]
):
    """CRUD operations for usage credit applications."""

    async def get_by_usage_event(
        self, db: AsyncSession, *, usage_event_id: UUID, ctx: BaseContext
    ) -> list[UsageCreditApplication]:
        """Get the applications recorded for a usage event."""
        query = self._scoped(
            select(UsageCreditApplication)
            .where(UsageCreditApplication.usage_event_id == usage_event_id)
            .order_by(UsageCreditApplication.applied_at, UsageCreditApplication.id),
            ctx,
        )
        result = await db.execute(query)
        return list(result.scalars().all())


subscription = CRUDBaseOrganization(Subscription)
usage_credit_application = CRUDUsageCreditApplication(UsageCreditApplication)
