"""Tenancy domain types."""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from creditline.core.context import BaseContext

T = TypeVar("T")


@dataclass(frozen=True)
class TenantTransaction:
    """Handle given to a unit of work.

    ``session`` is inside an open transaction whose security state is already
    scoped; ``ctx`` carries the same scope for the CRUD layer.
    """

    session: AsyncSession
    ctx: BaseContext

    @property
    def user_id(self) -> Optional[UUID]:
        """Acting user, None for administrative work."""
        return self.ctx.user_id

    @property
    def organization_id(self) -> Optional[UUID]:
        """Acting organization, None for administrative work."""
        return self.ctx.organization_id

    @property
    def livemode(self) -> bool:
        """Livemode partition of the transaction."""
        return self.ctx.livemode


UnitOfWork = Callable[[TenantTransaction], Awaitable[T]]
