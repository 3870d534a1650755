"""Base CRUD class for organization-scoped models."""

from typing import Any, Generic, Optional, Sequence, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import Select, inspect, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from creditline.core.context import BaseContext
from creditline.core.exceptions import NotFoundException, PermissionException
from creditline.models._base import OrganizationBase

ModelType = TypeVar("ModelType", bound=OrganizationBase)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)


class CRUDBaseOrganization(Generic[ModelType, CreateSchemaType]):
    """Base CRUD for tables carrying ``organization_id`` and ``livemode``.

    Row-level security is the enforcement layer. This class additionally scopes
    every query to the context's organization and livemode so application code
    never writes those filters itself. Administrative contexts skip the
    organization filter but stay inside their livemode partition.
    """

    def __init__(self, model: Type[ModelType]):
        """Initialize the CRUD object.

        Args:
        ----
            model (Type[ModelType]): The model to be used in the CRUD operations.

        """
        self.model = model

    def _scoped(self, query: Select, ctx: BaseContext) -> Select:
        query = query.where(self.model.livemode == ctx.livemode)
        if not ctx.is_admin:
            query = query.where(self.model.organization_id == ctx.organization_id)
        return query

    def _scope_values(self, data: dict[str, Any], ctx: BaseContext) -> dict[str, Any]:
        """Stamp organization and livemode onto values about to be inserted."""
        if ctx.organization_id is not None:
            data["organization_id"] = ctx.organization_id
        elif "organization_id" not in data:
            raise PermissionException("An organization is required to write tenant data")
        data["livemode"] = ctx.livemode
        return data

    def _column_values(self, data: dict[str, Any]) -> dict[str, Any]:
        """Translate mapped attribute names into table column names."""
        mapper = inspect(self.model)
        return {mapper.get_property(key).columns[0].name: value for key, value in data.items()}

    @staticmethod
    def _as_dict(obj_in: Union[CreateSchemaType, dict[str, Any]]) -> dict[str, Any]:
        if isinstance(obj_in, dict):
            return dict(obj_in)
        return obj_in.model_dump()

    async def get(self, db: AsyncSession, id: UUID, ctx: BaseContext) -> Optional[ModelType]:
        """Get a single object by ID within the context's scope.

        Args:
        ----
            db (AsyncSession): The database session.
            id (UUID): The ID of the object to get.
            ctx (BaseContext): The operation context.

        Returns:
        -------
            Optional[ModelType]: The object, or None when it is not visible.

        """
        query = self._scoped(select(self.model).where(self.model.id == id), ctx)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_or_raise(self, db: AsyncSession, id: UUID, ctx: BaseContext) -> ModelType:
        """Get a single object by ID or raise NotFoundException."""
        db_obj = await self.get(db, id, ctx)
        if db_obj is None:
            raise NotFoundException(f"{self.model.__name__} {id} not found")
        return db_obj

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, dict[str, Any]],
        ctx: BaseContext,
    ) -> ModelType:
        """Create a new object in the context's organization and livemode.

        Args:
        ----
            db (AsyncSession): The database session.
            obj_in (CreateSchemaType | dict): The object data.
            ctx (BaseContext): The operation context.

        Returns:
        -------
            ModelType: The created object.

        """
        db_obj = self.model(**self._scope_values(self._as_dict(obj_in), ctx))
        db.add(db_obj)
        await db.flush()
        return db_obj

    async def create_many(
        self,
        db: AsyncSession,
        *,
        objs_in: Sequence[Union[CreateSchemaType, dict[str, Any]]],
        ctx: BaseContext,
    ) -> list[ModelType]:
        """Bulk insert objects with a single statement, returning them in input order."""
        if not objs_in:
            return []
        rows = [self._scope_values(self._as_dict(obj_in), ctx) for obj_in in objs_in]
        stmt = insert(self.model).returning(self.model, sort_by_parameter_order=True)
        result = await db.scalars(stmt, rows)
        return list(result.all())
