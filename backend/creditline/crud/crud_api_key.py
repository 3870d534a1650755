"""CRUD operations for the APIKey model."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from creditline.core.context import BaseContext
from creditline.core.credentials import generate_api_key_token, hash_api_key_token
from creditline.crud._base_organization import CRUDBaseOrganization
from creditline.models.api_key import APIKey
from creditline.schemas.api_key import APIKeyCreate


class CRUDAPIKey(CRUDBaseOrganization[APIKey, APIKeyCreate]):
    """CRUD operations for the APIKey model."""

    async def create_with_token(
        self,
        db: AsyncSession,
        *,
        obj_in: APIKeyCreate,
        ctx: BaseContext,
    ) -> tuple[APIKey, str]:
        """Create a new API key and return it with its plain token.

        Args:
        ----
            db (AsyncSession): The database session.
            obj_in (APIKeyCreate): The API key creation data.
            ctx (BaseContext): The operation context.

        Returns:
        -------
            tuple[APIKey, str]: The stored key and the token, which is not recoverable later.

        """
        token = generate_api_key_token(ctx.livemode)
        expiration_date = None
        if obj_in.expiration_days is not None:
            expiration_date = datetime.now(timezone.utc) + timedelta(days=obj_in.expiration_days)

        api_key_data = {
            "name": obj_in.name,
            "key_type": obj_in.key_type.value,
            "token_hash": hash_api_key_token(token),
            "expiration_date": expiration_date,
            "created_by_user_id": ctx.user_id,
        }
        db_obj = await self.create(db, obj_in=api_key_data, ctx=ctx)
        return db_obj, token

    async def get_by_token_hash(self, db: AsyncSession, *, token_hash: str) -> Optional[APIKey]:
        """Get an API key by its token digest.

        Not tenant-scoped: this runs during authentication, before a tenant is known.
        """
        result = await db.execute(select(APIKey).where(APIKey.token_hash == token_hash))
        return result.scalar_one_or_none()


api_key = CRUDAPIKey(APIKey)
