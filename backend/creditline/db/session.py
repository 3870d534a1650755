"""Database session configuration."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from creditline.core.config import settings

# One pool is shared by every tenant. Tenant scope lives in transaction-local
# session settings (SET LOCAL / set_config(..., true)), never in connection state,
# so a connection returned to the pool carries nothing into the next checkout.
POOL_SIZE = settings.db_pool_size
MAX_OVERFLOW = settings.db_pool_max_overflow


def build_connect_args(sslmode: str) -> dict:
    """asyncpg connect arguments. asyncpg takes libpq sslmode names for ``ssl``."""
    return {
        "server_settings": {
            # Kill idle transactions after 5 minutes
            "idle_in_transaction_session_timeout": "300000",
        },
        "command_timeout": 60,
        "ssl": sslmode,
    }


async_engine = create_async_engine(
    str(settings.SQLALCHEMY_ASYNC_DATABASE_URI),
    pool_size=POOL_SIZE,
    max_overflow=MAX_OVERFLOW,
    pool_pre_ping=True,
    pool_recycle=300,
    pool_timeout=30,
    isolation_level="READ COMMITTED",
    connect_args=build_connect_args(settings.POSTGRES_SSLMODE),
)

AsyncSessionLocal = async_sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=async_engine
)


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session that can be used as a context manager.

    The session carries no tenant context. Use it for identity resolution and
    other lookups that run before a tenant transaction exists.

    Example:
    -------
        async with get_db_context() as db:
            await db.execute(...)

    """
    async with AsyncSessionLocal() as db:
        yield db
