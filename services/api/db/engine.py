"""
AsyncEngine and session-factory construction.

NullPool because PgBouncer owns connection pooling; SA should not
maintain its own pool on top.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from services.api.config import settings
from services.api.db.models import Base


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine for transaction-mode pooling behind PgBouncer."""
    url = (database_url or settings.database_url).replace("postgresql://", "postgresql+asyncpg://", 1)
    return create_async_engine(
        url,
        poolclass=NullPool,
        echo=settings.debug and settings.environment == "development",
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # expire_on_commit=False: store methods read attributes after commit.
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create missing tables. Dev convenience; production schema is managed out of band."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
