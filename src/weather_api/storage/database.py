"""
AsyncEngine factory and the process-wide database handle.

One engine per process, created in the application lifespan and disposed on
shutdown. Sessions come from an async_sessionmaker with
expire_on_commit=False so records can be read after the commit returns.
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from weather_api.config import Settings
from weather_api.errors import StorageError

logger = logging.getLogger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database URL.

    Pool sizing only applies to server databases; SQLite picks its own pool.
    """
    url = settings.database_url
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    kwargs = {"echo": settings.debug, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle,
        )
    return create_async_engine(url, **kwargs)


class Database:
    """Owns the engine and hands out sessions."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            engine, expire_on_commit=False
        )

    async def ping(self) -> None:
        """Run a trivial query; raise StorageError if the database is unreachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Database health check failed: {e}")
            raise StorageError("database ping failed") from e

    async def dispose(self) -> None:
        await self.engine.dispose()
