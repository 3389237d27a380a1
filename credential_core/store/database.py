"""
Database
========
Async SQLAlchemy engine and session factory, owned by the process entry point.

Usage:
    database = Database("postgresql+asyncpg://...")
    await database.create_all()
    store = SQLCredentialStore(database)
    ...
    await database.close()
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .tables import Base

logger = structlog.get_logger(__name__)


class Database:
    """Owns one AsyncEngine and its session factory."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        engine: Optional[AsyncEngine] = None,
        **engine_options: Any,
    ):
        """
        Args:
            database_url: Async connection string (postgresql+asyncpg://...)
            echo: Log SQL statements (default: False)
            engine: Pre-built engine (overrides ``database_url``)
            **engine_options: Passed to ``create_async_engine`` (pool_size, poolclass, ...)
        """
        self.engine = engine or create_async_engine(
            database_url,
            echo=echo,
            **engine_options,
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine initialized", dialect=self.engine.dialect.name)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session scoped to one unit of work.

        Commits on success and rolls back on exception.
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create the users, tokens and password_otps tables if missing."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose the engine. Call during application shutdown."""
        await self.engine.dispose()
        logger.info("Database engine closed")
