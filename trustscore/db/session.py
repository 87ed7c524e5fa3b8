"""
Database Session Management
===========================

Owns the async SQLAlchemy engine and session factory.

The engine is created by ``Database.connect()`` at process start and
disposed by ``Database.close()`` at shutdown; stores receive the
``Database`` instance rather than reaching for module-level state.

Author: TrustScore Team
Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from trustscore.db.base import Base

logger = logging.getLogger(__name__)


class Database:
    """
    Async database handle with an explicit lifecycle.

    Usage:
        db = Database("sqlite+aiosqlite:///./trustscore.db")
        await db.connect()
        async with db.session() as session:
            ...
        await db.close()
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self, create_tables: bool = True) -> None:
        """
        Create the engine, verify connectivity and create tables.

        Called during application startup.
        """
        if self._engine is not None:
            return

        logger.info("Initializing database connection...")
        self._engine = create_async_engine(
            self.url,
            echo=self.echo,
            pool_pre_ping=True,
        )
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        async with self._engine.begin() as conn:
            if create_tables:
                await conn.run_sync(Base.metadata.create_all)
            else:
                await conn.run_sync(lambda _: None)

        logger.info("Database connection established")

    async def close(self) -> None:
        """
        Dispose of the engine and its pooled connections.

        Called during application shutdown.
        """
        if self._engine is None:
            return
        logger.info("Closing database connections...")
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database connections closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provide a transactional session.

        Commits when the block exits cleanly, rolls back otherwise.
        """
        if self._session_factory is None:
            raise RuntimeError("Database is not connected. Call connect() first.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
