"""
TrustScore Service Container
============================

Owns the lifecycle of the shared services:
    - Database handle (SQL backend only)
    - Event Store and Account Store
    - TrustScoringEngine

Stores are opened once at process start and closed at shutdown; the
engine receives them by injection.

Author: TrustScore Team
Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from trustscore.config import Settings, settings as default_settings
from trustscore.db.session import Database
from trustscore.logging import setup_logging
from trustscore.scoring.engine import TrustScoringEngine
from trustscore.stores.base import AccountStore, EventStore
from trustscore.stores.memory import InMemoryAccountStore, InMemoryEventStore
from trustscore.stores.sql import SqlAccountStore, SqlEventStore


logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Singleton container for shared services.

    Usage:
        container = ServiceContainer.get_instance()
        await container.initialize()
        outcome = await container.scoring_engine.apply_event(...)
        await container.shutdown()
    """

    _instance: Optional["ServiceContainer"] = None

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self._database: Optional[Database] = None
        self._event_store: Optional[EventStore] = None
        self._account_store: Optional[AccountStore] = None
        self._scoring_engine: Optional[TrustScoringEngine] = None
        self._initialized = False

    @classmethod
    def get_instance(cls) -> "ServiceContainer":
        """Get or create the singleton instance."""
        if cls._instance is None:
            cls._instance = ServiceContainer()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None

    async def initialize(self) -> None:
        """Open stores for the configured backend and build the engine."""
        if self._initialized:
            return

        backend = self.settings.store_backend
        logger.info(f"Initializing service container (backend={backend})...")

        if backend == "sql":
            self._database = Database(
                self.settings.database_url,
                echo=self.settings.database_echo,
            )
            await self._database.connect()
            self._event_store = SqlEventStore(self._database)
            self._account_store = SqlAccountStore(self._database)
        else:
            self._event_store = InMemoryEventStore()
            self._account_store = InMemoryAccountStore()

        self._scoring_engine = TrustScoringEngine(
            self._event_store,
            self._account_store,
            max_attempts=self.settings.score_max_attempts,
        )
        self._initialized = True
        logger.info("Service container initialized")

    async def shutdown(self) -> None:
        """Close stores and the database."""
        logger.info("Shutting down service container...")

        for store in (self._event_store, self._account_store):
            if store is not None:
                await store.close()
        if self._database is not None:
            await self._database.close()

        self._database = None
        self._event_store = None
        self._account_store = None
        self._scoring_engine = None
        self._initialized = False
        logger.info("Service container shutdown complete")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def scoring_engine(self) -> TrustScoringEngine:
        """The scoring engine; requires initialize() to have run."""
        if self._scoring_engine is None:
            raise RuntimeError("Service container is not initialized")
        return self._scoring_engine

    @property
    def event_store(self) -> Optional[EventStore]:
        return self._event_store

    @property
    def account_store(self) -> Optional[AccountStore]:
        return self._account_store


@asynccontextmanager
async def lifespan_manager(
    container: Optional[ServiceContainer] = None,
    configure_logging: bool = True,
) -> AsyncIterator[ServiceContainer]:
    """
    Async context manager for application lifespan.

    Configures logging, initializes services on entry and shuts them
    down on exit.
    """
    container = container or ServiceContainer.get_instance()
    if configure_logging:
        setup_logging(
            level=container.settings.log_level,
            json_output=container.settings.log_json,
        )
    await container.initialize()
    try:
        yield container
    finally:
        await container.shutdown()
