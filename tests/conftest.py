"""
pytest configuration and fixtures.

Author: TrustScore Team
Version: 1.0.0
"""

from datetime import datetime, timedelta, timezone

import pytest

from trustscore.db.session import Database
from trustscore.scoring.engine import TrustScoringEngine
from trustscore.stores.memory import InMemoryAccountStore, InMemoryEventStore


START = datetime(2026, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock for window tests."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """Create a fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def event_store():
    """Create an empty in-memory event store."""
    return InMemoryEventStore()


@pytest.fixture
def account_store():
    """Create an empty in-memory account store."""
    return InMemoryAccountStore()


@pytest.fixture
def engine(event_store, account_store, clock):
    """Create a scoring engine over in-memory stores."""
    return TrustScoringEngine(event_store, account_store, clock=clock)


@pytest.fixture
async def account(engine):
    """Register a fresh account (score 80)."""
    return await engine.register_account("acct-001")


@pytest.fixture
async def database(tmp_path):
    """Connected SQLite database in a temporary directory."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'trustscore.db'}")
    await db.connect()
    yield db
    await db.close()
