"""
TrustScore Stores
=================

Event Store and Account Store contracts with in-memory and SQL
implementations.

Author: TrustScore Team
Version: 1.0.0
"""

from trustscore.stores.base import AccountStore, EventStore
from trustscore.stores.memory import InMemoryAccountStore, InMemoryEventStore
from trustscore.stores.sql import SqlAccountStore, SqlEventStore

__all__ = [
    "AccountStore",
    "EventStore",
    "InMemoryAccountStore",
    "InMemoryEventStore",
    "SqlAccountStore",
    "SqlEventStore",
]
