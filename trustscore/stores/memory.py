"""
In-Memory Stores
================

Process-local Event Store and Account Store.

Used for tests and single-process runs without a database. Every
mutation completes without awaiting, so each call is atomic with
respect to other tasks on the same event loop.

Author: TrustScore Team
Version: 1.0.0
"""

import logging
import uuid
from collections import defaultdict
from datetime import datetime
from typing import AbstractSet, Dict, List, Optional

from trustscore.errors import AccountExistsError
from trustscore.schemas import (
    AccountRecord,
    EventKind,
    SecurityEvent,
    ensure_utc,
    utc_now,
)
from trustscore.stores.base import AccountStore, EventStore

logger = logging.getLogger(__name__)


class InMemoryEventStore(EventStore):
    """
    Event log held in a dict of per-account lists.

    Usage:
        store = InMemoryEventStore()
        await store.append(event)
        n = await store.count_in_window("acct-1", EventKind.LOGIN_FAIL, since)
    """

    def __init__(self):
        self._events: Dict[str, List[SecurityEvent]] = defaultdict(list)

    async def append(self, event: SecurityEvent) -> str:
        self._events[event.account_id].append(event)
        return event.id

    async def count_in_window(
        self,
        account_id: str,
        kind: EventKind,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> int:
        since = ensure_utc(since)
        until = ensure_utc(until) if until is not None else None
        count = 0
        for event in self._events.get(account_id, []):
            if event.kind != kind or event.timestamp < since:
                continue
            if until is not None and event.timestamp > until:
                continue
            count += 1
        return count

    async def list_events(
        self, account_id: str, limit: int = 50
    ) -> List[SecurityEvent]:
        bucket = self._events.get(account_id, [])
        # newest first; ties keep reverse append order
        ordered = sorted(reversed(bucket), key=lambda e: e.timestamp, reverse=True)
        return ordered[:limit]


class InMemoryAccountStore(AccountStore):
    """Account records keyed by ID; commits are version-checked."""

    def __init__(self):
        self._accounts: Dict[str, AccountRecord] = {}

    async def create(self, account_id: Optional[str] = None) -> AccountRecord:
        account_id = account_id or str(uuid.uuid4())
        if account_id in self._accounts:
            raise AccountExistsError(account_id)
        record = AccountRecord(id=account_id)
        self._accounts[account_id] = record
        logger.debug(f"Created account {account_id}")
        return record

    async def get(self, account_id: str) -> Optional[AccountRecord]:
        return self._accounts.get(account_id)

    async def compare_and_set(
        self,
        account_id: str,
        expected_version: int,
        new_score: int,
        new_known_devices: AbstractSet[str],
    ) -> bool:
        current = self._accounts.get(account_id)
        if current is None or current.version != expected_version:
            return False
        self._accounts[account_id] = current.model_copy(
            update={
                "score": new_score,
                "known_devices": frozenset(new_known_devices),
                "version": current.version + 1,
                "updated_at": utc_now(),
            }
        )
        return True
