"""
Per-Account Locks
=================

Serializes score updates for one account while letting different
accounts proceed in parallel.

Locks are reference-counted and dropped once no task holds or waits
on them.

Author: TrustScore Team
Version: 1.0.0
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class AccountLockRegistry:
    """
    Registry of asyncio locks keyed by account ID.

    Usage:
        locks = AccountLockRegistry()
        async with locks.hold("acct-1"):
            ...  # exclusive for acct-1
    """

    def __init__(self):
        self._entries: Dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def is_locked(self, account_id: str) -> bool:
        entry = self._entries.get(account_id)
        return entry is not None and entry.lock.locked()

    @asynccontextmanager
    async def hold(self, account_id: str) -> AsyncIterator[None]:
        """Hold the account's lock for the duration of the block."""
        entry = self._entries.get(account_id)
        if entry is None:
            entry = _Entry()
            self._entries[account_id] = entry
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[account_id]
