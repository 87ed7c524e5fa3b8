"""
Store Interfaces
================

Collaborator contracts consumed by the scoring engine.

    EventStore    append-only event log with windowed counts
    AccountStore  account records with compare-and-set commits

Implementations must raise StoreUnavailableError for I/O failures and
return None / False (not raise) for "not found" / "lost the race".

Author: TrustScore Team
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import AbstractSet, List, Optional

from trustscore.schemas import AccountRecord, EventKind, SecurityEvent


class EventStore(ABC):
    """Append-only log of security events."""

    @abstractmethod
    async def append(self, event: SecurityEvent) -> str:
        """
        Persist an event.

        Returns:
            The stored event's ID
        """

    @abstractmethod
    async def count_in_window(
        self,
        account_id: str,
        kind: EventKind,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> int:
        """
        Count events of ``kind`` for an account with
        ``since <= timestamp`` and, when given, ``timestamp <= until``.
        """

    @abstractmethod
    async def list_events(
        self, account_id: str, limit: int = 50
    ) -> List[SecurityEvent]:
        """Most recent events for an account, newest first."""

    async def close(self) -> None:
        """Release resources held by the store."""


class AccountStore(ABC):
    """Persistence for per-account trust state."""

    @abstractmethod
    async def create(self, account_id: Optional[str] = None) -> AccountRecord:
        """
        Create an account with the default score and no known devices.

        Raises:
            AccountExistsError: If the ID is already taken
        """

    @abstractmethod
    async def get(self, account_id: str) -> Optional[AccountRecord]:
        """Load an account, or None if it does not exist."""

    @abstractmethod
    async def compare_and_set(
        self,
        account_id: str,
        expected_version: int,
        new_score: int,
        new_known_devices: AbstractSet[str],
    ) -> bool:
        """
        Commit a new score and device set if the stored version still
        equals ``expected_version``; bumps the version on success.

        Returns:
            True if committed, False on a version conflict
        """

    async def close(self) -> None:
        """Release resources held by the store."""
