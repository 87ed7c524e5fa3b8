"""
SQL Stores
==========

SQLAlchemy 2.0 async implementations of the Event Store and Account
Store over the ``security_events`` and ``accounts`` tables.

Compare-and-set is a single conditional UPDATE:

    UPDATE accounts
       SET score = :score, known_devices = :devices, version = version + 1
     WHERE id = :id AND version = :expected

which succeeds iff exactly one row changed, so concurrent writers in
separate processes cannot overwrite each other.

Author: TrustScore Team
Version: 1.0.0
"""

import logging
import uuid
from datetime import datetime
from typing import AbstractSet, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from trustscore.db.models import AccountDB, SecurityEventDB
from trustscore.db.session import Database
from trustscore.errors import AccountExistsError, StoreUnavailableError
from trustscore.schemas import (
    DEFAULT_SCORE,
    AccountRecord,
    EventKind,
    SecurityEvent,
    ensure_utc,
    utc_now,
)
from trustscore.stores.base import AccountStore, EventStore

logger = logging.getLogger(__name__)


def _to_account_record(row: AccountDB) -> AccountRecord:
    return AccountRecord(
        id=row.id,
        score=row.score,
        known_devices=frozenset(row.known_devices or []),
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_security_event(row: SecurityEventDB) -> SecurityEvent:
    return SecurityEvent(
        id=row.id,
        account_id=row.account_id,
        kind=EventKind(row.kind),
        device_id=row.device_id,
        ip=row.ip,
        timestamp=row.timestamp,
    )


class SqlEventStore(EventStore):
    """
    Event log persisted in ``security_events``.

    Usage:
        store = SqlEventStore(database)
        event_id = await store.append(event)
    """

    def __init__(self, database: Database):
        self.database = database

    async def append(self, event: SecurityEvent) -> str:
        try:
            async with self.database.session() as session:
                session.add(
                    SecurityEventDB(
                        id=event.id,
                        account_id=event.account_id,
                        kind=event.kind.value,
                        device_id=event.device_id,
                        ip=event.ip,
                        timestamp=event.timestamp,
                    )
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to append event {event.id}: {e}")
            raise StoreUnavailableError(f"Could not persist event: {e}") from e
        return event.id

    async def count_in_window(
        self,
        account_id: str,
        kind: EventKind,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> int:
        # SQLite drops the offset, so bounds must be UTC like the stored rows
        since = ensure_utc(since)
        stmt = (
            select(func.count(SecurityEventDB.id))
            .where(SecurityEventDB.account_id == account_id)
            .where(SecurityEventDB.kind == kind.value)
            .where(SecurityEventDB.timestamp >= since)
        )
        if until is not None:
            stmt = stmt.where(SecurityEventDB.timestamp <= ensure_utc(until))

        try:
            async with self.database.session() as session:
                result = await session.execute(stmt)
                return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Window count failed for {account_id}: {e}")
            raise StoreUnavailableError(f"Could not count events: {e}") from e

    async def list_events(
        self, account_id: str, limit: int = 50
    ) -> List[SecurityEvent]:
        stmt = (
            select(SecurityEventDB)
            .where(SecurityEventDB.account_id == account_id)
            .order_by(SecurityEventDB.timestamp.desc())
            .limit(limit)
        )
        try:
            async with self.database.session() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Could not list events: {e}") from e
        return [_to_security_event(row) for row in rows]


class SqlAccountStore(AccountStore):
    """Account records persisted in ``accounts``."""

    def __init__(self, database: Database):
        self.database = database

    async def create(self, account_id: Optional[str] = None) -> AccountRecord:
        account_id = account_id or str(uuid.uuid4())
        now = utc_now()
        row = AccountDB(
            id=account_id,
            score=DEFAULT_SCORE,
            known_devices=[],
            version=0,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self.database.session() as session:
                session.add(row)
        except IntegrityError as e:
            raise AccountExistsError(account_id) from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to create account {account_id}: {e}")
            raise StoreUnavailableError(f"Could not create account: {e}") from e

        logger.info(f"Created account {account_id}")
        return _to_account_record(row)

    async def get(self, account_id: str) -> Optional[AccountRecord]:
        try:
            async with self.database.session() as session:
                result = await session.execute(
                    select(AccountDB).where(AccountDB.id == account_id)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load account {account_id}: {e}")
            raise StoreUnavailableError(f"Could not load account: {e}") from e
        return _to_account_record(row) if row is not None else None

    async def compare_and_set(
        self,
        account_id: str,
        expected_version: int,
        new_score: int,
        new_known_devices: AbstractSet[str],
    ) -> bool:
        stmt = (
            update(AccountDB)
            .where(AccountDB.id == account_id)
            .where(AccountDB.version == expected_version)
            .values(
                score=new_score,
                known_devices=sorted(new_known_devices),
                version=AccountDB.version + 1,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            async with self.database.session() as session:
                result = await session.execute(stmt)
                return result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error(f"Score commit failed for {account_id}: {e}")
            raise StoreUnavailableError(f"Could not commit score: {e}") from e
