"""
Database Models
===============

Tables for the two records the scoring engine reads and writes:
accounts (mutable score state) and security_events (append-only log).

Author: TrustScore Team
Version: 1.0.0
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from trustscore.db.base import Base, TimestampMixin
from trustscore.schemas import DEFAULT_SCORE, utc_now


class AccountDB(TimestampMixin, Base):
    """Per-account trust state."""

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_SCORE)
    # Stored as a sorted JSON list; order carries no meaning
    known_devices: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class SecurityEventDB(Base):
    """Append-only security event log."""

    __tablename__ = "security_events"
    __table_args__ = (
        Index("ix_security_events_window", "account_id", "kind", "timestamp"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.id"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    device_id: Mapped[str] = mapped_column(String(255), nullable=False)
    ip: Mapped[str] = mapped_column(String(64), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
