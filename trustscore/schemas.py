"""
TrustScore Schemas
==================

Core data structures flowing through the trust scoring engine.

Key Components:
    - EventKind: Closed set of security event kinds the engine scores
    - SecurityEvent: Immutable, append-only event record
    - AccountRecord: Snapshot of an account's score and known devices
    - ScoreOutcome: Result of applying one event
    - TrustSnapshot: Current score plus derived risk label

Usage:
    from trustscore.schemas import EventKind, SecurityEvent

    event = SecurityEvent(
        account_id="acct-123",
        kind=EventKind.LOGIN_FAIL,
        device_id="iphone-7f3a",
    )

Author: TrustScore Team
Version: 1.0.0
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


UNKNOWN_DEVICE = "unknown-device"
DEFAULT_IP = "127.0.0.1"

# Score bounds
MIN_SCORE = 0
MAX_SCORE = 100
DEFAULT_SCORE = 80


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class EventKind(str, Enum):
    """
    Security event kinds understood by the rule catalog.

    The set is closed: adding a kind means adding or revising rules.
    """

    LOGIN_FAIL = "LOGIN_FAIL"
    """Password check failed"""

    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    """Password check succeeded"""

    OTP_REQUEST = "OTP_REQUEST"
    """One-time password was requested"""


class RiskLabel(str, Enum):
    """Binary risk classification derived from a trust score."""

    NORMAL = "NORMAL"
    HIGH = "HIGH"


class SecurityEvent(BaseModel):
    """
    A single security-relevant occurrence for an account.

    Events are immutable once created and are never deleted. The
    scoring rules count them over trailing time windows.

    Attributes:
        id: Unique event identifier
        account_id: Account the event refers to
        kind: Event kind
        device_id: Device identifier, or the "unknown-device" sentinel
        ip: Reported client IP (informational)
        timestamp: UTC time the event was recorded
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique event identifier"
    )

    account_id: str = Field(..., description="Referenced account")

    kind: EventKind = Field(..., description="Event kind")

    device_id: str = Field(
        default=UNKNOWN_DEVICE,
        description="Device identifier"
    )

    ip: str = Field(default=DEFAULT_IP, description="Client IP address")

    timestamp: datetime = Field(
        default_factory=utc_now,
        description="UTC timestamp when the event occurred"
    )

    @field_validator("account_id")
    @classmethod
    def validate_account_id(cls, v: str) -> str:
        """Ensure account_id is not empty."""
        if not v or not v.strip():
            raise ValueError("account_id cannot be empty")
        return v.strip()

    @field_validator("device_id", mode="before")
    @classmethod
    def default_device_id(cls, v: Optional[str]) -> str:
        if v is None or not str(v).strip():
            return UNKNOWN_DEVICE
        return str(v).strip()

    @field_validator("ip", mode="before")
    @classmethod
    def default_ip(cls, v: Optional[str]) -> str:
        if v is None or not str(v).strip():
            return DEFAULT_IP
        return str(v).strip()

    @field_validator("timestamp", mode="after")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class AccountRecord(BaseModel):
    """
    Snapshot of an account's mutable trust state.

    Stores hand out frozen snapshots; the engine builds a new state and
    commits it through compare-and-set on ``version``.

    Attributes:
        id: Stable account identifier
        score: Current trust score in [0, 100]
        known_devices: Device identifiers already seen for this account
        version: Incremented on every committed update
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Account identifier")

    score: int = Field(
        default=DEFAULT_SCORE,
        ge=MIN_SCORE,
        le=MAX_SCORE,
        description="Trust score (0=untrusted, 100=fully trusted)"
    )

    known_devices: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Devices previously seen for this account"
    )

    version: int = Field(default=0, ge=0, description="Optimistic lock version")

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def validate_datetimes(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def knows_device(self, device_id: str) -> bool:
        return device_id in self.known_devices


class ScoreOutcome(BaseModel):
    """
    Committed result of applying one event.

    ``delta`` is the raw sum of rule deltas; ``new_score`` is the
    clamped score that was written.
    """

    account_id: str
    event_id: str
    delta: int
    new_score: int = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    risk: RiskLabel
    fired_rules: List[str] = Field(default_factory=list)


class TrustSnapshot(BaseModel):
    """Current trust score of an account and its risk label."""

    account_id: str
    score: int = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    risk: RiskLabel
