"""
TrustScore Errors
=================

Exception taxonomy surfaced by the scoring engine and its stores.

    TrustScoreError
    ├── AccountNotFoundError   unknown account, never retried
    ├── InvalidEventError      unrecognized event kind, never retried
    ├── ScoreConflictError     lost a compare-and-set race, retried
    ├── StoreUnavailableError  storage failure or retries exhausted
    └── AccountExistsError     registration with a taken account ID

Author: TrustScore Team
Version: 1.0.0
"""


class TrustScoreError(Exception):
    """Base exception for trust scoring errors."""
    pass


class AccountNotFoundError(TrustScoreError):
    """Raised when an account does not exist."""

    def __init__(self, account_id: str):
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id


class InvalidEventError(TrustScoreError, ValueError):
    """Raised when an event kind is outside the supported set."""

    def __init__(self, kind: object):
        super().__init__(f"Invalid event kind: {kind!r}")
        self.kind = kind


class ScoreConflictError(TrustScoreError):
    """Raised when a concurrent writer committed first."""

    def __init__(self, account_id: str, expected_version: int):
        super().__init__(
            f"Concurrent update on account {account_id} "
            f"(expected version {expected_version})"
        )
        self.account_id = account_id
        self.expected_version = expected_version


class StoreUnavailableError(TrustScoreError):
    """Raised when the backing store fails or a score cannot be committed."""
    pass


class AccountExistsError(TrustScoreError):
    """Raised when registering an account ID that is already taken."""

    def __init__(self, account_id: str):
        super().__init__(f"Account already exists: {account_id}")
        self.account_id = account_id
