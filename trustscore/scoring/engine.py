"""
Trust Scoring Engine
====================

Applies security events to per-account trust scores.

This module coordinates:
    - Event validation and persistence (exactly once per call)
    - Rule catalog evaluation against fresh window counts
    - Delta aggregation, clamping and a single compare-and-set commit
    - Per-account serialization so concurrent events never lose updates

Usage:
    from trustscore.scoring.engine import TrustScoringEngine

    engine = TrustScoringEngine(event_store, account_store)
    account = await engine.register_account()
    outcome = await engine.apply_event(account.id, "LOGIN_FAIL", "device-1")
    print(outcome.delta, outcome.new_score, outcome.risk)

Author: TrustScore Team
Version: 1.0.0
"""

import time
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Union

from trustscore.config import settings
from trustscore.errors import (
    AccountNotFoundError,
    InvalidEventError,
    ScoreConflictError,
    StoreUnavailableError,
    TrustScoreError,
)
from trustscore.logging import bind_account, get_logger
from trustscore.metrics import (
    record_apply_duration,
    record_conflict,
    record_event_applied,
    record_rule_fired,
)
from trustscore.schemas import (
    AccountRecord,
    EventKind,
    ScoreOutcome,
    SecurityEvent,
    TrustSnapshot,
    utc_now,
)
from trustscore.scoring.locks import AccountLockRegistry
from trustscore.scoring.risk import clamp_score, classify
from trustscore.scoring.rules import (
    RuleContext,
    RuleOutcome,
    ScoringRule,
    default_rules,
    evaluate_rules,
)
from trustscore.stores.base import AccountStore, EventStore


logger = get_logger(__name__)


def parse_event_kind(kind: Union[EventKind, str]) -> EventKind:
    """
    Resolve an event kind from an enum member or its exact string value.

    Raises:
        InvalidEventError: If the kind is outside the supported set
    """
    if isinstance(kind, EventKind):
        return kind
    try:
        return EventKind(kind)
    except ValueError as e:
        raise InvalidEventError(kind) from e


class TrustScoringEngine:
    """
    Trust scoring engine.

    Attributes:
        events: Event Store collaborator
        accounts: Account Store collaborator
        rules: Ordered rule catalog
        locks: Per-account lock registry
        max_attempts: Compare-and-set attempts before giving up

    Example:
        engine = TrustScoringEngine(InMemoryEventStore(), InMemoryAccountStore())
        account = await engine.register_account("acct-1")
        await engine.apply_event("acct-1", EventKind.OTP_REQUEST)
        snapshot = await engine.get_trust("acct-1")
    """

    def __init__(
        self,
        event_store: EventStore,
        account_store: AccountStore,
        rules: Optional[Sequence[ScoringRule]] = None,
        locks: Optional[AccountLockRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_attempts: Optional[int] = None,
    ):
        """
        Initialize the scoring engine.

        Args:
            event_store: Append-only event log
            account_store: Account persistence with compare-and-set
            rules: Optional rule catalog (defaults to the fixed catalog)
            locks: Optional shared lock registry
            clock: Optional source of event timestamps (UTC)
            max_attempts: Optional override of settings.score_max_attempts
        """
        self.events = event_store
        self.accounts = account_store
        self.rules = tuple(rules) if rules is not None else default_rules()
        self.locks = locks or AccountLockRegistry()
        self._clock = clock or utc_now
        self.max_attempts = max_attempts or settings.score_max_attempts

    # =========================================================================
    # Accounts
    # =========================================================================

    async def register_account(self, account_id: Optional[str] = None) -> AccountRecord:
        """Create an account with the default trust score."""
        account = await self.accounts.create(account_id)
        logger.info("account_registered", account_id=account.id, score=account.score)
        return account

    async def get_trust(self, account_id: str) -> TrustSnapshot:
        """
        Current score and risk label for an account.

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        account = await self.accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return TrustSnapshot(
            account_id=account.id,
            score=account.score,
            risk=classify(account.score),
        )

    # =========================================================================
    # Scoring
    # =========================================================================

    async def apply_event(
        self,
        account_id: str,
        kind: Union[EventKind, str],
        device_id: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> ScoreOutcome:
        """
        Record an event and apply its score delta to the account.

        Args:
            account_id: Existing account identifier
            kind: Event kind (enum member or its string value)
            device_id: Device identifier; "unknown-device" when omitted
            ip: Client IP; informational only

        Returns:
            ScoreOutcome with the summed delta and committed score

        Raises:
            InvalidEventError: Unknown event kind (nothing persisted)
            AccountNotFoundError: Unknown account (nothing persisted)
            StoreUnavailableError: Storage failure or conflicts exhausted
        """
        try:
            event_kind = parse_event_kind(kind)
        except InvalidEventError:
            record_event_applied("invalid", "rejected")
            logger.warning("event_rejected", account_id=account_id, kind=str(kind))
            raise

        start = time.monotonic()
        with bind_account(account_id):
            try:
                async with self.locks.hold(account_id):
                    outcome = await self._apply_locked(
                        account_id, event_kind, device_id, ip
                    )
            except AccountNotFoundError:
                record_event_applied(event_kind.value, "not_found")
                raise
            except TrustScoreError:
                record_event_applied(event_kind.value, "error")
                raise

            record_apply_duration(time.monotonic() - start)
            record_event_applied(event_kind.value)
            logger.info(
                "event_applied",
                event_id=outcome.event_id,
                kind=event_kind.value,
                delta=outcome.delta,
                new_score=outcome.new_score,
                risk=outcome.risk.value,
                fired_rules=outcome.fired_rules,
            )
            return outcome

    async def _apply_locked(
        self,
        account_id: str,
        kind: EventKind,
        device_id: Optional[str],
        ip: Optional[str],
    ) -> ScoreOutcome:
        """Persist the event, then evaluate and commit until CAS succeeds."""
        account = await self.accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)

        event = SecurityEvent(
            account_id=account_id,
            kind=kind,
            device_id=device_id,
            ip=ip,
            timestamp=self._clock(),
        )
        await self.events.append(event)

        conflict: Optional[ScoreConflictError] = None
        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                account = await self.accounts.get(account_id)
                if account is None:
                    raise AccountNotFoundError(account_id)

            outcomes = await evaluate_rules(
                self.rules, RuleContext(account=account, event=event, events=self.events)
            )
            committed = await self._commit(account, outcomes)
            if committed is not None:
                for rule_outcome in outcomes:
                    if rule_outcome.fired:
                        record_rule_fired(rule_outcome.rule)
                delta, new_score = committed
                return ScoreOutcome(
                    account_id=account_id,
                    event_id=event.id,
                    delta=delta,
                    new_score=new_score,
                    risk=classify(new_score),
                    fired_rules=[o.rule for o in outcomes if o.fired],
                )

            conflict = ScoreConflictError(account_id, account.version)
            record_conflict()
            logger.warning(
                "score_conflict_retry",
                attempt=attempt,
                max_attempts=self.max_attempts,
                expected_version=account.version,
            )

        logger.error(
            "store_failure",
            reason="conflict retries exhausted",
            event_id=event.id,
            attempts=self.max_attempts,
        )
        raise StoreUnavailableError(
            f"Could not commit score for {account_id} after "
            f"{self.max_attempts} attempts"
        ) from conflict

    async def _commit(
        self, account: AccountRecord, outcomes: List[RuleOutcome]
    ) -> Optional[tuple[int, int]]:
        """
        Sum rule deltas and write the result in one compare-and-set.

        Returns:
            (delta, new_score) when committed, None on a version conflict
        """
        delta = sum(o.delta for o in outcomes)
        new_devices = {o.new_device for o in outcomes if o.new_device}
        new_score = clamp_score(account.score + delta)

        committed = await self.accounts.compare_and_set(
            account.id,
            expected_version=account.version,
            new_score=new_score,
            new_known_devices=account.known_devices | new_devices,
        )
        if not committed:
            return None
        return delta, new_score
