"""
Scoring Engine Tests
====================

Behavioral tests for TrustScoringEngine over in-memory stores.

Author: TrustScore Team
Version: 1.0.0
"""

import random
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from trustscore.errors import (
    AccountExistsError,
    AccountNotFoundError,
    InvalidEventError,
    ScoreConflictError,
    StoreUnavailableError,
)
from trustscore.schemas import EventKind, RiskLabel, SecurityEvent
from trustscore.scoring.engine import TrustScoringEngine, parse_event_kind
from trustscore.stores.memory import InMemoryAccountStore, InMemoryEventStore


class TestParseEventKind:
    """Tests for event kind validation."""

    def test_accepts_enum(self):
        assert parse_event_kind(EventKind.OTP_REQUEST) is EventKind.OTP_REQUEST

    def test_accepts_string(self):
        assert parse_event_kind("LOGIN_FAIL") is EventKind.LOGIN_FAIL

    @pytest.mark.parametrize("kind", ["PASSWORD_RESET", "", None, 42])
    def test_rejects_unknown(self, kind):
        with pytest.raises(InvalidEventError):
            parse_event_kind(kind)

    @pytest.mark.parametrize("kind", [" otp_request ", "login_fail", "LOGIN_SUCCESS "])
    def test_rejects_non_canonical_spelling(self, kind):
        """Only the exact kind values are accepted."""
        with pytest.raises(InvalidEventError):
            parse_event_kind(kind)


class TestAccounts:
    """Tests for registration and trust snapshots."""

    @pytest.mark.asyncio
    async def test_register_defaults(self, engine):
        account = await engine.register_account("acct-x")

        assert account.score == 80
        assert account.known_devices == frozenset()
        assert account.version == 0

    @pytest.mark.asyncio
    async def test_register_generates_id(self, engine):
        account = await engine.register_account()
        assert account.id

    @pytest.mark.asyncio
    async def test_register_duplicate(self, engine, account):
        with pytest.raises(AccountExistsError):
            await engine.register_account(account.id)

    @pytest.mark.asyncio
    async def test_get_trust(self, engine, account):
        snapshot = await engine.get_trust(account.id)

        assert snapshot.score == 80
        assert snapshot.risk == RiskLabel.NORMAL

    @pytest.mark.asyncio
    async def test_get_trust_unknown(self, engine):
        with pytest.raises(AccountNotFoundError):
            await engine.get_trust("missing")


class TestApplyEvent:
    """Tests for single-event application."""

    @pytest.mark.asyncio
    async def test_first_event_new_device(self, engine, account):
        outcome = await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")

        assert outcome.delta == -10
        assert outcome.new_score == 70
        assert outcome.fired_rules == ["new_device"]
        assert outcome.risk == RiskLabel.NORMAL

    @pytest.mark.asyncio
    async def test_persists_exactly_one_event(self, engine, account, event_store):
        outcome = await engine.apply_event(account.id, "OTP_REQUEST", "dev-1", ip="10.0.0.5")

        events = await event_store.list_events(account.id)
        assert len(events) == 1
        assert events[0].id == outcome.event_id
        assert events[0].kind == EventKind.OTP_REQUEST
        assert events[0].ip == "10.0.0.5"

    @pytest.mark.asyncio
    async def test_commits_score_and_device(self, engine, account, account_store):
        await engine.apply_event(account.id, EventKind.LOGIN_SUCCESS, "dev-1")

        stored = await account_store.get(account.id)
        assert stored.score == 72
        assert stored.known_devices == frozenset({"dev-1"})
        assert stored.version == 1

    @pytest.mark.asyncio
    async def test_missing_device_uses_sentinel(self, engine, account, account_store):
        first = await engine.apply_event(account.id, EventKind.LOGIN_SUCCESS)
        second = await engine.apply_event(account.id, EventKind.LOGIN_SUCCESS, "")

        assert first.delta == -8
        assert second.delta == 2
        stored = await account_store.get(account.id)
        assert stored.known_devices == frozenset({"unknown-device"})

    @pytest.mark.asyncio
    async def test_new_device_fires_once_per_device(self, engine, account, account_store, clock):
        deltas = []
        for device in ["a", "b", "a", "a", "b", "c"]:
            outcome = await engine.apply_event(account.id, EventKind.OTP_REQUEST, device)
            deltas.append("new_device" in outcome.fired_rules)
            # keep OTP requests out of the burst window
            clock.advance(minutes=11)

        assert deltas == [True, True, False, False, False, True]
        stored = await account_store.get(account.id)
        assert stored.known_devices == frozenset({"a", "b", "c"})

    @pytest.mark.asyncio
    async def test_success_respects_ceiling(self, engine, account, account_store):
        await account_store.compare_and_set(account.id, 0, 99, {"dev-1"})

        outcome = await engine.apply_event(account.id, EventKind.LOGIN_SUCCESS, "dev-1")

        assert outcome.delta == 2
        assert outcome.new_score == 100

    @pytest.mark.asyncio
    async def test_success_always_rewards(self, engine, account):
        for _ in range(3):
            await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")
        outcome = await engine.apply_event(account.id, EventKind.LOGIN_SUCCESS, "dev-1")

        assert outcome.delta == 2

    @pytest.mark.asyncio
    async def test_score_floor(self, engine, account):
        outcome = None
        for _ in range(10):
            outcome = await engine.apply_event(account.id, EventKind.OTP_REQUEST, "dev-1")

        assert outcome.new_score == 0
        assert outcome.risk == RiskLabel.HIGH

    @pytest.mark.asyncio
    async def test_high_risk_after_drop(self, engine, account):
        labels = []
        for _ in range(4):
            outcome = await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")
            labels.append((outcome.new_score, outcome.risk))

        # 70, 70, 50, 30
        assert labels[-1] == (30, RiskLabel.HIGH)
        assert labels[-2] == (50, RiskLabel.NORMAL)


class TestWindows:
    """Tests for time-windowed burst rules through the engine."""

    @pytest.mark.asyncio
    async def test_otp_burst_on_third(self, engine, account, clock):
        deltas = []
        for _ in range(3):
            outcome = await engine.apply_event(account.id, EventKind.OTP_REQUEST, "dev-1")
            deltas.append(outcome.delta)
            clock.advance(minutes=4)

        assert deltas == [-10, 0, -25]

    @pytest.mark.asyncio
    async def test_two_otp_never_trigger(self, engine, account, clock):
        first = await engine.apply_event(account.id, EventKind.OTP_REQUEST, "dev-1")
        clock.advance(minutes=9)
        second = await engine.apply_event(account.id, EventKind.OTP_REQUEST, "dev-1")

        assert "otp_burst" not in first.fired_rules
        assert "otp_burst" not in second.fired_rules

    @pytest.mark.asyncio
    async def test_otp_outside_window(self, engine, account, clock):
        await engine.apply_event(account.id, EventKind.OTP_REQUEST, "dev-1")
        clock.advance(minutes=4)
        await engine.apply_event(account.id, EventKind.OTP_REQUEST, "dev-1")
        clock.advance(minutes=7)
        third = await engine.apply_event(account.id, EventKind.OTP_REQUEST, "dev-1")

        assert third.delta == 0

    @pytest.mark.asyncio
    async def test_failure_burst_on_third(self, engine, account, clock):
        deltas = []
        for _ in range(3):
            outcome = await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")
            deltas.append(outcome.delta)
            clock.advance(minutes=1)

        assert deltas == [-10, 0, -20]

    @pytest.mark.asyncio
    async def test_failure_burst_keeps_firing(self, engine, account, clock):
        deltas = []
        for _ in range(5):
            outcome = await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")
            deltas.append(outcome.delta)

        assert deltas == [-10, 0, -20, -20, -20]

    @pytest.mark.asyncio
    async def test_failures_spaced_apart(self, engine, account, clock):
        deltas = []
        for _ in range(4):
            outcome = await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")
            deltas.append(outcome.delta)
            clock.advance(minutes=5, seconds=1)

        assert deltas == [-10, 0, 0, 0]

    @pytest.mark.asyncio
    async def test_failure_window_boundary_inclusive(self, engine, account, clock):
        """A failure exactly five minutes old still counts."""
        await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")
        clock.advance(minutes=2, seconds=30)
        await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")
        clock.advance(minutes=2, seconds=30)
        third = await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")

        assert third.delta == -20

    @pytest.mark.asyncio
    async def test_window_counts_triggering_event(self, engine, account, event_store, clock):
        """
        Two earlier failures plus the triggering one reach the threshold:
        the count is taken after the triggering event is persisted.
        """
        for minutes in (1, 2):
            await event_store.append(
                SecurityEvent(
                    account_id=account.id,
                    kind=EventKind.LOGIN_FAIL,
                    device_id="dev-1",
                    timestamp=clock.now - timedelta(minutes=minutes),
                )
            )

        outcome = await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")

        assert "failure_burst" in outcome.fired_rules

    @pytest.mark.asyncio
    async def test_future_events_not_counted(self, engine, account, event_store, clock):
        """Events stamped after the triggering event never influence it."""
        for minutes in (1, 2):
            await event_store.append(
                SecurityEvent(
                    account_id=account.id,
                    kind=EventKind.OTP_REQUEST,
                    device_id="dev-1",
                    timestamp=clock.now + timedelta(minutes=minutes),
                )
            )

        outcome = await engine.apply_event(account.id, EventKind.OTP_REQUEST, "dev-1")

        assert "otp_burst" not in outcome.fired_rules

    @pytest.mark.asyncio
    async def test_windows_are_per_account(self, engine, clock):
        await engine.register_account("a")
        await engine.register_account("b")

        await engine.apply_event("a", EventKind.LOGIN_FAIL, "dev-1")
        await engine.apply_event("a", EventKind.LOGIN_FAIL, "dev-1")
        outcome = await engine.apply_event("b", EventKind.LOGIN_FAIL, "dev-1")

        assert "failure_burst" not in outcome.fired_rules


class TestScoreBounds:
    """Score stays within [0, 100] for arbitrary event sequences."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", [1, 7, 42])
    async def test_random_sequences(self, engine, account, account_store, clock, seed):
        rng = random.Random(seed)
        kinds = list(EventKind)
        devices = ["dev-1", "dev-2", "dev-3", None]

        for _ in range(150):
            outcome = await engine.apply_event(
                account.id, rng.choice(kinds), rng.choice(devices)
            )
            assert 0 <= outcome.new_score <= 100
            clock.advance(seconds=rng.randint(0, 400))

        stored = await account_store.get(account.id)
        assert stored.score == outcome.new_score
        assert stored.version == 150


class TestErrors:
    """Tests for error propagation and all-or-nothing commits."""

    @pytest.mark.asyncio
    async def test_unknown_account(self, engine, event_store):
        with pytest.raises(AccountNotFoundError):
            await engine.apply_event("ghost", EventKind.LOGIN_FAIL, "dev-1")

        assert await event_store.list_events("ghost") == []

    @pytest.mark.asyncio
    async def test_invalid_kind_persists_nothing(self, engine, account, event_store, account_store):
        with pytest.raises(InvalidEventError):
            await engine.apply_event(account.id, "PASSWORD_RESET", "dev-1")

        assert await event_store.list_events(account.id) == []
        assert (await account_store.get(account.id)).version == 0

    @pytest.mark.asyncio
    async def test_invalid_kind_is_value_error(self, engine, account):
        with pytest.raises(ValueError):
            await engine.apply_event(account.id, "nope")

    @pytest.mark.asyncio
    async def test_append_failure_not_committed(self, account_store, clock):
        events = AsyncMock(spec=InMemoryEventStore)
        events.append.side_effect = StoreUnavailableError("disk full")
        engine = TrustScoringEngine(events, account_store, clock=clock)
        account = await engine.register_account("acct-err")

        with pytest.raises(StoreUnavailableError):
            await engine.apply_event(account.id, EventKind.LOGIN_SUCCESS, "dev-1")

        stored = await account_store.get(account.id)
        assert stored.score == 80
        assert stored.version == 0

    @pytest.mark.asyncio
    async def test_count_failure_not_committed(self, account_store, clock):
        events = AsyncMock(spec=InMemoryEventStore)
        events.append.return_value = "evt-1"
        events.count_in_window.side_effect = StoreUnavailableError("timeout")
        engine = TrustScoringEngine(events, account_store, clock=clock)
        account = await engine.register_account("acct-err")

        with pytest.raises(StoreUnavailableError):
            await engine.apply_event(account.id, EventKind.OTP_REQUEST, "dev-1")

        assert (await account_store.get(account.id)).version == 0

    @pytest.mark.asyncio
    async def test_conflicts_exhausted(self, event_store, clock):
        accounts = InMemoryAccountStore()
        engine = TrustScoringEngine(event_store, accounts, clock=clock, max_attempts=3)
        account = await engine.register_account("acct-busy")
        accounts.compare_and_set = AsyncMock(return_value=False)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await engine.apply_event(account.id, EventKind.LOGIN_FAIL, "dev-1")

        assert isinstance(exc_info.value.__cause__, ScoreConflictError)
        assert accounts.compare_and_set.await_count == 3
        # the event is persisted once, never per attempt
        assert len(await event_store.list_events(account.id)) == 1

    @pytest.mark.asyncio
    async def test_conflict_then_success(self, event_store, clock):
        accounts = InMemoryAccountStore()
        engine = TrustScoringEngine(event_store, accounts, clock=clock, max_attempts=3)
        account = await engine.register_account("acct-race")
        accounts.compare_and_set = AsyncMock(side_effect=[False, True])

        outcome = await engine.apply_event(account.id, EventKind.LOGIN_SUCCESS, "dev-1")

        assert outcome.new_score == 72
        assert accounts.compare_and_set.await_count == 2
