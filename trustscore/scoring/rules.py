"""
Trust Scoring Rules
===================

The fixed rule catalog that turns an incoming event plus recent history
into a score delta.

Rules, in evaluation order:

    1. New device      device not seen before for the account   -10
    2. OTP burst       >= 3 OTP_REQUEST in the last 10 minutes  -25
    3. Failure burst   >= 3 LOGIN_FAIL in the last 5 minutes    -20
    4. Success reward  LOGIN_SUCCESS                             +2

All applicable rules fire; there is no short-circuiting. Windows are
anchored at the triggering event's timestamp and include both their
lower bound and the triggering event itself (the engine persists the
event before evaluating rules).

Rules never mutate the account. The new-device rule reports the device
in its outcome and the engine adds it in the same commit as the score.

Author: TrustScore Team
Version: 1.0.0
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

from trustscore.schemas import AccountRecord, EventKind, SecurityEvent
from trustscore.stores.base import EventStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleContext:
    """Inputs a rule may consult."""
    account: AccountRecord
    event: SecurityEvent
    events: EventStore


@dataclass(frozen=True)
class RuleOutcome:
    """
    Result of one rule against one event.

    A rule that did not fire returns delta 0 and ``fired`` False.
    """
    rule: str
    delta: int = 0
    fired: bool = False
    new_device: Optional[str] = None


class ScoringRule(ABC):
    """Base class for catalog rules."""

    name: str = "rule"

    @abstractmethod
    async def evaluate(self, ctx: RuleContext) -> RuleOutcome:
        """Evaluate the rule against one event."""

    def _fire(self, delta: int, new_device: Optional[str] = None) -> RuleOutcome:
        return RuleOutcome(rule=self.name, delta=delta, fired=True, new_device=new_device)

    def _skip(self) -> RuleOutcome:
        return RuleOutcome(rule=self.name)


class NewDeviceRule(ScoringRule):
    """Penalize the first appearance of a device on an account."""

    name = "new_device"
    PENALTY = -10

    async def evaluate(self, ctx: RuleContext) -> RuleOutcome:
        device_id = ctx.event.device_id
        if not device_id or ctx.account.knows_device(device_id):
            return self._skip()
        return self._fire(self.PENALTY, new_device=device_id)


class WindowedBurstRule(ScoringRule):
    """
    Penalize a burst of one event kind inside a trailing window.

    Subclasses set KIND, WINDOW, THRESHOLD and PENALTY.
    """

    KIND: EventKind
    WINDOW: timedelta
    THRESHOLD: int
    PENALTY: int

    async def evaluate(self, ctx: RuleContext) -> RuleOutcome:
        if ctx.event.kind != self.KIND:
            return self._skip()

        now = ctx.event.timestamp
        count = await ctx.events.count_in_window(
            account_id=ctx.account.id,
            kind=self.KIND,
            since=now - self.WINDOW,
            until=now,
        )
        logger.debug(
            f"{self.name}: {count} {self.KIND.value} events in "
            f"{int(self.WINDOW.total_seconds() // 60)}m for {ctx.account.id}"
        )
        if count >= self.THRESHOLD:
            return self._fire(self.PENALTY)
        return self._skip()


class OtpBurstRule(WindowedBurstRule):
    """Three or more OTP requests within ten minutes."""

    name = "otp_burst"
    KIND = EventKind.OTP_REQUEST
    WINDOW = timedelta(minutes=10)
    THRESHOLD = 3
    PENALTY = -25


class FailureBurstRule(WindowedBurstRule):
    """Three or more failed logins within five minutes."""

    name = "failure_burst"
    KIND = EventKind.LOGIN_FAIL
    WINDOW = timedelta(minutes=5)
    THRESHOLD = 3
    PENALTY = -20


class SuccessRewardRule(ScoringRule):
    """Small reward for every successful login."""

    name = "success_reward"
    REWARD = 2

    async def evaluate(self, ctx: RuleContext) -> RuleOutcome:
        if ctx.event.kind != EventKind.LOGIN_SUCCESS:
            return self._skip()
        return self._fire(self.REWARD)


def default_rules() -> Tuple[ScoringRule, ...]:
    """The rule catalog in evaluation order."""
    return (
        NewDeviceRule(),
        OtpBurstRule(),
        FailureBurstRule(),
        SuccessRewardRule(),
    )


async def evaluate_rules(
    rules: Sequence[ScoringRule], ctx: RuleContext
) -> List[RuleOutcome]:
    """Run every rule in order against the same context."""
    outcomes = []
    for rule in rules:
        outcomes.append(await rule.evaluate(ctx))
    return outcomes
