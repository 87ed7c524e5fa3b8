"""
Prometheus Metrics Module
=========================

Exposes scoring metrics for Prometheus scraping.

Metrics:
    - trustscore_events_applied_total: Events applied by kind and status (counter)
    - trustscore_rule_fired_total: Rule firings by rule name (counter)
    - trustscore_score_conflicts_total: Compare-and-set conflicts (counter)
    - trustscore_apply_duration_seconds: apply_event latency (histogram)

Author: TrustScore Team
Version: 1.0.0
"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


# =========================================================================
# Metric Definitions
# =========================================================================

EVENTS_APPLIED = Counter(
    "trustscore_events_applied_total",
    "Total security events applied to trust scores",
    ["kind", "status"],
)

RULES_FIRED = Counter(
    "trustscore_rule_fired_total",
    "Total scoring rule firings",
    ["rule"],
)

SCORE_CONFLICTS = Counter(
    "trustscore_score_conflicts_total",
    "Compare-and-set conflicts while committing a score",
)

APPLY_DURATION = Histogram(
    "trustscore_apply_duration_seconds",
    "apply_event duration in seconds",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)


# =========================================================================
# Helper Functions
# =========================================================================

def record_event_applied(kind: str, status: str = "success") -> None:
    """Record the outcome of one apply_event call."""
    EVENTS_APPLIED.labels(kind=kind, status=status).inc()


def record_rule_fired(rule: str) -> None:
    RULES_FIRED.labels(rule=rule).inc()


def record_conflict() -> None:
    SCORE_CONFLICTS.inc()


def record_apply_duration(duration: float) -> None:
    APPLY_DURATION.observe(duration)


def render_latest() -> tuple[bytes, str]:
    """Render all metrics in the Prometheus text format."""
    return generate_latest(), CONTENT_TYPE_LATEST
