"""
TrustScore Scoring Package
==========================

Trust scoring engine for security events.

This package provides:
    - rules: The fixed rule catalog
    - engine: Event application and score commits
    - risk: Score clamping and risk classification
    - locks: Per-account serialization

Author: TrustScore Team
Version: 1.0.0
"""

from trustscore.scoring.engine import TrustScoringEngine
from trustscore.scoring.risk import classify
from trustscore.scoring.rules import default_rules

__all__ = [
    "TrustScoringEngine",
    "classify",
    "default_rules",
]
