"""
Risk Classification
===================

Pure helpers that bound trust scores and map them to risk labels.

Author: TrustScore Team
Version: 1.0.0
"""

from trustscore.schemas import DEFAULT_SCORE, MAX_SCORE, MIN_SCORE, RiskLabel

# Scores strictly below this are HIGH risk
HIGH_RISK_THRESHOLD = 40


def clamp_score(value: int) -> int:
    """Clamp a raw score into [MIN_SCORE, MAX_SCORE]."""
    return max(MIN_SCORE, min(MAX_SCORE, value))


def classify(score: int) -> RiskLabel:
    """
    Classify a trust score into a risk label.

    Args:
        score: Committed trust score

    Returns:
        RiskLabel.HIGH when the score is below 40, else RiskLabel.NORMAL
    """
    if score < HIGH_RISK_THRESHOLD:
        return RiskLabel.HIGH
    return RiskLabel.NORMAL


__all__ = [
    "DEFAULT_SCORE",
    "HIGH_RISK_THRESHOLD",
    "MAX_SCORE",
    "MIN_SCORE",
    "clamp_score",
    "classify",
]
