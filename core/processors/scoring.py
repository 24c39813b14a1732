"""
Rule bookkeeping shared by the channel analyzers.

Every analyzer reports each of its rules in the scoring breakdown, fired or
not, and derives its score from the breakdown alone.
"""

from typing import Dict, Optional

from core.schemas.outputs import RuleResult


def rule(
    triggered: bool,
    weight: float,
    value: Optional[float] = None,
    threshold: Optional[float] = None,
    *,
    corroborated: bool = False,
    negative: bool = False,
    details: Optional[str] = None,
) -> RuleResult:
    return RuleResult(
        triggered=bool(triggered),
        weight=float(weight),
        value=None if value is None else float(value),
        threshold=None if threshold is None else float(threshold),
        requires_corroboration=corroborated,
        negative=negative,
        details=details,
    )


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def breakdown_score(breakdown: Dict[str, RuleResult], multiplier: float = 1.0) -> float:
    """
    Additive score of the fired rules, clamped to [0, 1].

    Positive evidence is summed and scaled by ``multiplier``; negative
    evidence is then subtracted.
    """
    positive = sum(r.weight for r in breakdown.values() if r.triggered and not r.negative)
    negative = sum(r.weight for r in breakdown.values() if r.triggered and r.negative)
    return clamp(positive * multiplier - negative)


def sample_confidence(sample_count: int, min_samples: int) -> float:
    if min_samples <= 0:
        return 1.0
    return clamp(sample_count / min_samples)
