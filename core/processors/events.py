"""
DOM Event Analyzer

Scores generic DOM-like events (clicks, focus changes). Synthetic events
dispatched by scripts arrive untrusted or on a fixed cadence.
"""

from typing import Sequence

from core.config import CalibrationConfig
from core.processors import stats
from core.processors.scoring import breakdown_score, rule, sample_confidence
from core.schemas.inputs import DomEvent
from core.schemas.outputs import ChannelResult


class EventAnalyzer:
    """DOM events channel analyzer."""

    def __init__(self, config: CalibrationConfig) -> None:
        self._thresholds = config.event_thresholds
        self._weights = config.event_weights
        self._min_samples = config.min_samples.events

    def analyze(self, events: Sequence[DomEvent]) -> ChannelResult:
        n = len(events)
        if n < 2:
            return ChannelResult.unavailable(sample_count=n)

        t = self._thresholds
        timing = stats.intervals([e.timestamp for e in events])
        interval_variance = stats.variance(timing)
        untrusted_ratio = sum(1 for e in events if not e.trusted) / n

        breakdown = {
            "low_interval_variance": rule(
                timing.size >= stats.MIN_VARIANCE_OBSERVATIONS and interval_variance < t.low_interval_variance,
                self._weights.low_interval_variance,
                interval_variance, t.low_interval_variance,
            ),
            "high_untrusted_ratio": rule(
                untrusted_ratio > t.high_untrusted_ratio, self._weights.high_untrusted_ratio,
                untrusted_ratio, t.high_untrusted_ratio,
            ),
        }

        return ChannelResult(
            available=True,
            score=breakdown_score(breakdown),
            confidence=sample_confidence(n, self._min_samples),
            metrics={
                "sample_count": n,
                "interval_variance": interval_variance,
                "untrusted_ratio": untrusted_ratio,
                "event_types": sorted({e.event_type for e in events}),
            },
            scoring_breakdown=breakdown,
        )
