"""
Scroll Analyzer

Scores a buffer of absolute scroll offsets. Both extremes are suspicious:
near-constant deltas and timing point to a scripted loop, while wildly
erratic deltas point to artificial randomization. Excessive event rate is
suspicious on its own. Very high interval variance (long reading pauses) is
human-like evidence and is subtracted.
"""

import math
from typing import Sequence

from core.config import CalibrationConfig
from core.processors import stats
from core.processors.scoring import breakdown_score, rule, sample_confidence
from core.schemas.inputs import ScrollEvent
from core.schemas.outputs import ChannelResult


class ScrollAnalyzer:
    """Scroll channel analyzer."""

    def __init__(self, config: CalibrationConfig) -> None:
        self._thresholds = config.scroll_thresholds
        self._weights = config.scroll_weights
        self._delays = config.mouse_thresholds.scripted_delays_ms
        self._delay_tolerance = config.mouse_thresholds.delay_tolerance_ms
        self._delay_ratio = config.mouse_thresholds.scripted_delay_ratio
        self._min_samples = config.min_samples.scroll

    def analyze(self, scrolls: Sequence[ScrollEvent]) -> ChannelResult:
        n = len(scrolls)
        if n < 2:
            return ChannelResult.unavailable(sample_count=n)

        t = self._thresholds
        w = self._weights

        deltas = []
        distinct = set()
        for prev, curr in zip(scrolls, scrolls[1:]):
            dx = curr.scroll_x - prev.scroll_x
            dy = curr.scroll_y - prev.scroll_y
            deltas.append(math.hypot(dx, dy))
            distinct.add((dx, dy))

        timestamps = [s.timestamp for s in scrolls]
        timing = stats.intervals(timestamps)
        delta_variance = stats.variance(deltas)
        interval_variance = stats.variance(timing)
        unique_ratio = len(distinct) / len(deltas)
        rate = stats.events_per_second(timestamps)
        delay_ratio = stats.scripted_delay_ratio(timing, self._delays, self._delay_tolerance)
        scripted = n >= stats.MIN_PATTERN_EVENTS and delay_ratio > self._delay_ratio
        # One delta or one interval is never evidence
        judged = len(deltas) >= stats.MIN_VARIANCE_OBSERVATIONS

        breakdown = {
            "low_delta_variance": rule(
                judged and delta_variance < t.low_delta_variance, w.low_delta_variance,
                delta_variance, t.low_delta_variance,
            ),
            "low_interval_variance": rule(
                judged and interval_variance < t.low_interval_variance, w.low_interval_variance,
                interval_variance, t.low_interval_variance,
            ),
            "low_unique_delta_ratio": rule(
                judged and unique_ratio < t.low_unique_delta_ratio, w.low_unique_delta_ratio,
                unique_ratio, t.low_unique_delta_ratio,
            ),
            "high_delta_variance": rule(
                judged and delta_variance > t.high_delta_variance, w.high_delta_variance,
                delta_variance, t.high_delta_variance, details="artificially erratic",
            ),
            "high_events_per_second": rule(
                judged and rate > t.high_events_per_second, w.high_events_per_second,
                rate, t.high_events_per_second,
            ),
            "scripted_delay_pattern": rule(
                scripted, w.scripted_delay_pattern, delay_ratio, self._delay_ratio,
            ),
            "high_interval_variance": rule(
                interval_variance > t.high_interval_variance, w.high_interval_variance,
                interval_variance, t.high_interval_variance,
                negative=True, details="reading pauses",
            ),
        }

        return ChannelResult(
            available=True,
            score=breakdown_score(breakdown),
            confidence=sample_confidence(n, self._min_samples),
            metrics={
                "sample_count": n,
                "delta_variance": delta_variance,
                "interval_variance": interval_variance,
                "unique_delta_ratio": unique_ratio,
                "events_per_second": rate,
                "scripted_delay_ratio": delay_ratio,
            },
            scoring_breakdown=breakdown,
        )
