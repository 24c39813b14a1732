"""
Touch Analyzer

Scores touch contacts by force and contact-radius variation, event rate and
untrusted share. Touch hardware reports noisy force; a flat force profile
and a wildly erratic one are both suspicious.
"""

from typing import Optional, Sequence

from core.config import CalibrationConfig
from core.processors import stats
from core.processors.scoring import breakdown_score, rule, sample_confidence
from core.schemas.inputs import TouchEvent
from core.schemas.outputs import ChannelResult


def _contact_radius(touch: TouchEvent) -> Optional[float]:
    """Mean of the reported positive radii, None when neither is reported."""
    radii = [r for r in (touch.radius_x, touch.radius_y) if r is not None and r > 0]
    if not radii:
        return None
    return sum(radii) / len(radii)


class TouchAnalyzer:
    """Touch channel analyzer."""

    def __init__(self, config: CalibrationConfig) -> None:
        self._thresholds = config.touch_thresholds
        self._weights = config.touch_weights
        self._delays = config.mouse_thresholds.scripted_delays_ms
        self._delay_tolerance = config.mouse_thresholds.delay_tolerance_ms
        self._delay_ratio = config.mouse_thresholds.scripted_delay_ratio
        self._min_samples = config.min_samples.touch

    def analyze(self, touches: Sequence[TouchEvent]) -> ChannelResult:
        n = len(touches)
        if n < 2:
            return ChannelResult.unavailable(sample_count=n)

        t = self._thresholds
        w = self._weights

        forces = [tc.force for tc in touches if tc.force is not None and tc.force > 0]
        radii = [r for r in (_contact_radius(tc) for tc in touches) if r is not None]
        timestamps = [tc.timestamp for tc in touches]
        timing = stats.intervals(timestamps)

        force_variance = stats.variance(forces)
        radius_variance = stats.variance(radii)
        untrusted_ratio = sum(1 for tc in touches if not tc.trusted) / n
        rate = stats.events_per_second(timestamps)
        delay_ratio = stats.scripted_delay_ratio(timing, self._delays, self._delay_tolerance)
        # Two contacts are one interval: no variance or rate is judged on them
        judged = timing.size >= stats.MIN_VARIANCE_OBSERVATIONS
        force_judged = judged and len(forces) >= stats.MIN_VARIANCE_OBSERVATIONS
        radius_judged = judged and len(radii) >= stats.MIN_VARIANCE_OBSERVATIONS

        breakdown = {
            "low_force_variance": rule(
                force_judged and force_variance < t.low_force_variance, w.low_force_variance,
                force_variance, t.low_force_variance,
            ),
            "low_radius_variance": rule(
                radius_judged and radius_variance < t.low_radius_variance, w.low_radius_variance,
                radius_variance, t.low_radius_variance,
            ),
            "high_force_variance": rule(
                force_judged and force_variance > t.high_force_variance, w.high_force_variance,
                force_variance, t.high_force_variance, details="artificially erratic",
            ),
            "high_untrusted_ratio": rule(
                untrusted_ratio > t.high_untrusted_ratio, w.high_untrusted_ratio,
                untrusted_ratio, t.high_untrusted_ratio,
            ),
            "high_events_per_second": rule(
                judged and rate > t.high_events_per_second, w.high_events_per_second,
                rate, t.high_events_per_second,
            ),
            "scripted_delay_pattern": rule(
                n >= stats.MIN_PATTERN_EVENTS and delay_ratio > self._delay_ratio,
                w.scripted_delay_pattern, delay_ratio, self._delay_ratio,
            ),
        }

        return ChannelResult(
            available=True,
            score=breakdown_score(breakdown),
            confidence=sample_confidence(n, self._min_samples),
            metrics={
                "sample_count": n,
                "force_readings": len(forces),
                "force_variance": force_variance,
                "radius_variance": radius_variance,
                "untrusted_ratio": untrusted_ratio,
                "events_per_second": rate,
                "scripted_delay_ratio": delay_ratio,
            },
            scoring_breakdown=breakdown,
        )
