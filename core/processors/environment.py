"""
Environment Analyzers - Sensors & Rendering Timing

Channels that describe the device rather than the user's input:
- Ambient motion: real accelerometers carry noise; a perfectly flat axis
  suggests an emulated sensor.
- Rendering timing: a single probe duration. Stubbed backends answer
  implausibly fast, software emulation implausibly slow, and synthetic
  timers return suspiciously round values.

Both report a fixed moderate confidence since their evidence is weak and
permission-gated.
"""

import math
from typing import Optional, Sequence

from core.config import CalibrationConfig
from core.processors import stats
from core.processors.scoring import breakdown_score, rule
from core.schemas.inputs import MotionSample, RenderTiming
from core.schemas.outputs import ChannelResult


class SensorAnalyzer:
    """Ambient motion channel analyzer."""

    AXES = ("x", "y", "z")

    def __init__(self, config: CalibrationConfig) -> None:
        self._thresholds = config.sensor_thresholds
        self._weights = config.sensor_weights

    def analyze(self, samples: Sequence[MotionSample]) -> ChannelResult:
        n = len(samples)
        if n == 0:
            return ChannelResult.unavailable(sample_count=0)

        threshold = self._thresholds.low_axis_variance
        metrics = {"sample_count": n}
        breakdown = {}

        for axis in self.AXES:
            values = [getattr(s, axis) for s in samples if getattr(s, axis) is not None]
            axis_variance = stats.variance(values)
            metrics[f"{axis}_variance"] = axis_variance
            breakdown[f"flat_{axis}_axis"] = rule(
                len(values) >= stats.MIN_VARIANCE_OBSERVATIONS and axis_variance < threshold,
                getattr(self._weights, axis), axis_variance, threshold,
            )

        return ChannelResult(
            available=True,
            score=breakdown_score(breakdown),
            confidence=self._thresholds.confidence,
            metrics=metrics,
            scoring_breakdown=breakdown,
        )


class RenderTimingAnalyzer:
    """Rendering-latency probe analyzer."""

    def __init__(self, config: CalibrationConfig) -> None:
        self._thresholds = config.render_timing_thresholds
        self._weights = config.render_timing_weights

    def analyze(self, timing: Optional[RenderTiming]) -> ChannelResult:
        if timing is None:
            return ChannelResult.unavailable()

        t = self._thresholds
        w = self._weights
        duration = timing.duration_ms
        fraction = duration - math.floor(duration)
        is_round = fraction < t.round_value_tolerance or fraction > 1 - t.round_value_tolerance

        breakdown = {
            "too_fast": rule(
                duration < t.too_fast_ms, w.too_fast, duration, t.too_fast_ms,
                details="stub or virtualized backend",
            ),
            "too_slow": rule(
                duration > t.too_slow_ms, w.too_slow, duration, t.too_slow_ms,
                details="software emulation",
            ),
            "round_value": rule(
                is_round, w.round_value, fraction, t.round_value_tolerance,
                details="synthetic timer",
            ),
        }

        return ChannelResult(
            available=True,
            score=breakdown_score(breakdown),
            confidence=t.confidence,
            metrics={"duration_ms": duration},
            scoring_breakdown=breakdown,
        )
