"""
Keyboard Analyzer

Scores completed keystrokes (key-up samples carrying their hold time).
Extracts hold-time variance, inter-key interval variance and the share of
untrusted events.

Very high inter-key variance means the typist stopped to read or think.
That is human-like evidence and is subtracted from the score.
"""

from typing import Sequence

from core.config import CalibrationConfig
from core.processors import stats
from core.processors.scoring import breakdown_score, rule, sample_confidence
from core.schemas.inputs import KeystrokeSample
from core.schemas.outputs import ChannelResult


class KeyboardAnalyzer:
    """Keyboard channel analyzer."""

    def __init__(self, config: CalibrationConfig) -> None:
        self._thresholds = config.keyboard_thresholds
        self._weights = config.keyboard_weights
        self._min_samples = config.min_samples.keyboard

    def analyze(self, keystrokes: Sequence[KeystrokeSample]) -> ChannelResult:
        n = len(keystrokes)
        if n < 2:
            return ChannelResult.unavailable(sample_count=n)

        t = self._thresholds
        w = self._weights

        hold_times = [k.hold_time for k in keystrokes if k.hold_time is not None]
        inter_key = stats.intervals([k.timestamp for k in keystrokes])
        hold_variance = stats.variance(hold_times)
        inter_key_variance = stats.variance(inter_key)
        untrusted_ratio = sum(1 for k in keystrokes if not k.trusted) / n

        breakdown = {
            "low_hold_time_variance": rule(
                hold_variance < t.low_hold_time_variance and len(hold_times) >= stats.MIN_VARIANCE_OBSERVATIONS,
                w.low_hold_time_variance, hold_variance, t.low_hold_time_variance,
            ),
            "low_inter_key_variance": rule(
                inter_key_variance < t.low_inter_key_variance and inter_key.size >= stats.MIN_VARIANCE_OBSERVATIONS,
                w.low_inter_key_variance, inter_key_variance, t.low_inter_key_variance,
            ),
            "high_untrusted_ratio": rule(
                untrusted_ratio > t.high_untrusted_ratio, w.high_untrusted_ratio,
                untrusted_ratio, t.high_untrusted_ratio,
            ),
            "high_inter_key_variance": rule(
                inter_key_variance > t.high_inter_key_variance, w.high_inter_key_variance,
                inter_key_variance, t.high_inter_key_variance,
                negative=True, details="reading/thinking pauses",
            ),
        }

        return ChannelResult(
            available=True,
            score=breakdown_score(breakdown),
            confidence=sample_confidence(n, self._min_samples),
            metrics={
                "sample_count": n,
                "hold_time_count": len(hold_times),
                "hold_time_variance": hold_variance,
                "mean_hold_time": stats.mean(hold_times),
                "inter_key_variance": inter_key_variance,
                "mean_inter_key_time": stats.mean(inter_key),
                "untrusted_ratio": untrusted_ratio,
            },
            scoring_breakdown=breakdown,
        )
