"""
Environment Analyzer Unit Tests

Tests for the ambient motion and rendering-timing analyzers.
"""

import pytest

from core.processors.environment import RenderTimingAnalyzer, SensorAnalyzer
from core.schemas.inputs import MotionSample, RenderTiming


class TestSensorAnalyzer:
    """Test flat-axis detection on motion samples."""

    def test_no_samples_unavailable(self, config):
        assert SensorAnalyzer(config).analyze([]).available is False

    def test_flat_axes_suspicious(self, config):
        samples = [MotionSample(x=0.0, y=0.0, z=9.81, timestamp=16 * i) for i in range(20)]
        result = SensorAnalyzer(config).analyze(samples)

        assert result.fired("flat_x_axis")
        assert result.fired("flat_y_axis")
        assert result.fired("flat_z_axis")
        assert result.score == pytest.approx(1.0)
        assert result.confidence == pytest.approx(0.5)

    def test_noisy_axes_clean(self, config):
        noise = [0.12, -0.31, 0.05, 0.44, -0.2, 0.27, -0.09, 0.18]
        samples = [
            MotionSample(x=n, y=-n * 0.8, z=9.81 + n, timestamp=16 * i)
            for i, n in enumerate(noise)
        ]
        result = SensorAnalyzer(config).analyze(samples)
        assert result.score == 0.0

    def test_missing_axis_is_not_flat(self, config):
        noise = [0.12, -0.31, 0.05, 0.44]
        samples = [MotionSample(x=n, y=n, timestamp=i) for i, n in enumerate(noise)]
        result = SensorAnalyzer(config).analyze(samples)
        assert not result.fired("flat_z_axis")

    def test_single_reading_is_not_flat(self, config):
        """One reading per axis has zero variance but is not evidence."""
        result = SensorAnalyzer(config).analyze([MotionSample(x=0.0, y=0.0, z=9.81, timestamp=0)])
        assert result.available is True
        assert result.score == 0.0


class TestRenderTimingAnalyzer:
    """Test the one-shot rendering latency probe."""

    def test_no_probe_unavailable(self, config):
        assert RenderTimingAnalyzer(config).analyze(None).available is False

    def test_too_fast(self, config):
        result = RenderTimingAnalyzer(config).analyze(RenderTiming(duration_ms=0.05, timestamp=0))
        assert result.fired("too_fast")
        assert not result.fired("round_value")
        assert result.score == pytest.approx(0.5)
        assert result.confidence == pytest.approx(0.6)

    def test_too_slow_and_round(self, config):
        result = RenderTimingAnalyzer(config).analyze(RenderTiming(duration_ms=150.0, timestamp=0))
        assert result.fired("too_slow")
        assert result.fired("round_value")
        assert result.score == pytest.approx(0.5)

    def test_plausible_duration(self, config):
        result = RenderTimingAnalyzer(config).analyze(RenderTiming(duration_ms=16.7, timestamp=0))
        assert result.score == 0.0
        assert result.metrics["duration_ms"] == pytest.approx(16.7)

    def test_negative_duration_rejected(self):
        from pydantic import ValidationError
        with pytest.raises(ValidationError):
            RenderTiming(duration_ms=-1.0, timestamp=0)
