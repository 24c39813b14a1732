"""
Mouse Analyzer Unit Tests

Tests for MouseAnalyzer rule evaluation over synthetic pointer paths.
Validates the naive-bot tells, corroboration requirements, curvature and
periodicity detectors and pointer metadata checks.
"""

import math

import pytest

from core.processors.mouse import MouseAnalyzer
from core.schemas.inputs import MouseEvent


@pytest.fixture
def analyzer(config):
    return MouseAnalyzer(config)


# =============================================================================
# Availability
# =============================================================================

class TestAvailability:
    """Test minimum input handling."""

    def test_fewer_than_two_samples_unavailable(self, analyzer):
        result = analyzer.analyze([MouseEvent(x=1, y=1, timestamp=0)])
        assert result.available is False
        assert result.score == 0.0
        assert result.metrics["sample_count"] == 1

    def test_every_rule_is_reported(self, analyzer, bot_mouse_path):
        """Fired or not, each rule appears in the breakdown."""
        result = analyzer.analyze(bot_mouse_path)
        assert set(result.scoring_breakdown) == {
            "low_velocity_variance", "low_angle_variance", "high_straight_line_ratio",
            "high_untrusted_ratio", "high_mouse_efficiency", "low_timing_variance",
            "constant_timing", "periodic_noise", "scripted_delay_pattern",
            "low_accel_variance", "smooth_curvature", "pressure_suspicious",
            "low_entropy", "fingerprint_suspicious",
        }


# =============================================================================
# Scripted Paths
# =============================================================================

class TestScriptedPath:
    """Test the straight, evenly timed diagonal bot path."""

    def test_naive_bot_scores_maximum(self, analyzer, bot_mouse_path):
        result = analyzer.analyze(bot_mouse_path)

        assert result.available is True
        assert result.score == pytest.approx(1.0)
        assert result.confidence == pytest.approx(1.0)
        assert result.metrics["mouse_efficiency"] > 0.99
        assert result.metrics["naive_multiplier"] == pytest.approx(1.5)

        print(f"\n✅ Bot path score: {result.score:.3f}")

    def test_naive_bot_tells_fire(self, analyzer, bot_mouse_path):
        result = analyzer.analyze(bot_mouse_path)
        for name in (
            "high_straight_line_ratio", "constant_timing", "low_timing_variance",
            "high_mouse_efficiency", "scripted_delay_pattern", "low_accel_variance",
            "low_velocity_variance", "low_entropy",
        ):
            assert result.fired(name), f"{name} should fire on a scripted line"

    def test_straight_line_is_not_smooth_curvature(self, analyzer, bot_mouse_path):
        """Zero curvature is a straight line, not a parametric curve."""
        result = analyzer.analyze(bot_mouse_path)
        assert not result.fired("smooth_curvature")
        assert not result.fired("periodic_noise")

    def test_untrusted_events(self, analyzer, bot_mouse_path):
        untrusted = [m.model_copy(update={"trusted": False}) for m in bot_mouse_path]
        result = analyzer.analyze(untrusted)
        assert result.fired("high_untrusted_ratio")
        assert result.metrics["untrusted_ratio"] == pytest.approx(1.0)

    def test_constant_arc_is_smooth(self, analyzer, circle_path):
        result = analyzer.analyze(circle_path(30))
        assert result.fired("smooth_curvature")
        assert not result.fired("high_straight_line_ratio")

    def test_periodic_jitter_detected(self, analyzer):
        path = [
            MouseEvent(x=5 * i, y=300 + 20 * math.sin(2 * math.pi * i / 8), timestamp=16 * i)
            for i in range(64)
        ]
        result = analyzer.analyze(path)
        assert result.metrics["max_autocorrelation"] > 0.5
        assert result.fired("periodic_noise")


# =============================================================================
# Human Paths
# =============================================================================

class TestHumanPath:
    """Test a wandering, irregularly timed path."""

    def test_human_path_scores_low(self, analyzer, human_mouse_path):
        result = analyzer.analyze(human_mouse_path)

        assert result.available is True
        assert result.score < 0.25
        for name in (
            "high_straight_line_ratio", "low_timing_variance", "constant_timing",
            "low_velocity_variance", "high_mouse_efficiency", "scripted_delay_pattern",
            "pressure_suspicious", "fingerprint_suspicious",
        ):
            assert not result.fired(name), f"{name} should not fire on a human path"

        print(f"\n✅ Human path score: {result.score:.3f}")

    def test_naive_multiplier_not_applied(self, analyzer, human_mouse_path):
        result = analyzer.analyze(human_mouse_path)
        assert result.metrics["naive_multiplier"] == pytest.approx(1.0)


# =============================================================================
# Corroboration
# =============================================================================

class TestCorroboration:
    """Test rules that need a second signal."""

    def test_low_velocity_variance_needs_corroboration(self, analyzer):
        """Nearly constant speed alone is not enough without low acceleration or scripted delays."""
        steps = [13.0, 13.0, 13.26] * 10
        path = [MouseEvent(x=0, y=0, timestamp=0)]
        x = 0.0
        for i, step in enumerate(steps, start=1):
            x += step
            path.append(MouseEvent(x=x, y=0, timestamp=13 * i))

        result = analyzer.analyze(path)
        velocity = result.scoring_breakdown["low_velocity_variance"]

        assert velocity.value < velocity.threshold
        assert velocity.requires_corroboration is True
        assert not result.fired("low_velocity_variance")
        assert not result.fired("low_accel_variance")
        assert not result.fired("scripted_delay_pattern")

    def test_constant_pressure_corroborated_by_smooth_curve(self, analyzer, circle_path):
        result = analyzer.analyze(circle_path(30, pressure=0.5, width=1.0, height=1.0))
        assert result.fired("pressure_suspicious")
        assert result.metrics["pressure_variance"] == pytest.approx(0.0)

    def test_switching_pointer_type(self, analyzer, circle_path):
        path = [
            m.model_copy(update={"pointer_type": "mouse" if i % 2 else "pen", "pressure": 0.3 + 0.01 * i})
            for i, m in enumerate(circle_path(30))
        ]
        result = analyzer.analyze(path)
        assert result.metrics["inconsistent_pointer_type"] is True
        assert result.fired("fingerprint_suspicious")

    def test_insufficient_samples_skip_variance_rules(self, analyzer, bot_mouse_path):
        """Below the variance minimum the naive tells stay quiet."""
        result = analyzer.analyze(bot_mouse_path[:6])
        assert not result.fired("high_straight_line_ratio")
        assert not result.fired("constant_timing")
        assert not result.fired("low_timing_variance")
        assert result.confidence == pytest.approx(6 / 20)
