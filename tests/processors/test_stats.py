"""
Statistics Helper Unit Tests

Tests for the shared numeric helpers used by every channel analyzer:
variance conventions, rates, scripted-delay matching, timing entropy and
periodic autocorrelation.
"""

import math

import pytest

from core.processors import stats


# =============================================================================
# Basic Moments
# =============================================================================

class TestMoments:
    """Test mean/variance conventions."""

    def test_variance_of_empty_is_zero(self):
        assert stats.variance([]) == 0.0

    def test_population_variance(self):
        """Population (not sample) variance is used."""
        assert stats.variance([1, 2, 3, 4, 5]) == pytest.approx(2.0)

    def test_mean_of_empty_is_zero(self):
        assert stats.mean([]) == 0.0

    def test_intervals(self):
        assert list(stats.intervals([0, 10, 30])) == [10, 20]
        assert stats.intervals([5]).size == 0

    def test_coefficient_of_variation(self):
        assert stats.coefficient_of_variation([5, 5, 5]) == 0.0
        assert stats.coefficient_of_variation([0, 0]) == 0.0
        assert stats.coefficient_of_variation([]) == 0.0
        assert stats.coefficient_of_variation([10, 30]) == pytest.approx(0.5)


# =============================================================================
# Rates & Patterns
# =============================================================================

class TestRates:
    """Test event rate and scripted-delay matching."""

    def test_events_per_second(self):
        assert stats.events_per_second([0, 1000]) == pytest.approx(2.0)

    def test_single_event_has_no_rate(self):
        assert stats.events_per_second([100]) == 0.0

    def test_burst_span_is_floored(self):
        """Events sharing one timestamp read as an extreme rate, not zero."""
        assert stats.events_per_second([5, 5, 5]) == pytest.approx(3000.0)

    def test_scripted_delay_matches_multiples_either_side(self):
        """99.4 snaps to 100, 40.6 to 2x20; 37 matches nothing."""
        ratio = stats.scripted_delay_ratio([99.4, 40.6, 37.0], [20.0, 100.0], 1.0)
        assert ratio == pytest.approx(2 / 3)

    def test_scripted_delay_empty(self):
        assert stats.scripted_delay_ratio([], [10.0], 1.0) == 0.0
        assert stats.scripted_delay_ratio([10.0], [], 1.0) == 0.0


class TestEntropy:
    """Test bucketed timing entropy."""

    def test_single_bucket_is_zero(self):
        assert stats.normalized_entropy([5, 5, 5], bucket_ms=10) == 0.0

    def test_two_even_buckets_is_one(self):
        assert stats.normalized_entropy([5, 15], bucket_ms=10) == pytest.approx(1.0)

    def test_entropy_is_normalized(self):
        value = stats.normalized_entropy([3, 14, 27, 31, 45, 46, 58, 72], bucket_ms=10)
        assert 0.0 <= value <= 1.0


# =============================================================================
# Autocorrelation
# =============================================================================

class TestPeriodicAutocorrelation:
    """Test detrended periodic autocorrelation."""

    def test_straight_line_has_no_periodicity(self):
        """A linear path detrends to nothing."""
        assert stats.periodic_autocorrelation([3.0 * i for i in range(40)]) == 0.0

    def test_periodic_jitter_on_a_trend(self):
        values = [0.5 * i + 10 * math.sin(2 * math.pi * i / 8) for i in range(64)]
        assert stats.periodic_autocorrelation(values, 2, 20) > 0.5

    def test_too_short_for_min_lag(self):
        assert stats.periodic_autocorrelation([1.0, 4.0, 2.0], 2, 20) == 0.0

    def test_autocorrelation_lag_zero_is_one(self):
        residual = stats.detrend([0, 3, -1, 4, 1, -2, 5])
        acf = stats.autocorrelation(residual, 3)
        assert acf[0] == pytest.approx(1.0)
        assert len(acf) == 4
