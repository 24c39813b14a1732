"""
Keyboard / Scroll / Touch / Event Analyzer Unit Tests

Tests for the non-pointer input channel analyzers: scripted rhythms,
human-like negative evidence, burst rates and untrusted shares.
"""

import pytest

from core.processors.events import EventAnalyzer
from core.processors.keyboard import KeyboardAnalyzer
from core.processors.scroll import ScrollAnalyzer
from core.processors.touch import TouchAnalyzer, _contact_radius
from core.schemas.inputs import DomEvent, KeystrokeSample, ScrollEvent, TouchEvent


# =============================================================================
# Keyboard
# =============================================================================

class TestKeyboardAnalyzer:
    """Test keyboard rules over completed keystrokes."""

    def test_unavailable_below_two_keystrokes(self, config):
        result = KeyboardAnalyzer(config).analyze([KeystrokeSample(key="a", timestamp=0, hold_time=80)])
        assert result.available is False

    def test_scripted_rhythm(self, config, bot_keystrokes):
        result = KeyboardAnalyzer(config).analyze(bot_keystrokes)

        assert result.fired("low_hold_time_variance")
        assert result.fired("low_inter_key_variance")
        assert not result.fired("high_untrusted_ratio")
        assert result.score == pytest.approx(0.7)
        assert result.confidence == pytest.approx(1.0)

        print(f"\n✅ Scripted keyboard score: {result.score:.2f}")

    def test_human_rhythm(self, config, human_keystrokes):
        result = KeyboardAnalyzer(config).analyze(human_keystrokes)
        assert result.score == 0.0
        assert not any(r.triggered for r in result.scoring_breakdown.values())

    def test_untrusted_keystrokes(self, config, human_keystrokes):
        untrusted = [k.model_copy(update={"trusted": False}) for k in human_keystrokes]
        result = KeyboardAnalyzer(config).analyze(untrusted)
        assert result.fired("high_untrusted_ratio")
        assert result.score == pytest.approx(0.3)

    def test_thinking_pauses_are_negative_evidence(self, config):
        gaps = [100, 100, 8000, 100, 9000, 100]
        holds = [90, 120, 75, 140, 100, 85, 130]
        samples, t = [], 0.0
        for i, hold in enumerate(holds):
            if i > 0:
                t += gaps[i - 1]
            samples.append(KeystrokeSample(key="x", timestamp=t, hold_time=hold))

        result = KeyboardAnalyzer(config).analyze(samples)
        pause = result.scoring_breakdown["high_inter_key_variance"]

        assert pause.triggered is True
        assert pause.negative is True
        assert result.metrics["inter_key_variance"] > 5_000_000
        assert result.score == 0.0

    def test_single_hold_time_not_judged(self, config):
        """One hold time has zero variance but is not evidence."""
        samples = [
            KeystrokeSample(key="a", timestamp=0, hold_time=80),
            KeystrokeSample(key="b", timestamp=250),
            KeystrokeSample(key="c", timestamp=700),
        ]
        result = KeyboardAnalyzer(config).analyze(samples)
        assert not result.fired("low_hold_time_variance")
        assert result.metrics["hold_time_count"] == 1


# =============================================================================
# Scroll
# =============================================================================

class TestScrollAnalyzer:
    """Test scroll rules over absolute offsets."""

    def test_scripted_scrolling(self, config, bot_scrolls):
        result = ScrollAnalyzer(config).analyze(bot_scrolls)

        for name in ("low_delta_variance", "low_interval_variance",
                     "low_unique_delta_ratio", "scripted_delay_pattern"):
            assert result.fired(name), f"{name} should fire on scripted scrolling"
        assert result.score == pytest.approx(0.65)

    def test_reading_pauses(self, config, human_scrolls):
        result = ScrollAnalyzer(config).analyze(human_scrolls)

        assert result.fired("high_interval_variance")
        assert result.scoring_breakdown["high_interval_variance"].negative is True
        assert result.metrics["interval_variance"] > 1_000_000
        assert not result.fired("high_delta_variance")
        assert result.score == 0.0

    def test_horizontal_deltas_count(self, config):
        """Deltas combine both axes, so horizontal-only scrolling is measured too."""
        scrolls = [ScrollEvent(scroll_x=100 * i, scroll_y=0, timestamp=37 * i) for i in range(8)]
        result = ScrollAnalyzer(config).analyze(scrolls)
        assert result.fired("low_delta_variance")
        assert result.metrics["unique_delta_ratio"] == pytest.approx(1 / 7)

    def test_burst_rate(self, config):
        scrolls = [ScrollEvent(scroll_y=40 * i * i, timestamp=1000) for i in range(5)]
        result = ScrollAnalyzer(config).analyze(scrolls)
        assert result.fired("high_events_per_second")

    def test_erratic_deltas(self, config):
        offsets = [0, 10, 400, 420, 1100, 1105, 1900]
        scrolls = [ScrollEvent(scroll_y=y, timestamp=300 * i + 7 * i * i) for i, y in enumerate(offsets)]
        result = ScrollAnalyzer(config).analyze(scrolls)
        assert result.fired("high_delta_variance")

    def test_two_scrolls_are_not_evidence(self, config):
        """One delta and one interval have zero variance but prove nothing."""
        scrolls = [ScrollEvent(scroll_y=0, timestamp=0), ScrollEvent(scroll_y=137, timestamp=2345)]
        result = ScrollAnalyzer(config).analyze(scrolls)

        assert result.available is True
        assert result.metrics["delta_variance"] == 0.0
        assert result.score == 0.0
        assert not any(r.triggered for r in result.scoring_breakdown.values())

    def test_two_scrolls_same_timestamp_not_a_burst(self, config):
        scrolls = [ScrollEvent(scroll_y=0, timestamp=500), ScrollEvent(scroll_y=90, timestamp=500)]
        result = ScrollAnalyzer(config).analyze(scrolls)
        assert result.metrics["events_per_second"] > 100
        assert not result.fired("high_events_per_second")


# =============================================================================
# Touch
# =============================================================================

class TestTouchAnalyzer:
    """Test touch force, radius and rate rules."""

    def test_scripted_touches(self, config, bot_touches):
        result = TouchAnalyzer(config).analyze(bot_touches)
        assert result.fired("low_force_variance")
        assert result.fired("low_radius_variance")
        assert result.fired("scripted_delay_pattern")

    def test_zero_force_is_not_a_reading(self, config, bot_touches):
        no_force = [t.model_copy(update={"force": 0.0}) for t in bot_touches]
        result = TouchAnalyzer(config).analyze(no_force)
        assert result.metrics["force_readings"] == 0
        assert not result.fired("low_force_variance")

    def test_erratic_force(self, config):
        touches = [
            TouchEvent(x=10, y=10, force=0.05 if i % 2 else 0.95, timestamp=45 * i + 3 * i * i)
            for i in range(8)
        ]
        result = TouchAnalyzer(config).analyze(touches)
        assert result.fired("high_force_variance")

    def test_contact_radius(self):
        assert _contact_radius(TouchEvent(x=0, y=0, radius_x=4, radius_y=6, timestamp=0)) == pytest.approx(5)
        assert _contact_radius(TouchEvent(x=0, y=0, radius_x=4, timestamp=0)) == pytest.approx(4)
        assert _contact_radius(TouchEvent(x=0, y=0, radius_x=0, radius_y=0, timestamp=0)) is None
        assert _contact_radius(TouchEvent(x=0, y=0, timestamp=0)) is None

    def test_untrusted_touches(self, config, bot_touches):
        untrusted = [t.model_copy(update={"trusted": False}) for t in bot_touches]
        assert TouchAnalyzer(config).analyze(untrusted).fired("high_untrusted_ratio")

    def test_two_touches_are_not_evidence(self, config):
        """Two force readings sharing a timestamp fire neither variance nor rate rules."""
        touches = [
            TouchEvent(x=10, y=10, force=0.42, radius_x=9, timestamp=1000),
            TouchEvent(x=12, y=11, force=0.37, radius_x=11, timestamp=1000),
        ]
        result = TouchAnalyzer(config).analyze(touches)

        assert result.metrics["force_readings"] == 2
        assert result.metrics["events_per_second"] > 50
        assert result.score == 0.0
        assert not any(r.triggered for r in result.scoring_breakdown.values())

    def test_single_force_reading_not_judged(self, config):
        touches = [
            TouchEvent(x=0, y=0, force=0.5, timestamp=0),
            TouchEvent(x=1, y=1, timestamp=130),
            TouchEvent(x=2, y=3, timestamp=410),
        ]
        result = TouchAnalyzer(config).analyze(touches)
        assert result.metrics["force_readings"] == 1
        assert not result.fired("low_force_variance")


# =============================================================================
# DOM Events
# =============================================================================

class TestEventAnalyzer:
    """Test generic DOM event rules."""

    def test_fixed_cadence_untrusted_clicks(self, config):
        events = [DomEvent(event_type="click", timestamp=100 * i, trusted=False) for i in range(10)]
        result = EventAnalyzer(config).analyze(events)

        assert result.fired("low_interval_variance")
        assert result.fired("high_untrusted_ratio")
        assert result.score == pytest.approx(1.0)
        assert result.metrics["event_types"] == ["click"]

    def test_irregular_trusted_events(self, config):
        stamps = [0, 420, 1900, 2150, 4800, 5100, 9000]
        events = [DomEvent(event_type="focus" if i % 2 else "click", timestamp=t) for i, t in enumerate(stamps)]
        result = EventAnalyzer(config).analyze(events)
        assert result.score == 0.0
        assert result.confidence == pytest.approx(7 / 10)

    def test_two_events_are_not_evidence(self, config):
        events = [DomEvent(event_type="click", timestamp=0), DomEvent(event_type="focus", timestamp=900)]
        result = EventAnalyzer(config).analyze(events)
        assert result.metrics["interval_variance"] == 0.0
        assert not result.fired("low_interval_variance")
        assert result.score == 0.0
