"""
Behavior Monitor Test Suite - Shared Pytest Fixtures

This conftest.py provides fixtures for all test categories including:
- A controllable clock for duration and debounce tests
- Synthetic scripted and human-like sample streams per channel
- Calibration, analyzer and monitor instances

Usage:
    pytest tests/ -v -s
"""

import math
import os
from typing import Callable, List

import numpy as np
import pytest

from core.config import CalibrationConfig, build_config
from core.monitor import BehaviorMonitor
from core.options import MonitorOptions
from core.schemas.inputs import (
    KeystrokeSample,
    MouseEvent,
    ScrollEvent,
    TouchEvent,
)


# =============================================================================
# Path Helpers
# =============================================================================

def get_project_root() -> str:
    """Get the absolute path to the project root."""
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def get_tests_dir() -> str:
    """Get the absolute path to the tests directory."""
    return os.path.dirname(os.path.abspath(__file__))


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Calibration & Monitor Fixtures
# =============================================================================

@pytest.fixture
def config() -> CalibrationConfig:
    """Default calibration."""
    return build_config()


@pytest.fixture
def monitor(fake_clock) -> BehaviorMonitor:
    """Monitor on a fake clock, with no store and the session timeout disabled."""
    return BehaviorMonitor(MonitorOptions(clock=fake_clock, timeout_ms=0))


# =============================================================================
# Mouse Streams
# =============================================================================

@pytest.fixture
def bot_mouse_path() -> List[MouseEvent]:
    """Diagonal straight line at a fixed 10ms cadence with no pointer metadata."""
    return [MouseEvent(x=10 * i, y=10 * i, timestamp=10 * i) for i in range(30)]


@pytest.fixture
def human_mouse_path() -> List[MouseEvent]:
    """Wandering path with irregular timing and varying pointer pressure."""
    rng = np.random.default_rng(7)
    events = []
    x, y, t = 400.0, 300.0, 0.0
    for _ in range(60):
        heading = rng.uniform(-math.pi, math.pi)
        step = rng.uniform(1.0, 30.0)
        x += step * math.cos(heading)
        y += step * math.sin(heading)
        t += rng.uniform(5.0, 60.0)
        events.append(MouseEvent(
            x=x, y=y, timestamp=t,
            pressure=float(rng.uniform(0.3, 0.7)),
            pointer_type="mouse",
            width=1.0, height=1.0,
        ))
    return events


@pytest.fixture
def circle_path() -> Callable[..., List[MouseEvent]]:
    """Factory for a constant-curvature arc, optionally with pointer metadata."""
    def _circle(n: int = 30, **extra) -> List[MouseEvent]:
        return [
            MouseEvent(
                x=500 + 100 * math.cos(0.1 * i),
                y=500 + 100 * math.sin(0.1 * i),
                timestamp=10 * i,
                **extra,
            )
            for i in range(n)
        ]
    return _circle


# =============================================================================
# Keyboard Streams
# =============================================================================

@pytest.fixture
def bot_keystrokes() -> List[KeystrokeSample]:
    """Keystrokes every 100ms, each held exactly 50ms."""
    return [
        KeystrokeSample(key=chr(ord("a") + i % 26), timestamp=100 * i + 50, hold_time=50.0)
        for i in range(20)
    ]


@pytest.fixture
def human_keystrokes() -> List[KeystrokeSample]:
    """Irregular typing rhythm with varied hold times."""
    gaps = [120, 340, 90, 260, 180, 410, 150, 230, 95, 300, 175]
    holds = [80, 110, 95, 140, 70, 125, 88, 102, 133, 76, 118, 91]
    samples = []
    t = 1000.0
    for i, hold in enumerate(holds):
        if i > 0:
            t += gaps[i - 1]
        samples.append(KeystrokeSample(key="k", timestamp=t, hold_time=float(hold)))
    return samples


# =============================================================================
# Scroll / Touch Streams
# =============================================================================

@pytest.fixture
def bot_scrolls() -> List[ScrollEvent]:
    """Fixed 100px steps every 50ms."""
    return [ScrollEvent(scroll_y=100 * i, timestamp=50 * i) for i in range(20)]


@pytest.fixture
def human_scrolls() -> List[ScrollEvent]:
    """Varied scroll steps with long reading pauses between them."""
    deltas = [120, 80, 150, 60, 110, 90, 140, 70]
    gaps = [130, 470, 2100, 90, 3400, 260, 1800, 700]
    events = [ScrollEvent(scroll_y=0, timestamp=0)]
    y, t = 0.0, 0.0
    for delta, gap in zip(deltas, gaps):
        y += delta
        t += gap
        events.append(ScrollEvent(scroll_y=y, timestamp=t))
    return events


@pytest.fixture
def bot_touches() -> List[TouchEvent]:
    """Constant force and contact radius at a 20ms cadence."""
    return [
        TouchEvent(x=100 + i, y=200, force=0.5, radius_x=10, radius_y=10, timestamp=20 * i)
        for i in range(12)
    ]
