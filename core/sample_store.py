"""
Behavior Monitor Sample Store

Append-only per-channel sample buffers plus the session start time. Owned
by a single monitor instance; buffers survive stop/start cycles and are
only emptied by an explicit clear().

Usage:
    store = SampleStore()
    store.mouse.append(event)
    snapshot = store.to_snapshot()          # persisted layout
    restored = SampleStore.from_snapshot(snapshot)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict, Dict, List, Optional, Tuple

from core.schemas.inputs import (
    DomEvent,
    KeystrokeSample,
    MotionSample,
    MouseEvent,
    RenderTiming,
    ScrollEvent,
    SessionSnapshot,
    TouchEvent,
)
from core.schemas.outputs import INPUT_CHANNELS


@dataclass
class SampleStore:
    """Per-channel sample buffers for one session."""

    start_time: Optional[float] = None
    """Clock ms timestamp of the session start, None before the first start."""

    mouse: List[MouseEvent] = field(default_factory=list)
    keyboard: List[KeystrokeSample] = field(default_factory=list)
    scroll: List[ScrollEvent] = field(default_factory=list)
    touch: List[TouchEvent] = field(default_factory=list)
    events: List[DomEvent] = field(default_factory=list)
    sensors: List[MotionSample] = field(default_factory=list)
    render_timing: Optional[RenderTiming] = None

    pending_key_downs: DefaultDict[str, List[Tuple[float, bool]]] = field(default_factory=lambda: defaultdict(list))
    """Key -> (timestamp, trusted) of key-downs awaiting their key-up (FIFO)."""

    def key_down(self, key: str, timestamp: float, trusted: bool = True) -> None:
        self.pending_key_downs[key].append((timestamp, trusted))

    def key_up(self, key: str, timestamp: float, trusted: bool = True) -> KeystrokeSample:
        """
        Close the oldest pending key-down for this key into a keystroke.

        The keystroke is untrusted when either half of the press was.
        """
        hold_time = None
        if self.pending_key_downs.get(key):
            down_at, down_trusted = self.pending_key_downs[key].pop(0)
            hold_time = timestamp - down_at
            trusted = trusted and down_trusted
        sample = KeystrokeSample(key=key, timestamp=timestamp, hold_time=hold_time, trusted=trusted)
        self.keyboard.append(sample)
        return sample

    def sample_counts(self) -> Dict[str, int]:
        """Sample count per input channel."""
        return {channel.value: len(getattr(self, channel.value)) for channel in INPUT_CHANNELS}

    def clear(self) -> None:
        self.start_time = None
        self.mouse.clear()
        self.keyboard.clear()
        self.scroll.clear()
        self.touch.clear()
        self.events.clear()
        self.sensors.clear()
        self.render_timing = None
        self.pending_key_downs.clear()

    # =========================================================================
    # Snapshot conversion
    # =========================================================================

    def to_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            start_time=self.start_time,
            mouse=list(self.mouse),
            keyboard=list(self.keyboard),
            scroll=list(self.scroll),
            touch=list(self.touch),
            events=list(self.events),
            sensors=list(self.sensors),
            render_timing=self.render_timing,
        )

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> SampleStore:
        return cls(
            start_time=snapshot.start_time,
            mouse=list(snapshot.mouse),
            keyboard=list(snapshot.keyboard),
            scroll=list(snapshot.scroll),
            touch=list(snapshot.touch),
            events=list(snapshot.events),
            sensors=list(snapshot.sensors),
            render_timing=snapshot.render_timing,
        )
