"""
Behavior Monitor Runtime Options

Per-instance runtime wiring: which channels are collected, the session
timeout, caller callbacks, the rendering probe, the clock and optional
snapshot persistence. Calibration lives separately in core.config.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any, Callable, List, Optional

from core.clock import epoch_ms
from core.config import ConfigurationError
from core.schemas.inputs import RenderTiming
from core.schemas.outputs import Channel, INPUT_CHANNELS
from persistence.snapshot import DEFAULT_DEBOUNCE_MS, DEFAULT_SNAPSHOT_KEY
from persistence.stores import KeyValueStore


DEFAULT_TIMEOUT_MS = 30000.0


@dataclass
class MonitorOptions:
    """Runtime options for a BehaviorMonitor."""

    # Channel flags
    mouse: bool = True
    keyboard: bool = True
    scroll: bool = True
    touch: bool = True
    events: bool = True
    sensors: bool = True
    render_timing: bool = True

    timeout_ms: float = DEFAULT_TIMEOUT_MS
    """Session readiness timeout; 0 disables it."""

    on_ready: Optional[Callable[[Any], None]] = None
    """Called once per session with the OverallResult, on ready or on timeout."""

    on_sample: Optional[Callable[[str, Any], None]] = None
    """Called with (channel, sample) for every accepted sample."""

    render_probe: Optional[Callable[[], Optional[RenderTiming]]] = None
    clock: Callable[[], float] = field(default=epoch_ms)

    store: Optional[KeyValueStore] = None
    persist_key: str = DEFAULT_SNAPSHOT_KEY
    debounce_ms: float = DEFAULT_DEBOUNCE_MS

    def __post_init__(self) -> None:
        if self.timeout_ms < 0:
            raise ConfigurationError(f"timeout_ms must be >= 0, got {self.timeout_ms}")
        if self.debounce_ms < 0:
            raise ConfigurationError(f"debounce_ms must be >= 0, got {self.debounce_ms}")

    def is_enabled(self, channel: Channel) -> bool:
        return bool(getattr(self, channel.value))

    def enabled_input_channels(self) -> List[str]:
        return [c.value for c in INPUT_CHANNELS if self.is_enabled(c)]

    @classmethod
    def from_env(cls, **overrides: Any) -> MonitorOptions:
        """
        Build options from environment variables, then apply overrides.

        Environment:
            BEHAVIOR_TIMEOUT_MS          Session timeout (ms)
            BEHAVIOR_DISABLED_CHANNELS   Comma-separated channel names
            BEHAVIOR_PERSIST_KEY         Snapshot key
            BEHAVIOR_DEBOUNCE_MS         Snapshot debounce window (ms)
        """
        values: dict = {}
        try:
            if os.getenv("BEHAVIOR_TIMEOUT_MS"):
                values["timeout_ms"] = float(os.environ["BEHAVIOR_TIMEOUT_MS"])
            if os.getenv("BEHAVIOR_DEBOUNCE_MS"):
                values["debounce_ms"] = float(os.environ["BEHAVIOR_DEBOUNCE_MS"])
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric monitor option in environment: {e}") from e

        if os.getenv("BEHAVIOR_PERSIST_KEY"):
            values["persist_key"] = os.environ["BEHAVIOR_PERSIST_KEY"]

        channel_names = {c.value for c in Channel}
        for name in os.getenv("BEHAVIOR_DISABLED_CHANNELS", "").split(","):
            name = name.strip()
            if not name:
                continue
            if name not in channel_names:
                raise ConfigurationError(f"Unknown channel in BEHAVIOR_DISABLED_CHANNELS: {name}")
            values[name] = False

        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigurationError(f"Unknown monitor options: {sorted(unknown)}")
        values.update(overrides)
        return cls(**values)
