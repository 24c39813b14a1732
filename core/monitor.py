"""
Behavior Monitor

Engine facade: typed ingestion per channel, readiness, on-demand analysis
and fusion, calibration export and optional snapshot persistence.

Flow:
    record_* -> SampleStore -> readiness check
    get_results() -> channel analyzers -> FusionEngine -> OverallResult

Everything is synchronous except wait_for_ready(). The session timeout and
the snapshot debounce use the running asyncio loop when start() is called
inside one; otherwise the caller drives them (check_readiness with
force_timeout=True, and stop() flushes the snapshot).

Samples arriving while the monitor is not running are ignored. Samples
persist across stop/start cycles; clear_stored_state() starts afresh.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from core.clock import running_loop
from core.config import CalibrationConfig, HumanBaselines, build_config
from core.models.fusion import FusionEngine
from core.options import MonitorOptions
from core.processors import (
    EventAnalyzer,
    KeyboardAnalyzer,
    MouseAnalyzer,
    RenderTimingAnalyzer,
    ScrollAnalyzer,
    SensorAnalyzer,
    TouchAnalyzer,
)
from core.readiness import ReadinessState, ReadinessTracker, ReadyWaiter
from core.sample_store import SampleStore
from core.schemas.inputs import (
    DomEvent,
    KeyboardEvent,
    KeyEventType,
    MotionSample,
    MouseEvent,
    MouseEventType,
    RenderTiming,
    ScrollEvent,
    TouchEvent,
    TouchPhase,
)
from core.schemas.outputs import (
    CalibrationReport,
    Channel,
    ChannelResult,
    MonitorStatus,
    OverallResult,
    ResultMetadata,
)
from persistence.snapshot import SnapshotPersister


logger = logging.getLogger(__name__)


def calibration_notes(config: CalibrationConfig) -> List[str]:
    """Tuning guidance against false positives, quoting the active thresholds."""
    mouse = config.mouse_thresholds
    scroll = config.scroll_thresholds
    return [
        "Collect human sessions from real users on the target site before tightening thresholds",
        f"If mouse low_velocity_variance fires on humans, raise it from {mouse.low_velocity_variance} "
        f"towards {mouse.low_velocity_variance * 10:g}",
        f"If scroll high_events_per_second fires on mobile, raise it from {scroll.high_events_per_second:g} "
        f"towards {scroll.high_events_per_second * 1.5:g}",
        "Touch thresholds may need adjusting per device type",
        f"Channels below min_confidence_gate ({config.safeguards.min_confidence_gate}) are ignored; "
        "raise it to discount low-sample channels further",
        "Use scoring_breakdowns to find the rules behind a false positive",
        "Track which channels contribute most to human misclassification",
    ]


class BehaviorMonitor:
    """
    Behavioral telemetry scoring engine for one session.

    Args:
        options: Runtime options (channels, timeout, callbacks, store).
        calibration: Calibration overrides (nested mapping) or a built
            CalibrationConfig. Validated once, immutable afterwards.

    Raises:
        ConfigurationError: Invalid calibration overrides.
    """

    def __init__(
        self,
        options: Optional[MonitorOptions] = None,
        calibration: Optional[Union[Mapping[str, Any], CalibrationConfig]] = None,
    ) -> None:
        self.options = options or MonitorOptions()
        self.config = build_config(calibration)
        self._clock = self.options.clock

        self._analyzers = {
            Channel.MOUSE: MouseAnalyzer(self.config),
            Channel.KEYBOARD: KeyboardAnalyzer(self.config),
            Channel.SCROLL: ScrollAnalyzer(self.config),
            Channel.TOUCH: TouchAnalyzer(self.config),
            Channel.EVENTS: EventAnalyzer(self.config),
            Channel.SENSORS: SensorAnalyzer(self.config),
        }
        self._render_analyzer = RenderTimingAnalyzer(self.config)
        self._fusion = FusionEngine(self.config)
        self._readiness = ReadinessTracker(
            self.config.min_samples.model_dump(),
            self.options.enabled_input_channels(),
            on_ready=self._notify_ready,
        )

        self._samples = SampleStore()
        self._is_running = False
        self._stopped_at: Optional[float] = None
        self._restored = False
        self._timeout_handle: Optional[asyncio.TimerHandle] = None

        self._persister: Optional[SnapshotPersister] = None
        if self.options.store is not None:
            self._persister = SnapshotPersister(
                self.options.store,
                key=self.options.persist_key,
                debounce_ms=self.options.debounce_ms,
                clock=self._clock,
            )
            snapshot = self._persister.load()
            if snapshot is not None:
                self._samples = SampleStore.from_snapshot(snapshot)
                self._restored = True

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def state(self) -> ReadinessState:
        return self._readiness.state

    @property
    def samples(self) -> SampleStore:
        """Live sample buffers; callers must not mutate them."""
        return self._samples

    @property
    def duration_ms(self) -> float:
        """Session duration, frozen at stop()."""
        start = self._samples.start_time
        if start is None:
            return 0.0
        end = self._stopped_at if (not self._is_running and self._stopped_at is not None) else self._clock()
        return max(0.0, end - start)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Begin (or resume) collecting. Idempotent while running."""
        if self._is_running:
            return

        # A restored session keeps its persisted start time on the first start
        if not (self._restored and self._samples.start_time is not None):
            self._samples.start_time = self._clock()
        self._restored = False

        self._is_running = True
        self._stopped_at = None
        self._readiness.start()
        logger.info(f"Behavior monitor started (channels={self.options.enabled_input_channels()})")

        self._probe_render_timing()
        self._schedule_timeout()
        self.check_readiness()

    def stop(self) -> Optional[OverallResult]:
        """Stop collecting and return final results; None if not running."""
        if not self._is_running:
            return None

        self._is_running = False
        self._stopped_at = self._clock()
        self._cancel_timeout()
        self._readiness.stop()
        if self._persister is not None:
            self._persister.flush()

        result = self.get_results()
        logger.info(
            f"Behavior monitor stopped after {self.duration_ms:.0f}ms: "
            f"score={result.overall_score:.3f} verdict={result.classification.value}"
        )
        return result

    def clear_stored_state(self) -> None:
        """Discard collected samples and the persisted snapshot."""
        self._samples.clear()
        self._restored = False
        if self._is_running:
            self._samples.start_time = self._clock()
        if self._persister is not None:
            self._persister.clear()
        logger.info("Behavior monitor state cleared")

    # =========================================================================
    # Ingestion
    # =========================================================================

    def record_mouse_move(self, event: MouseEvent) -> None:
        if not self._accepts(Channel.MOUSE):
            return
        self._samples.mouse.append(event)
        self._after_sample(Channel.MOUSE, event)

    def record_mouse_event(self, event: MouseEvent) -> None:
        """Dispatch a pointer event: moves feed the mouse channel, clicks the events channel."""
        if event.event_type == MouseEventType.CLICK:
            self.record_dom_event(DomEvent(event_type="click", timestamp=event.timestamp, trusted=event.trusted))
        else:
            self.record_mouse_move(event)

    def record_key_down(self, key: str, timestamp: Optional[float] = None, trusted: bool = True) -> None:
        if not self._accepts(Channel.KEYBOARD):
            return
        self._samples.key_down(key, self._timestamp(timestamp), trusted)

    def record_key_up(self, key: str, timestamp: Optional[float] = None, trusted: bool = True) -> None:
        if not self._accepts(Channel.KEYBOARD):
            return
        sample = self._samples.key_up(key, self._timestamp(timestamp), trusted)
        self._after_sample(Channel.KEYBOARD, sample)

    def record_keyboard_event(self, event: KeyboardEvent) -> None:
        if event.event_type == KeyEventType.DOWN:
            self.record_key_down(event.key, event.timestamp, event.trusted)
        else:
            self.record_key_up(event.key, event.timestamp, event.trusted)

    def record_scroll(self, event: ScrollEvent) -> None:
        if not self._accepts(Channel.SCROLL):
            return
        self._samples.scroll.append(event)
        self._after_sample(Channel.SCROLL, event)

    def record_touch_start(self, event: TouchEvent) -> None:
        self._record_touch(event.model_copy(update={"phase": TouchPhase.START}))

    def record_touch_move(self, event: TouchEvent) -> None:
        self._record_touch(event.model_copy(update={"phase": TouchPhase.MOVE}))

    def record_touch_event(self, event: TouchEvent) -> None:
        self._record_touch(event)

    def record_dom_event(self, event: DomEvent) -> None:
        if not self._accepts(Channel.EVENTS):
            return
        self._samples.events.append(event)
        self._after_sample(Channel.EVENTS, event)

    def record_motion(self, sample: MotionSample) -> None:
        if not self._accepts(Channel.SENSORS):
            return
        self._samples.sensors.append(sample)
        self._after_sample(Channel.SENSORS, sample)

    def record_render_timing(self, timing: RenderTiming) -> None:
        if not self._accepts(Channel.RENDER_TIMING):
            return
        self._samples.render_timing = timing
        self._after_sample(Channel.RENDER_TIMING, timing)

    # =========================================================================
    # Readiness
    # =========================================================================

    def check_readiness(self, force_timeout: bool = False) -> bool:
        """
        Re-evaluate readiness; force_timeout applies the session timeout.

        Returns:
            True when the session is ready.
        """
        if not self._is_running:
            return False
        state = self._readiness.check(self._samples.sample_counts(), force_timeout=force_timeout)
        if state == ReadinessState.READY:
            self._cancel_timeout()
            return True
        return False

    def is_ready(self) -> bool:
        return self._readiness.is_ready(self._samples.sample_counts())

    async def wait_for_ready(self, timeout_ms: Optional[float] = None) -> bool:
        """
        Wait until enough samples are collected.

        Resolves False immediately when not running, on timeout (defaults
        to the session timeout; 0 waits indefinitely), on session timeout
        and on stop().
        """
        if not self._is_running:
            return False
        if self.is_ready():
            return True

        timeout = self.options.timeout_ms if timeout_ms is None else timeout_ms
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def _complete(value: bool) -> None:
            if not future.done():
                future.set_result(value)

        waiter = ReadyWaiter()
        waiter.add_done_callback(_complete)
        self._readiness.add_waiter(waiter)

        try:
            if timeout and timeout > 0:
                return await asyncio.wait_for(future, timeout / 1000.0)
            return await future
        except asyncio.TimeoutError:
            return False
        finally:
            self._readiness.discard_waiter(waiter)
            waiter.resolve(False)

    # =========================================================================
    # Results
    # =========================================================================

    def get_status(self) -> MonitorStatus:
        counts = self._samples.sample_counts()
        return MonitorStatus(
            is_running=self._is_running,
            elapsed_ms=self.duration_ms,
            sample_counts=counts,
            ready=self._readiness.is_ready(counts),
            state=self._readiness.state.value,
        )

    def get_results(self) -> OverallResult:
        """Analyze current buffers and fuse them. Recomputed on every call."""
        per_channel: Dict[str, ChannelResult] = {}
        for channel, analyzer in self._analyzers.items():
            if self.options.is_enabled(channel):
                per_channel[channel.value] = analyzer.analyze(getattr(self._samples, channel.value))
            else:
                per_channel[channel.value] = ChannelResult.unavailable()

        if self.options.is_enabled(Channel.RENDER_TIMING):
            per_channel[Channel.RENDER_TIMING.value] = self._render_analyzer.analyze(self._samples.render_timing)
        else:
            per_channel[Channel.RENDER_TIMING.value] = ChannelResult.unavailable()

        duration = self.duration_ms
        outcome = self._fusion.fuse(per_channel, duration)

        return OverallResult(
            per_channel=per_channel,
            overall_score=outcome.score,
            confidence=outcome.confidence,
            classification=outcome.classification,
            suspicious_channels=outcome.suspicious_channels,
            applied_safeguards=outcome.applied_safeguards,
            metadata=ResultMetadata(sample_counts=self._samples.sample_counts(), duration_ms=duration),
        )

    def get_calibration_data(self) -> CalibrationReport:
        """Results plus per-rule breakdowns and human baseline ranges for tuning."""
        result = self.get_results()
        baselines = self.config.human_baselines
        return CalibrationReport(
            version=self.config.version,
            generated_at=datetime.now(timezone.utc).isoformat(),
            session_duration_ms=result.metadata.duration_ms,
            result=result,
            verdict=result.classification,
            scoring_breakdowns={name: r.scoring_breakdown for name, r in result.per_channel.items()},
            sample_counts=result.metadata.sample_counts,
            human_baselines={name: getattr(baselines, name) for name in HumanBaselines.model_fields},
            calibration_notes=calibration_notes(self.config),
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _accepts(self, channel: Channel) -> bool:
        return self._is_running and self.options.is_enabled(channel)

    def _timestamp(self, timestamp: Optional[float]) -> float:
        return self._clock() if timestamp is None else timestamp

    def _record_touch(self, event: TouchEvent) -> None:
        if not self._accepts(Channel.TOUCH):
            return
        self._samples.touch.append(event)
        self._after_sample(Channel.TOUCH, event)

    def _after_sample(self, channel: Channel, sample: Any) -> None:
        if self.options.on_sample is not None:
            try:
                self.options.on_sample(channel.value, sample)
            except Exception as e:
                logger.debug(f"on_sample callback raised: {e}")

        if self._persister is not None:
            self._persister.schedule(self._samples.to_snapshot)

        self.check_readiness()

    def _notify_ready(self) -> None:
        if self.options.on_ready is not None:
            self.options.on_ready(self.get_results())

    def _probe_render_timing(self) -> None:
        probe = self.options.render_probe
        if probe is None or not self.options.is_enabled(Channel.RENDER_TIMING):
            return
        try:
            timing = probe()
        except Exception as e:
            logger.warning(f"Rendering timing probe failed: {e}")
            return
        if timing is not None:
            self.record_render_timing(timing)

    def _schedule_timeout(self) -> None:
        if self.options.timeout_ms <= 0:
            return
        loop = running_loop()
        if loop is None:
            return
        self._timeout_handle = loop.call_later(self.options.timeout_ms / 1000.0, self._on_session_timeout)

    def _on_session_timeout(self) -> None:
        self._timeout_handle = None
        self.check_readiness(force_timeout=True)

    def _cancel_timeout(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
