"""
Readiness State Machine

Tracks whether a session has collected enough samples to be analyzed and
resolves readiness waiters.

States:
    NOT_STARTED -> COLLECTING -> READY
                   COLLECTING -> TIMED_OUT
    any -> STOPPED (stop), STOPPED -> COLLECTING (start)

A session is ready when at least min(2, enabled) enabled input channels
have each reached their minimum sample count. A session with no enabled
input channel never becomes ready.

The waiter is a plain single-fire completion with callbacks so it does not
depend on any async runtime; the monitor bridges it to asyncio.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable, List, Mapping, Optional


logger = logging.getLogger(__name__)


# Channels that must individually meet their minimum before firing
CORROBORATING_CHANNELS = 2


class ReadinessState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    COLLECTING = "COLLECTING"
    READY = "READY"
    TIMED_OUT = "TIMED_OUT"
    STOPPED = "STOPPED"


class ReadyWaiter:
    """One-shot boolean completion. Later resolutions are ignored."""

    def __init__(self) -> None:
        self._result: Optional[bool] = None
        self._callbacks: List[Callable[[bool], None]] = []

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> Optional[bool]:
        return self._result

    def add_done_callback(self, callback: Callable[[bool], None]) -> None:
        if self._result is not None:
            self._invoke(callback, self._result)
        else:
            self._callbacks.append(callback)

    def resolve(self, value: bool) -> bool:
        """Resolve once; returns False if the waiter was already resolved."""
        if self._result is not None:
            return False
        self._result = bool(value)
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._invoke(callback, self._result)
        return True

    @staticmethod
    def _invoke(callback: Callable[[bool], None], value: bool) -> None:
        # A failing resolver must not stop the remaining waiters from resolving
        try:
            callback(value)
        except Exception as e:
            logger.debug(f"Ready waiter callback raised: {e}")


class ReadinessTracker:
    """
    Readiness bookkeeping for one monitor instance.

    Args:
        min_samples: Input channel -> minimum sample count.
        enabled_channels: Enabled input channels (others are ignored).
        on_ready: Called exactly once per session, on first readiness or on
            forced timeout, whichever comes first.
    """

    def __init__(
        self,
        min_samples: Mapping[str, int],
        enabled_channels: Iterable[str],
        on_ready: Optional[Callable[[], None]] = None,
    ) -> None:
        self._min_samples = dict(min_samples)
        self._enabled = [c for c in enabled_channels if c in self._min_samples]
        self._on_ready = on_ready
        self._state = ReadinessState.NOT_STARTED
        self._ready_fired = False
        self._waiters: List[ReadyWaiter] = []

    @property
    def state(self) -> ReadinessState:
        return self._state

    @property
    def ready_fired(self) -> bool:
        return self._ready_fired

    @property
    def pending(self) -> int:
        return len(self._waiters)

    def is_ready(self, counts: Mapping[str, int]) -> bool:
        if not self._enabled:
            return False
        required = min(CORROBORATING_CHANNELS, len(self._enabled))
        satisfied = sum(1 for c in self._enabled if counts.get(c, 0) >= self._min_samples[c])
        return satisfied >= required

    # =========================================================================
    # Transitions
    # =========================================================================

    def start(self) -> None:
        self._state = ReadinessState.COLLECTING
        self._ready_fired = False

    def stop(self) -> None:
        self._state = ReadinessState.STOPPED
        self._drain(False)

    def check(self, counts: Mapping[str, int], force_timeout: bool = False) -> ReadinessState:
        """
        Re-evaluate readiness after a sample or a timeout.

        While collecting (or after a timeout, which new samples may still
        recover from) a satisfied predicate moves to READY and resolves
        waiters True. A forced timeout on an unsatisfied predicate moves to
        TIMED_OUT and resolves waiters False.
        """
        if self._state not in (ReadinessState.COLLECTING, ReadinessState.TIMED_OUT, ReadinessState.READY):
            return self._state

        if self.is_ready(counts):
            if self._state != ReadinessState.READY:
                logger.info(f"Session ready with sample counts {dict(counts)}")
            self._state = ReadinessState.READY
            self._fire_once()
            self._drain(True)
        elif force_timeout and self._state == ReadinessState.COLLECTING:
            logger.info(f"Session timed out before ready with sample counts {dict(counts)}")
            self._state = ReadinessState.TIMED_OUT
            self._drain(False)
            self._fire_once()
        return self._state

    def add_waiter(self, waiter: ReadyWaiter) -> None:
        self._waiters.append(waiter)

    def discard_waiter(self, waiter: ReadyWaiter) -> None:
        if waiter in self._waiters:
            self._waiters.remove(waiter)

    # =========================================================================
    # Internals
    # =========================================================================

    def _fire_once(self) -> None:
        if self._ready_fired:
            return
        self._ready_fired = True
        if self._on_ready is None:
            return
        try:
            self._on_ready()
        except Exception as e:
            logger.debug(f"on_ready callback raised: {e}")

    def _drain(self, value: bool) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            waiter.resolve(value)
