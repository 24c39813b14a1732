"""
Behavior Monitor Snapshot Persister

Debounced save/restore of a session's sample buffers through a key/value
store. Persistence is best-effort: every store failure and every malformed
snapshot is logged and swallowed (fail-open), never raised to the monitor.

Debounce:
    - With a running asyncio loop, the first change schedules one flush
      debounce_ms later; further changes in the window are coalesced.
    - Without a loop, writes are throttled to one per window; the trailing
      change is written by flush() (the monitor flushes on stop).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from pydantic import ValidationError

from core.clock import monotonic_ms, running_loop
from core.schemas.inputs import SessionSnapshot
from .stores import KeyValueStore


logger = logging.getLogger(__name__)


DEFAULT_SNAPSHOT_KEY = "behavior-monitor:session"
DEFAULT_DEBOUNCE_MS = 1000.0


class SnapshotPersister:
    """Debounced snapshot writer bound to one store key."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = DEFAULT_SNAPSHOT_KEY,
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self.store = store
        self.key = key
        self.debounce_ms = debounce_ms
        self._clock = clock
        self._supplier: Optional[Callable[[], SessionSnapshot]] = None
        self._dirty = False
        self._last_save: Optional[float] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self.saves = 0

    @property
    def dirty(self) -> bool:
        return self._dirty

    # -------------------------------------------------------------------------
    # Restore
    # -------------------------------------------------------------------------

    def load(self) -> Optional[SessionSnapshot]:
        """Read the stored snapshot; missing or malformed data yields None."""
        try:
            raw = self.store.get(self.key)
        except Exception as e:
            logger.warning(f"Snapshot read failed for {self.key}: {e}")
            return None

        if not raw:
            return None

        try:
            snapshot = SessionSnapshot.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Discarding malformed snapshot under {self.key}: {e}")
            return None

        logger.info(f"Restored snapshot from {self.key}")
        return snapshot

    # -------------------------------------------------------------------------
    # Save
    # -------------------------------------------------------------------------

    def schedule(self, supplier: Callable[[], SessionSnapshot]) -> None:
        """Mark the session dirty and save it once the debounce window allows."""
        self._supplier = supplier
        self._dirty = True

        loop = running_loop()
        if loop is not None:
            if self._handle is None:
                self._handle = loop.call_later(self.debounce_ms / 1000.0, self._scheduled_flush)
            return

        now = self._clock()
        if self._last_save is None or now - self._last_save >= self.debounce_ms:
            self.flush()

    def flush(self) -> bool:
        """Write the pending change now, if any."""
        self._cancel_handle()
        if not self._dirty or self._supplier is None:
            return False
        return self.save(self._supplier())

    def save(self, snapshot: SessionSnapshot) -> bool:
        """Overwrite the stored snapshot immediately."""
        self._dirty = False
        self._last_save = self._clock()
        try:
            self.store.set(self.key, snapshot.model_dump_json())
        except Exception as e:
            logger.warning(f"Snapshot write failed for {self.key}: {e}")
            return False
        self.saves += 1
        return True

    def clear(self) -> None:
        """Drop any pending write and remove the stored snapshot."""
        self._cancel_handle()
        self._dirty = False
        try:
            self.store.remove(self.key)
        except Exception as e:
            logger.warning(f"Snapshot removal failed for {self.key}: {e}")

    def cancel(self) -> None:
        """Cancel a scheduled flush without writing."""
        self._cancel_handle()

    def _scheduled_flush(self) -> None:
        self._handle = None
        self.flush()

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
