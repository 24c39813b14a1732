"""
Time and event-loop helpers shared by the monitor and the persister.
"""

import asyncio
import time
from typing import Optional


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


def epoch_ms() -> float:
    """Wall clock in milliseconds since the epoch; survives process restarts."""
    return time.time() * 1000.0


def running_loop() -> Optional[asyncio.AbstractEventLoop]:
    """The running asyncio loop, or None when called from synchronous code."""
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
