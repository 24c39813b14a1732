"""
Behavior Monitor Input Schemas

This module defines Pydantic V2 models for:
- Per-channel telemetry samples delivered by the Event Collector
- Batched stream payloads accepted by the HTTP ingestion surface
- The persisted session snapshot layout

Every sample carries a monotonic millisecond timestamp and a trust flag.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class KeyEventType(str, Enum):
    """Keyboard event type for hold/inter-key time calculation."""
    DOWN = "DOWN"
    UP = "UP"


class MouseEventType(str, Enum):
    """Mouse event type for movement/click tracking."""
    MOVE = "MOVE"
    CLICK = "CLICK"


class TouchPhase(str, Enum):
    """Touch contact phase."""
    START = "START"
    MOVE = "MOVE"


# =============================================================================
# Channel Samples
# =============================================================================

class MouseEvent(BaseModel):
    """Single pointer event with optional pointer metadata."""
    x: float = Field(..., description="X coordinate on screen")
    y: float = Field(..., description="Y coordinate on screen")
    event_type: MouseEventType = Field(MouseEventType.MOVE, description="MOVE or CLICK event")
    timestamp: float = Field(..., description="Event timestamp in milliseconds")
    trusted: bool = Field(True, description="Whether the source marked the event as user-generated")
    pressure: Optional[float] = Field(None, description="Pointer pressure in [0, 1]")
    pointer_type: Optional[str] = Field(None, description="Pointer kind (mouse, pen, touch)")
    width: Optional[float] = Field(None, description="Contact geometry width")
    height: Optional[float] = Field(None, description="Contact geometry height")
    tilt_x: Optional[float] = Field(None, description="Pen tilt along X")
    tilt_y: Optional[float] = Field(None, description="Pen tilt along Y")


class KeyboardEvent(BaseModel):
    """Single raw keyboard event captured by the collector."""
    key: str = Field(..., description="Key code or character pressed")
    event_type: KeyEventType = Field(..., description="DOWN or UP event")
    timestamp: float = Field(..., description="Event timestamp in milliseconds")
    trusted: bool = Field(True, description="Whether the source marked the event as user-generated")


class KeystrokeSample(BaseModel):
    """Completed keystroke stored in the keyboard buffer (recorded on key-up)."""
    key: str
    timestamp: float
    hold_time: Optional[float] = Field(None, description="Key-up minus matching key-down (ms)")
    trusted: bool = True


class ScrollEvent(BaseModel):
    """Absolute scroll offsets at a point in time."""
    scroll_x: float = Field(0.0, description="Horizontal scroll offset")
    scroll_y: float = Field(..., description="Vertical scroll offset")
    timestamp: float = Field(..., description="Event timestamp in milliseconds")
    trusted: bool = True


class TouchEvent(BaseModel):
    """Single touch contact sample."""
    x: float
    y: float
    force: Optional[float] = Field(None, description="Contact force in [0, 1]")
    radius_x: Optional[float] = Field(None, description="Contact ellipse radius X")
    radius_y: Optional[float] = Field(None, description="Contact ellipse radius Y")
    phase: TouchPhase = TouchPhase.MOVE
    timestamp: float
    trusted: bool = True


class DomEvent(BaseModel):
    """Generic DOM-like event (click, focus, ...)."""
    event_type: str = Field(..., description="Event name, e.g. click or focus")
    timestamp: float
    trusted: bool = True


class MotionSample(BaseModel):
    """Ambient acceleration reading from device sensors."""
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None
    timestamp: float
    trusted: bool = True


class RenderTiming(BaseModel):
    """Result of the one-shot rendering latency probe."""
    duration_ms: float = Field(..., ge=0, description="Time to complete the trivial render job")
    timestamp: float


# =============================================================================
# Stream Payloads
# =============================================================================

class MouseStreamPayload(BaseModel):
    events: List[MouseEvent] = Field(..., description="Batch of pointer events")


class KeyboardStreamPayload(BaseModel):
    events: List[KeyboardEvent] = Field(..., description="Batch of keyboard events")


class ScrollStreamPayload(BaseModel):
    events: List[ScrollEvent] = Field(..., description="Batch of scroll events")


class TouchStreamPayload(BaseModel):
    events: List[TouchEvent] = Field(..., description="Batch of touch events")


class DomEventStreamPayload(BaseModel):
    events: List[DomEvent] = Field(..., description="Batch of generic DOM events")


class MotionStreamPayload(BaseModel):
    events: List[MotionSample] = Field(..., description="Batch of ambient motion samples")


# =============================================================================
# Persisted Snapshot
# =============================================================================

class SessionSnapshot(BaseModel):
    """
    Persisted layout of a session's sample buffers.
    Stored as a single JSON document and overwritten on every save.
    """
    start_time: Optional[float] = None
    mouse: List[MouseEvent] = Field(default_factory=list)
    keyboard: List[KeystrokeSample] = Field(default_factory=list)
    scroll: List[ScrollEvent] = Field(default_factory=list)
    touch: List[TouchEvent] = Field(default_factory=list)
    events: List[DomEvent] = Field(default_factory=list)
    sensors: List[MotionSample] = Field(default_factory=list)
    render_timing: Optional[RenderTiming] = None
