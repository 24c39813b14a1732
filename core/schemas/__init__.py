"""
Behavior Monitor Schemas

Public exports for input and output Pydantic models.
"""

# Input schemas - channel samples
from core.schemas.inputs import (
    DomEvent,
    KeyboardEvent,
    KeyEventType,
    KeystrokeSample,
    MotionSample,
    MouseEvent,
    MouseEventType,
    RenderTiming,
    ScrollEvent,
    TouchEvent,
    TouchPhase,
)

# Input schemas - stream payloads and persisted layout
from core.schemas.inputs import (
    DomEventStreamPayload,
    KeyboardStreamPayload,
    MotionStreamPayload,
    MouseStreamPayload,
    ScrollStreamPayload,
    SessionSnapshot,
    TouchStreamPayload,
)

# Output schemas
from core.schemas.outputs import (
    INPUT_CHANNELS,
    CalibrationReport,
    Channel,
    ChannelResult,
    Classification,
    MonitorStatus,
    OverallResult,
    ResultMetadata,
    RuleResult,
)

__all__ = [
    # Input - Samples
    "KeyEventType",
    "MouseEventType",
    "TouchPhase",
    "MouseEvent",
    "KeyboardEvent",
    "KeystrokeSample",
    "ScrollEvent",
    "TouchEvent",
    "DomEvent",
    "MotionSample",
    "RenderTiming",
    # Input - Payloads
    "MouseStreamPayload",
    "KeyboardStreamPayload",
    "ScrollStreamPayload",
    "TouchStreamPayload",
    "DomEventStreamPayload",
    "MotionStreamPayload",
    "SessionSnapshot",
    # Output
    "Channel",
    "INPUT_CHANNELS",
    "Classification",
    "RuleResult",
    "ChannelResult",
    "ResultMetadata",
    "OverallResult",
    "MonitorStatus",
    "CalibrationReport",
]
