"""
Behavior Monitor Output Schemas

This module defines Pydantic V2 models for the analyzer, fusion and
diagnostic outputs returned by the monitor and the HTTP surface.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.config import BaselineRange


# =============================================================================
# Enums
# =============================================================================

class Channel(str, Enum):
    """Category of interaction telemetry."""
    MOUSE = "mouse"
    KEYBOARD = "keyboard"
    SCROLL = "scroll"
    TOUCH = "touch"
    EVENTS = "events"
    SENSORS = "sensors"
    RENDER_TIMING = "render_timing"


# Channels driven by direct user interaction. Sensors and rendering timing
# are environmental and never count towards corroboration or readiness.
INPUT_CHANNELS = (
    Channel.MOUSE,
    Channel.KEYBOARD,
    Channel.SCROLL,
    Channel.TOUCH,
    Channel.EVENTS,
)


class Classification(str, Enum):
    """Four ordered verdict tiers plus a configuration error marker."""
    BOT = "BOT"
    SUSPICIOUS = "SUSPICIOUS"
    LIKELY_HUMAN = "LIKELY_HUMAN"
    VERIFIED_HUMAN = "VERIFIED_HUMAN"
    ERROR = "ERROR"


# =============================================================================
# Channel Results
# =============================================================================

class RuleResult(BaseModel):
    """Outcome of a single detection rule."""
    triggered: bool = Field(..., description="Whether the rule fired")
    weight: float = Field(..., description="Score added (or subtracted for negative evidence)")
    value: Optional[float] = Field(None, description="Measured value the rule compared")
    threshold: Optional[float] = Field(None, description="Threshold the value was compared against")
    requires_corroboration: bool = Field(False, description="Rule needs a second signal to fire")
    negative: bool = Field(False, description="Rule is human-like evidence subtracted from the score")
    details: Optional[str] = None


class ChannelResult(BaseModel):
    """Fresh analysis of one channel's buffer."""
    available: bool = False
    score: float = Field(0.0, ge=0.0, le=1.0)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    metrics: Dict[str, Any] = Field(default_factory=dict)
    scoring_breakdown: Dict[str, RuleResult] = Field(default_factory=dict)

    @classmethod
    def unavailable(cls, **metrics: Any) -> "ChannelResult":
        return cls(available=False, score=0.0, confidence=0.0, metrics=dict(metrics))

    def fired(self, rule: str) -> bool:
        """True when the named rule is present and triggered."""
        result = self.scoring_breakdown.get(rule)
        return bool(result and result.triggered)


# =============================================================================
# Overall Result
# =============================================================================

class ResultMetadata(BaseModel):
    sample_counts: Dict[str, int] = Field(default_factory=dict)
    duration_ms: float = Field(0.0, ge=0.0)


class OverallResult(BaseModel):
    """Fused score, confidence and verdict for a session."""
    per_channel: Dict[str, ChannelResult] = Field(default_factory=dict)
    overall_score: float = Field(0.0, ge=0.0, le=1.0)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    classification: Classification
    suspicious_channels: int = Field(0, ge=0, description="Corroborating input channels")
    applied_safeguards: List[str] = Field(default_factory=list)
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)


class MonitorStatus(BaseModel):
    is_running: bool
    elapsed_ms: float = Field(0.0, ge=0.0)
    sample_counts: Dict[str, int] = Field(default_factory=dict)
    ready: bool = False
    state: str


# =============================================================================
# Calibration Export
# =============================================================================

class CalibrationReport(BaseModel):
    """Diagnostic export used to tune thresholds against real sessions."""
    version: str
    generated_at: str = Field(..., description="ISO-8601 UTC timestamp")
    session_duration_ms: float
    result: OverallResult
    verdict: Classification
    scoring_breakdowns: Dict[str, Dict[str, RuleResult]] = Field(default_factory=dict)
    sample_counts: Dict[str, int] = Field(default_factory=dict)
    human_baselines: Dict[str, Dict[str, BaselineRange]] = Field(default_factory=dict)
    calibration_notes: List[str] = Field(default_factory=list, description="Threshold tuning guidance")
