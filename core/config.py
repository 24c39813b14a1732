"""
Behavior Monitor Calibration Config

Immutable, validated calibration for the channel analyzers and the fusion
engine. Every block has built-in defaults; caller overrides are merged
key-by-key per block so a partial override never leaves a block incomplete.

Usage:
    config = build_config({"safeguards": {"bot_threshold": 0.45}})
    config.safeguards.bot_threshold   # 0.45
    config.safeguards.suspicious_threshold  # 0.25 (default kept)

The numeric defaults are a starting calibration, not derived constants.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when calibration overrides are structurally invalid."""
    pass


class _Block(BaseModel):
    """Base for every calibration block: frozen, unknown keys rejected."""
    model_config = ConfigDict(frozen=True, extra="forbid")


# =============================================================================
# Channel Weights & Sample Minimums
# =============================================================================

class ChannelWeights(_Block):
    """Relative weight of each channel in the fused score."""
    mouse: float = Field(0.35, ge=0)
    keyboard: float = Field(0.40, ge=0)
    scroll: float = Field(0.40, ge=0)
    touch: float = Field(0.13, ge=0)
    events: float = Field(0.16, ge=0)
    sensors: float = Field(0.10, ge=0)
    render_timing: float = Field(0.10, ge=0)


class MinSamples(_Block):
    """Samples needed per input channel for full confidence and readiness."""
    mouse: int = Field(20, ge=1)
    keyboard: int = Field(10, ge=1)
    scroll: int = Field(5, ge=1)
    touch: int = Field(5, ge=1)
    events: int = Field(10, ge=1)


# =============================================================================
# Mouse
# =============================================================================

class MouseThresholds(_Block):
    low_velocity_variance: float = 0.001
    low_angle_variance: float = 0.05
    high_straight_line_ratio: float = 0.35
    high_untrusted_ratio: float = 0.1
    high_mouse_efficiency: float = 0.95
    low_timing_variance: float = 50.0
    low_accel_variance: float = 1e-5

    # Scripted-delay (sub-pattern) detector
    scripted_delays_ms: List[float] = Field(
        default_factory=lambda: [10.0, 16.0, 20.0, 33.0, 50.0, 100.0]
    )
    delay_tolerance_ms: float = 1.0
    scripted_delay_ratio: float = 0.7

    smooth_curvature_cv: float = 0.5
    low_timing_entropy: float = 0.5
    entropy_bucket_ms: float = 10.0
    constant_timing_cv: float = 0.15
    periodic_noise_autocorrelation: float = 0.5
    autocorrelation_min_lag: int = 2
    autocorrelation_max_lag: int = 20
    naive_signal_multiplier: float = Field(1.5, ge=1)

    # Pointer pressure / fingerprint
    pressure_variance: float = 1e-4
    pressure_unique_ratio: float = 0.1
    long_session_samples: int = 20

    min_samples_for_variance: int = 10
    straight_angle_tolerance: float = 0.02


class MouseWeights(_Block):
    low_velocity_variance: float = Field(0.10, ge=0)
    low_angle_variance: float = Field(0.05, ge=0)
    high_straight_line_ratio: float = Field(0.55, ge=0)
    high_untrusted_ratio: float = Field(0.30, ge=0)
    high_mouse_efficiency: float = Field(0.15, ge=0)
    low_timing_variance: float = Field(0.45, ge=0)
    constant_timing: float = Field(0.50, ge=0)
    periodic_noise: float = Field(0.15, ge=0)
    scripted_delay_pattern: float = Field(0.10, ge=0)
    low_accel_variance: float = Field(0.10, ge=0)
    smooth_curvature: float = Field(0.05, ge=0)
    pressure_suspicious: float = Field(0.05, ge=0)
    low_entropy: float = Field(0.15, ge=0)
    fingerprint_suspicious: float = Field(0.05, ge=0)


# =============================================================================
# Keyboard / Scroll / Touch / Events
# =============================================================================

class KeyboardThresholds(_Block):
    low_hold_time_variance: float = 10.0
    low_inter_key_variance: float = 100.0
    high_untrusted_ratio: float = 0.1
    high_inter_key_variance: float = 5_000_000.0


class KeyboardWeights(_Block):
    low_hold_time_variance: float = Field(0.5, ge=0)
    low_inter_key_variance: float = Field(0.2, ge=0)
    high_untrusted_ratio: float = Field(0.3, ge=0)
    # Negative evidence: subtracted when it fires
    high_inter_key_variance: float = Field(0.30, ge=0)


class ScrollThresholds(_Block):
    low_delta_variance: float = 1.0
    low_interval_variance: float = 10.0
    low_unique_delta_ratio: float = 0.3
    high_delta_variance: float = 3000.0
    high_events_per_second: float = 100.0
    high_interval_variance: float = 1_000_000.0


class ScrollWeights(_Block):
    low_delta_variance: float = Field(0.2, ge=0)
    low_interval_variance: float = Field(0.2, ge=0)
    low_unique_delta_ratio: float = Field(0.2, ge=0)
    high_delta_variance: float = Field(0.25, ge=0)
    high_events_per_second: float = Field(0.10, ge=0)
    scripted_delay_pattern: float = Field(0.05, ge=0)
    # Negative evidence: subtracted when it fires
    high_interval_variance: float = Field(0.20, ge=0)


class TouchThresholds(_Block):
    low_force_variance: float = 0.001
    low_radius_variance: float = 0.1
    high_force_variance: float = 0.15
    high_events_per_second: float = 50.0
    high_untrusted_ratio: float = 0.1


class TouchWeights(_Block):
    low_force_variance: float = Field(0.25, ge=0)
    low_radius_variance: float = Field(0.25, ge=0)
    high_force_variance: float = Field(0.15, ge=0)
    high_events_per_second: float = Field(0.15, ge=0)
    scripted_delay_pattern: float = Field(0.1, ge=0)
    high_untrusted_ratio: float = Field(0.2, ge=0)


class EventThresholds(_Block):
    low_interval_variance: float = 100.0
    high_untrusted_ratio: float = 0.1


class EventWeights(_Block):
    low_interval_variance: float = Field(0.4, ge=0)
    high_untrusted_ratio: float = Field(0.6, ge=0)


# =============================================================================
# Sensors / Rendering Timing
# =============================================================================

class SensorThresholds(_Block):
    low_axis_variance: float = 1e-4
    confidence: float = Field(0.5, ge=0, le=1)


class SensorWeights(_Block):
    x: float = Field(0.33, ge=0)
    y: float = Field(0.33, ge=0)
    z: float = Field(0.34, ge=0)


class RenderTimingThresholds(_Block):
    too_fast_ms: float = 0.1
    too_slow_ms: float = 100.0
    round_value_tolerance: float = 0.001
    confidence: float = Field(0.6, ge=0, le=1)


class RenderTimingWeights(_Block):
    too_fast: float = Field(0.5, ge=0)
    too_slow: float = Field(0.3, ge=0)
    round_value: float = Field(0.2, ge=0)


# =============================================================================
# Safeguards
# =============================================================================

class Safeguards(_Block):
    """Global constants consumed by the fusion engine."""
    min_confidence_gate: float = Field(0.4, ge=0, le=1)
    suspicious_channel_threshold: float = 0.25
    min_suspicious_channels: int = Field(2, ge=1)
    single_channel_downscale: float = Field(0.90, ge=0, le=1)
    max_channel_contribution: float = Field(0.6, ge=0, le=1)

    # Session duration gates (ms)
    min_session_duration_zero: float = Field(5000.0, ge=0)
    min_session_duration_cap: float = Field(10000.0, ge=0)
    short_session_score_cap: float = Field(0.5, ge=0, le=1)

    # Classification cut points
    bot_threshold: float = 0.40
    suspicious_threshold: float = 0.25
    likely_human_threshold: float = 0.12

    # Sophistication discount
    sophistication_mouse_threshold: float = 0.40
    sophistication_ikv_scale: float = Field(1.2e8, gt=0)
    sophistication_iv_scale: float = Field(7e7, gt=0)
    sophistication_discount_min: float = Field(0.15, ge=0, le=1)
    sophistication_discount_max: float = Field(0.70, ge=0, le=1)

    # Multi-channel rescue
    rescue_threshold: float = 0.04
    rescue_cap: float = 0.42
    rescue_cap_sophisticated: float = 0.39
    rescue_boost: float = Field(1.60, ge=1)
    rescue_min_channels: int = Field(2, ge=1)
    rescue_max_score_for_sophisticated: float = 0.25

    @model_validator(mode="after")
    def check_ordering(self) -> "Safeguards":
        if not (self.bot_threshold > self.suspicious_threshold > self.likely_human_threshold):
            raise ValueError(
                "classification thresholds must be strictly descending: "
                f"bot={self.bot_threshold}, suspicious={self.suspicious_threshold}, "
                f"likely_human={self.likely_human_threshold}"
            )
        if self.min_session_duration_zero > self.min_session_duration_cap:
            raise ValueError("min_session_duration_zero must not exceed min_session_duration_cap")
        if self.sophistication_discount_min > self.sophistication_discount_max:
            raise ValueError("sophistication_discount_min must not exceed sophistication_discount_max")
        return self


# =============================================================================
# Human Baselines (diagnostic reference ranges)
# =============================================================================

class BaselineRange(_Block):
    min: float
    typical: float
    max: float
    description: str = ""


def _range(low: float, typical: float, high: float, description: str) -> BaselineRange:
    return BaselineRange(min=low, typical=typical, max=high, description=description)


class HumanBaselines(_Block):
    """Typical ranges observed in real human sessions, exported for tuning."""
    mouse: Dict[str, BaselineRange] = Field(default_factory=lambda: {
        "velocity_variance": _range(0.001, 0.1, 5.0, "Human mouse velocity varies naturally"),
        "angle_variance": _range(0.05, 0.3, 2.0, "Humans have varied movement angles"),
        "straight_line_ratio": _range(0.0, 0.15, 0.4, "Humans rarely move in perfectly straight lines"),
        "mouse_efficiency": _range(0.3, 0.6, 0.85, "Humans take indirect paths to targets"),
        "timing_variance": _range(100, 500, 5000, "Human timing is highly variable"),
    })
    keyboard: Dict[str, BaselineRange] = Field(default_factory=lambda: {
        "hold_time_variance": _range(20, 100, 1000, "Key hold times vary with typing style"),
        "inter_key_variance": _range(200, 1000, 10000, "Time between keys is highly variable"),
    })
    scroll: Dict[str, BaselineRange] = Field(default_factory=lambda: {
        "delta_variance": _range(50, 500, 2000, "Scroll amounts vary naturally"),
        "interval_variance": _range(50, 500, 5000, "Scroll timing is irregular"),
        "events_per_second": _range(5, 20, 50, "Normal scroll event frequency"),
    })
    touch: Dict[str, BaselineRange] = Field(default_factory=lambda: {
        "force_variance": _range(0.01, 0.05, 0.12, "Touch pressure varies naturally"),
        "events_per_second": _range(5, 15, 35, "Normal touch event frequency"),
    })


# =============================================================================
# Root Config
# =============================================================================

class CalibrationConfig(_Block):
    """Complete calibration for one monitor instance."""
    version: str = "2.0.0"
    channel_weights: ChannelWeights = Field(default_factory=ChannelWeights)
    min_samples: MinSamples = Field(default_factory=MinSamples)
    mouse_thresholds: MouseThresholds = Field(default_factory=MouseThresholds)
    mouse_weights: MouseWeights = Field(default_factory=MouseWeights)
    keyboard_thresholds: KeyboardThresholds = Field(default_factory=KeyboardThresholds)
    keyboard_weights: KeyboardWeights = Field(default_factory=KeyboardWeights)
    scroll_thresholds: ScrollThresholds = Field(default_factory=ScrollThresholds)
    scroll_weights: ScrollWeights = Field(default_factory=ScrollWeights)
    touch_thresholds: TouchThresholds = Field(default_factory=TouchThresholds)
    touch_weights: TouchWeights = Field(default_factory=TouchWeights)
    event_thresholds: EventThresholds = Field(default_factory=EventThresholds)
    event_weights: EventWeights = Field(default_factory=EventWeights)
    sensor_thresholds: SensorThresholds = Field(default_factory=SensorThresholds)
    sensor_weights: SensorWeights = Field(default_factory=SensorWeights)
    render_timing_thresholds: RenderTimingThresholds = Field(default_factory=RenderTimingThresholds)
    render_timing_weights: RenderTimingWeights = Field(default_factory=RenderTimingWeights)
    safeguards: Safeguards = Field(default_factory=Safeguards)
    human_baselines: HumanBaselines = Field(default_factory=HumanBaselines)


def _merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge overrides over base key-by-key, descending into nested blocks."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def build_config(
    overrides: Optional[Union[Mapping[str, Any], CalibrationConfig]] = None,
) -> CalibrationConfig:
    """
    Build a validated CalibrationConfig from partial overrides.

    Args:
        overrides: Nested mapping of block -> key -> value, or an already
            built CalibrationConfig (returned unchanged).

    Returns:
        Frozen CalibrationConfig with defaults filled per block.

    Raises:
        ConfigurationError: Unknown blocks/keys, wrong types, negative
            weights or non-descending classification thresholds.
    """
    if isinstance(overrides, CalibrationConfig):
        return overrides
    if not overrides:
        return CalibrationConfig()
    if not isinstance(overrides, Mapping):
        raise ConfigurationError(f"Calibration overrides must be a mapping, got {type(overrides).__name__}")

    merged = _merge(CalibrationConfig().model_dump(), overrides)
    try:
        config = CalibrationConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid calibration overrides: {e}") from e

    logger.debug(f"Calibration built with overrides for blocks: {sorted(overrides)}")
    return config


def load_calibration_file(path: Union[str, Path]) -> CalibrationConfig:
    """Load a JSON file of calibration overrides and build the config."""
    path = Path(path)
    try:
        overrides = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read calibration file {path}: {e}") from e

    logger.info(f"Loaded calibration overrides from {path}")
    return build_config(overrides)
