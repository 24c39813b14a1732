"""
Mouse Movement Analyzer

Turns the buffered pointer path of a session into a suspicion score. The
path is traced step by step (distance, velocity, turn angle, straight
segments) and a set of independently thresholded detectors is run over it.

Detectors:
- velocity / angle / acceleration / timing variance
- straight-line ratio and path efficiency
- scripted-delay sub-pattern (intervals snapping to setTimeout multiples)
- smooth curvature (parametric curve generators)
- pointer pressure and pointer fingerprint consistency
- timing entropy, constant timing (CV) and periodic jitter

Several detectors only fire when a second signal corroborates them, so
slow, careful human motion does not trip them on its own.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.config import CalibrationConfig
from core.processors import stats
from core.processors.scoring import breakdown_score, rule, sample_confidence
from core.schemas.inputs import MouseEvent
from core.schemas.outputs import ChannelResult

# =============================================================================
# TRACE CONSTANTS
# =============================================================================

# Steps shorter than this (px) are stationary jitter, not movement
MIN_STEP_DISTANCE = 0.01

# Axis component below this (px) counts as axis-aligned
AXIS_EPSILON = 0.01

# Mean curvature below this is a straight path, not a smooth curve
MIN_MEAN_CURVATURE = 1e-9

# Curvatures needed before the smoothness CV is meaningful
MIN_CURVATURES = 5

# Accelerations needed before acceleration variance is meaningful
MIN_ACCELERATIONS = 10

# Intervals needed for the timing-variance and constant-timing rules
MIN_TIMING_INTERVALS = 5

# Samples needed before the pointer fingerprint is judged
MIN_FINGERPRINT_SAMPLES = 5

# Pressure readings needed before pressure variation is judged
MIN_PRESSURE_READINGS = 5


@dataclass
class PathTrace:
    """Per-step kinematics of a pointer path."""
    velocities: List[float] = field(default_factory=list)
    angle_changes: List[float] = field(default_factory=list)
    accelerations: List[float] = field(default_factory=list)
    segment_count: int = 0
    straight_segments: int = 0
    path_distance: float = 0.0
    straight_distance: float = 0.0

    @property
    def straight_line_ratio(self) -> float:
        if self.segment_count == 0:
            return 0.0
        return self.straight_segments / self.segment_count

    @property
    def efficiency(self) -> float:
        """Net displacement over path length; 1.0 for a zero-length path."""
        if self.path_distance <= 0:
            return 1.0
        return min(1.0, self.straight_distance / self.path_distance)


class MouseAnalyzer:
    """
    Mouse channel analyzer.

    Stateless between calls: ``analyze`` recomputes everything from the
    buffer it is given.
    """

    def __init__(self, config: CalibrationConfig) -> None:
        self._thresholds = config.mouse_thresholds
        self._weights = config.mouse_weights
        self._min_samples = config.min_samples.mouse

    def analyze(self, movements: Sequence[MouseEvent]) -> ChannelResult:
        n = len(movements)
        if n < 2:
            return ChannelResult.unavailable(sample_count=n)

        t = self._thresholds
        w = self._weights

        trace = self._trace(movements)
        timing = stats.intervals([m.timestamp for m in movements])
        timing_variance = stats.variance(timing)
        timing_cv = stats.coefficient_of_variation(timing)
        accel_variance = stats.variance(trace.accelerations)
        velocity_variance = stats.variance(trace.velocities)
        angle_variance = stats.variance(trace.angle_changes)
        untrusted_ratio = sum(1 for m in movements if not m.trusted) / n

        # Variance-style detectors need enough samples to mean anything
        sufficient = n >= t.min_samples_for_variance

        delay_ratio = stats.scripted_delay_ratio(timing, t.scripted_delays_ms, t.delay_tolerance_ms)
        curvature_cv, smooth = self._curvature(movements)
        entropy = stats.normalized_entropy(timing, t.entropy_bucket_ms)
        periodic = max(
            stats.periodic_autocorrelation(
                [m.x for m in movements], t.autocorrelation_min_lag, t.autocorrelation_max_lag
            ),
            stats.periodic_autocorrelation(
                [m.y for m in movements], t.autocorrelation_min_lag, t.autocorrelation_max_lag
            ),
        )
        pressure_suspicious, pressure_metrics = self._pressure(movements)
        fingerprint_suspicious, fingerprint_metrics = self._fingerprint(movements)

        # ---------------------------------------------------------------------
        # Rule evaluation (corroborated rules reference the ones before them)
        # ---------------------------------------------------------------------
        scripted = sufficient and delay_ratio > t.scripted_delay_ratio
        low_accel = accel_variance < t.low_accel_variance and len(trace.accelerations) >= MIN_ACCELERATIONS
        low_velocity = (
            velocity_variance < t.low_velocity_variance and sufficient and (low_accel or scripted)
        )
        straight = trace.straight_line_ratio > t.high_straight_line_ratio and sufficient
        low_angle = angle_variance < t.low_angle_variance and sufficient and (low_velocity or straight)
        low_timing_raw = timing_variance < t.low_timing_variance and timing.size > MIN_TIMING_INTERVALS
        low_timing = low_timing_raw and sufficient
        efficient = (
            trace.efficiency > t.high_mouse_efficiency
            and angle_variance < t.low_angle_variance
            and low_timing_raw
        )
        constant = timing_cv < t.constant_timing_cv and timing.size >= MIN_TIMING_INTERVALS and sufficient
        periodic_noise = periodic > t.periodic_noise_autocorrelation and sufficient
        smooth_curve = smooth and sufficient
        low_entropy = entropy < t.low_timing_entropy and sufficient

        breakdown = {
            "low_velocity_variance": rule(
                low_velocity, w.low_velocity_variance, velocity_variance, t.low_velocity_variance,
                corroborated=True, details="needs low acceleration variance or scripted delays",
            ),
            "low_angle_variance": rule(
                low_angle, w.low_angle_variance, angle_variance, t.low_angle_variance,
                corroborated=True, details="needs low velocity variance or straight lines",
            ),
            "high_straight_line_ratio": rule(
                straight, w.high_straight_line_ratio, trace.straight_line_ratio, t.high_straight_line_ratio,
            ),
            "high_untrusted_ratio": rule(
                untrusted_ratio > t.high_untrusted_ratio, w.high_untrusted_ratio,
                untrusted_ratio, t.high_untrusted_ratio,
            ),
            "high_mouse_efficiency": rule(
                efficient, w.high_mouse_efficiency, trace.efficiency, t.high_mouse_efficiency,
                corroborated=True, details="needs low angle variance and low timing variance",
            ),
            "low_timing_variance": rule(
                low_timing, w.low_timing_variance, timing_variance, t.low_timing_variance,
            ),
            "constant_timing": rule(
                constant, w.constant_timing, timing_cv, t.constant_timing_cv,
            ),
            "periodic_noise": rule(
                periodic_noise, w.periodic_noise, periodic, t.periodic_noise_autocorrelation,
            ),
            "scripted_delay_pattern": rule(
                scripted, w.scripted_delay_pattern, delay_ratio, t.scripted_delay_ratio,
            ),
            "low_accel_variance": rule(
                low_accel, w.low_accel_variance, accel_variance, t.low_accel_variance,
            ),
            "smooth_curvature": rule(
                smooth_curve, w.smooth_curvature, curvature_cv, t.smooth_curvature_cv,
            ),
            "pressure_suspicious": rule(
                pressure_suspicious and (low_velocity or smooth_curve), w.pressure_suspicious,
                pressure_metrics.get("pressure_variance"), t.pressure_variance,
                corroborated=True, details="needs low velocity variance or smooth curvature",
            ),
            "low_entropy": rule(
                low_entropy, w.low_entropy, entropy, t.low_timing_entropy,
            ),
            "fingerprint_suspicious": rule(
                fingerprint_suspicious and (low_velocity or smooth_curve), w.fingerprint_suspicious,
                corroborated=True, details="needs low velocity variance or smooth curvature",
            ),
        }

        # Unsophisticated bots trip several obvious tells at once
        naive_signals = sum([straight, low_timing, constant])
        multiplier = t.naive_signal_multiplier if naive_signals >= 2 else 1.0
        score = breakdown_score(breakdown, multiplier)

        metrics: Dict[str, Any] = {
            "sample_count": n,
            "velocity_variance": velocity_variance,
            "angle_variance": angle_variance,
            "straight_line_ratio": trace.straight_line_ratio,
            "untrusted_ratio": untrusted_ratio,
            "total_distance": trace.path_distance,
            "straight_distance": trace.straight_distance,
            "path_distance": trace.path_distance,
            "mouse_efficiency": trace.efficiency,
            "timing_variance": timing_variance,
            "timing_cv": timing_cv,
            "accel_variance": accel_variance,
            "curvature_cv": curvature_cv,
            "timing_entropy": entropy,
            "max_autocorrelation": periodic,
            "scripted_delay_ratio": delay_ratio,
            "naive_signals": naive_signals,
            "naive_multiplier": multiplier,
            **pressure_metrics,
            **fingerprint_metrics,
        }

        return ChannelResult(
            available=True,
            score=score,
            confidence=sample_confidence(n, self._min_samples),
            metrics=metrics,
            scoring_breakdown=breakdown,
        )

    # =========================================================================
    # PATH TRACING
    # =========================================================================

    def _trace(self, movements: Sequence[MouseEvent]) -> PathTrace:
        trace = PathTrace(segment_count=len(movements) - 1)
        tolerance = self._thresholds.straight_angle_tolerance
        prev_angle: Optional[float] = None

        for prev, curr in zip(movements, movements[1:]):
            dx = curr.x - prev.x
            dy = curr.y - prev.y
            dt = curr.timestamp - prev.timestamp
            distance = math.hypot(dx, dy)
            trace.path_distance += distance

            if dt > 0:
                trace.velocities.append(distance / dt)

            if distance <= MIN_STEP_DISTANCE:
                continue

            angle = math.atan2(dy, dx)
            turn: Optional[float] = None
            if prev_angle is not None:
                turn = abs(self._angle_diff(angle, prev_angle))
                trace.angle_changes.append(turn)

            axis_aligned = abs(dx) < AXIS_EPSILON or abs(dy) < AXIS_EPSILON
            collinear = turn is not None and turn <= tolerance
            if axis_aligned or collinear:
                trace.straight_segments += 1
            prev_angle = angle

        for v0, v1 in zip(trace.velocities, trace.velocities[1:]):
            trace.accelerations.append(abs(v1 - v0))

        first, last = movements[0], movements[-1]
        trace.straight_distance = math.hypot(last.x - first.x, last.y - first.y)
        return trace

    def _curvature(self, movements: Sequence[MouseEvent]) -> Tuple[float, bool]:
        """
        Coefficient of variation of the path's second differences.

        Returns (cv, smooth). A path with no curvature at all is straight,
        not smooth, and reports smooth=False.
        """
        curvatures = []
        for p0, p1, p2 in zip(movements, movements[1:], movements[2:]):
            ax = (p2.x - p1.x) - (p1.x - p0.x)
            ay = (p2.y - p1.y) - (p1.y - p0.y)
            curvatures.append(math.hypot(ax, ay))

        if len(curvatures) < MIN_CURVATURES:
            return 0.0, False
        if stats.mean(curvatures) <= MIN_MEAN_CURVATURE:
            return 0.0, False

        cv = stats.coefficient_of_variation(curvatures)
        return cv, cv < self._thresholds.smooth_curvature_cv

    def _pressure(self, movements: Sequence[MouseEvent]) -> Tuple[bool, Dict[str, Any]]:
        """Near-constant pressure, or pressure missing from a long session."""
        t = self._thresholds
        pressures = [m.pressure for m in movements if m.pressure is not None]

        if len(pressures) < MIN_PRESSURE_READINGS:
            return len(movements) > t.long_session_samples, {"pressure_readings": len(pressures)}

        variance = stats.variance(pressures)
        unique_ratio = len(set(pressures)) / len(pressures)
        suspicious = variance < t.pressure_variance or unique_ratio < t.pressure_unique_ratio
        return suspicious, {
            "pressure_readings": len(pressures),
            "pressure_variance": variance,
            "pressure_unique_ratio": unique_ratio,
        }

    def _fingerprint(self, movements: Sequence[MouseEvent]) -> Tuple[bool, Dict[str, Any]]:
        """Pointer kind switching mid-session, or no advanced pointer properties."""
        if len(movements) < MIN_FINGERPRINT_SAMPLES:
            return False, {}

        pointer_types = {m.pointer_type for m in movements if m.pointer_type is not None}
        has_advanced = any(
            m.width is not None
            or m.height is not None
            or m.tilt_x is not None
            or m.tilt_y is not None
            or m.pressure is not None
            for m in movements
        )
        inconsistent = len(pointer_types) > 1
        missing = len(movements) > self._thresholds.long_session_samples and not has_advanced
        return inconsistent or missing, {
            "pointer_types": sorted(pointer_types),
            "inconsistent_pointer_type": inconsistent,
            "missing_pointer_properties": missing,
        }

    # =========================================================================
    # MATH UTILITIES
    # =========================================================================

    def _angle_diff(self, a1: float, a2: float) -> float:
        """Signed angle difference wrapped to [-pi, pi]."""
        diff = a1 - a2
        while diff > math.pi:
            diff -= 2 * math.pi
        while diff < -math.pi:
            diff += 2 * math.pi
        return diff
