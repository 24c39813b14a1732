"""
Fusion & Safeguard Engine

Combines per-channel results into one score, confidence and verdict.

Pipeline (order matters, later stages assume earlier ones already ran):
    gate -> corroborate -> sensor gating -> render-timing cap ->
    aggregate -> downscale -> rescue -> discount -> duration gate -> classify

Aggregation:
    contribution = score x confidence x weight, capped at
    max_channel_contribution x weight; normalized by sum(confidence x weight).

The engine is stateless; every call starts from the channel results given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from core.config import CalibrationConfig, Safeguards
from core.schemas.outputs import INPUT_CHANNELS, Channel, ChannelResult, Classification


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

INPUT_CHANNEL_NAMES = tuple(c.value for c in INPUT_CHANNELS)

# Mouse rules whose firing marks a strong single-pattern signature
STRONG_MOUSE_SIGNATURES = ("smooth_curvature", "periodic_noise")


@dataclass
class FusionOutcome:
    """Result of one fusion pass."""
    score: float
    confidence: float
    classification: Classification
    suspicious_channels: int
    applied_safeguards: List[str] = field(default_factory=list)
    contributions: Dict[str, float] = field(default_factory=dict)


def classify(score: float, safeguards: Safeguards) -> Classification:
    """
    Map a score to a verdict tier.

    Cut points must be strictly descending; otherwise the configuration is
    broken and ERROR is reported instead of a verdict.
    """
    bot = safeguards.bot_threshold
    suspicious = safeguards.suspicious_threshold
    likely_human = safeguards.likely_human_threshold

    if not (bot > suspicious > likely_human):
        logger.error(
            f"Non-descending classification thresholds: "
            f"bot={bot}, suspicious={suspicious}, likely_human={likely_human}"
        )
        return Classification.ERROR

    if score >= bot:
        return Classification.BOT
    if score >= suspicious:
        return Classification.SUSPICIOUS
    if score >= likely_human:
        return Classification.LIKELY_HUMAN
    return Classification.VERIFIED_HUMAN


class FusionEngine:
    """Weighted evidence fusion with ordered safeguards."""

    def __init__(self, config: CalibrationConfig) -> None:
        self._weights = config.channel_weights
        self._safeguards = config.safeguards

    def fuse(self, results: Mapping[str, ChannelResult], duration_ms: float) -> FusionOutcome:
        """
        Fuse channel results for a session of the given duration.

        Args:
            results: Channel name -> ChannelResult (missing channels count
                as unavailable).
            duration_ms: Session duration used by the duration gate.
        """
        s = self._safeguards
        applied: List[str] = []

        # 1. Confidence gate
        surviving: Dict[str, ChannelResult] = {}
        for name, result in results.items():
            if not result.available:
                continue
            if result.confidence < s.min_confidence_gate:
                if "confidence_gate" not in applied:
                    applied.append("confidence_gate")
                continue
            surviving[name] = result

        # 2. Corroboration count over input channels
        suspicious_count = sum(
            1 for name in INPUT_CHANNEL_NAMES
            if name in surviving and surviving[name].score >= s.suspicious_channel_threshold
        )

        # 3. Sensors only reinforce existing suspicion
        if Channel.SENSORS.value in surviving and suspicious_count == 0:
            del surviving[Channel.SENSORS.value]
            applied.append("sensor_gating")

        # 4. Rendering timing alone is never decisive
        scores = {name: result.score for name, result in surviving.items()}
        render = Channel.RENDER_TIMING.value
        if (
            render in scores
            and suspicious_count == 0
            and scores[render] >= s.suspicious_channel_threshold
            and scores[render] > s.max_channel_contribution
        ):
            scores[render] = s.max_channel_contribution
            applied.append("render_timing_cap")

        # 5. Weighted aggregation with per-channel cap
        contributions: Dict[str, float] = {}
        total_weight = 0.0
        for name, result in surviving.items():
            weight = getattr(self._weights, name, 0.0)
            contribution = scores[name] * result.confidence * weight
            cap = s.max_channel_contribution * weight
            if contribution > cap:
                contribution = cap
                if "contribution_cap" not in applied:
                    applied.append("contribution_cap")
            contributions[name] = contribution
            total_weight += result.confidence * weight

        score = sum(contributions.values()) / total_weight if total_weight > 0 else 0.0
        confidence = (
            sum(r.confidence for r in surviving.values()) / len(surviving) if surviving else 0.0
        )

        # 6. Single-channel downscale
        if suspicious_count < s.min_suspicious_channels and score >= s.bot_threshold:
            score *= s.single_channel_downscale
            applied.append("single_channel_downscale")

        # 7. Multi-channel rescue
        sophistication = self._sophistication_strength(results)
        rescued = self._rescue(score, surviving, results.get(Channel.MOUSE.value), sophistication is not None)
        if rescued != score:
            score = rescued
            applied.append("multi_channel_rescue")

        # 8. Sophistication discount
        if sophistication is not None and score > 0:
            factor = s.sophistication_discount_max - (
                s.sophistication_discount_max - s.sophistication_discount_min
            ) * sophistication
            score *= factor
            applied.append("sophistication_discount")

        # 9. Session-duration gating
        if duration_ms < s.min_session_duration_zero:
            if score > 0:
                applied.append("short_session_zero")
            score = 0.0
        elif duration_ms < s.min_session_duration_cap and score > s.short_session_score_cap:
            score = s.short_session_score_cap
            applied.append("short_session_cap")

        score = max(0.0, min(1.0, score))
        classification = classify(score, s)

        logger.debug(
            f"Fused score={score:.4f} conf={confidence:.2f} suspicious={suspicious_count} "
            f"verdict={classification.value} safeguards={applied}"
        )

        return FusionOutcome(
            score=score,
            confidence=max(0.0, min(1.0, confidence)),
            classification=classification,
            suspicious_channels=suspicious_count,
            applied_safeguards=applied,
            contributions=contributions,
        )

    # =========================================================================
    # Rescue & Discount
    # =========================================================================

    def _rescue(
        self,
        score: float,
        surviving: Mapping[str, ChannelResult],
        mouse: Optional[ChannelResult],
        sophisticated: bool,
    ) -> float:
        """Boost weak evidence spread over several input channels, up to a cap."""
        s = self._safeguards

        weak_signals = sum(
            1 for name in INPUT_CHANNEL_NAMES
            if name in surviving and surviving[name].score > s.rescue_threshold
        )
        if weak_signals < s.rescue_min_channels:
            return score

        if mouse is not None and any(mouse.fired(r) for r in STRONG_MOUSE_SIGNATURES):
            return score

        if sophisticated and score > s.rescue_max_score_for_sophisticated:
            return score

        cap = s.rescue_cap_sophisticated if sophisticated else s.rescue_cap
        if not (0 < score < cap):
            return score
        return min(score * s.rescue_boost, cap)

    def _sophistication_strength(self, results: Mapping[str, ChannelResult]) -> Optional[float]:
        """
        Strength in [0, 1] of the human-pause evidence, or None when the
        discount does not apply.

        Applies when mouse evidence is weak while keyboard and scroll both
        show long human-like pauses.
        """
        s = self._safeguards
        mouse = results.get(Channel.MOUSE.value)
        keyboard = results.get(Channel.KEYBOARD.value)
        scroll = results.get(Channel.SCROLL.value)

        if mouse is None or not mouse.available or mouse.score >= s.sophistication_mouse_threshold:
            return None
        if keyboard is None or not keyboard.fired("high_inter_key_variance"):
            return None
        if scroll is None or not scroll.fired("high_interval_variance"):
            return None

        ikv = float(keyboard.metrics.get("inter_key_variance", 0.0))
        iv = float(scroll.metrics.get("interval_variance", 0.0))
        strength = (
            min(ikv / s.sophistication_ikv_scale, 1.0) + min(iv / s.sophistication_iv_scale, 1.0)
        ) / 2
        return strength
