"""
Behavior Monitor Models

Evidence fusion, safeguards and classification.
"""

from core.models.fusion import FusionEngine, FusionOutcome, classify

__all__ = [
    "FusionEngine",
    "FusionOutcome",
    "classify",
]
