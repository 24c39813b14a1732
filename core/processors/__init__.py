"""
Behavior Monitor Channel Analyzers

Public exports for the per-channel analyzers.
"""

from core.processors.environment import RenderTimingAnalyzer, SensorAnalyzer
from core.processors.events import EventAnalyzer
from core.processors.keyboard import KeyboardAnalyzer
from core.processors.mouse import MouseAnalyzer
from core.processors.scroll import ScrollAnalyzer
from core.processors.touch import TouchAnalyzer

__all__ = [
    "MouseAnalyzer",
    "KeyboardAnalyzer",
    "ScrollAnalyzer",
    "TouchAnalyzer",
    "EventAnalyzer",
    "SensorAnalyzer",
    "RenderTimingAnalyzer",
]
