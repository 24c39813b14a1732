"""
Behavior Monitor Core

Behavioral telemetry scoring engine. The engine facade lives in
core.monitor (BehaviorMonitor); calibration in core.config.
"""

from core.config import CalibrationConfig, ConfigurationError, build_config

__all__ = [
    "CalibrationConfig",
    "ConfigurationError",
    "build_config",
]
