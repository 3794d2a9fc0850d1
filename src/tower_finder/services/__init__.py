"""Services module for the tower finder core."""

from .environment_analyzer import EnvironmentAnalyzer
from .hunting_session import HuntingSession, HuntingState
from .navigation_engine import NavigationEngine, NavigationState
from .optimization_advisor import OptimizationAdvisor
from .signal_pattern_analyzer import SignalPatternAnalyzer
from .telemetry_source import (
    HostTelemetrySource,
    SyntheticTelemetrySource,
    TelemetrySource,
    create_telemetry_source,
)
from .tower_locator import TowerLocator

__all__ = [
    "EnvironmentAnalyzer",
    "HostTelemetrySource",
    "HuntingSession",
    "HuntingState",
    "NavigationEngine",
    "NavigationState",
    "OptimizationAdvisor",
    "SignalPatternAnalyzer",
    "SyntheticTelemetrySource",
    "TelemetrySource",
    "TowerLocator",
    "create_telemetry_source",
]
