"""
Shared pytest fixtures for the tower finder test suite.
These fixtures are available to all test files automatically.
"""

from collections.abc import Generator
from pathlib import Path

import numpy as np
import pytest

from src.tower_finder.core.config import (
    AnalysisConfig,
    Config,
    GeodesyConfig,
    HuntingConfig,
    NavigationConfig,
)
from src.tower_finder.models.schemas import TowerObservation
from src.tower_finder.services.signal_pattern_analyzer import SignalPatternAnalyzer
from src.tower_finder.services.telemetry_source import SyntheticTelemetrySource
from src.tower_finder.utils.logging import clear_correlation_id


def pytest_configure(config):
    """Register custom pytest markers for test categorization."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (<100ms, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (<1s, real services)"
    )
    config.addinivalue_line("markers", "property: mark test as property-based test (hypothesis)")
    config.addinivalue_line(
        "markers", "critical: mark test as critical (core bearing/distance functionality)"
    )
    config.addinivalue_line("markers", "fast: mark test as fast (<100ms execution time)")


def pytest_collection_modifyitems(config, items):
    """Add markers to test items based on their location."""
    for item in items:
        path = str(item.fspath)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        elif "integration" in path:
            item.add_marker(pytest.mark.integration)
        elif "property" in path:
            item.add_marker(pytest.mark.property)


@pytest.fixture(autouse=True)
def reset_correlation_id() -> Generator[None, None, None]:
    """Keep correlation IDs from leaking between tests."""
    yield
    clear_correlation_id()


@pytest.fixture
def config() -> Config:
    """Default configuration, independent of files and environment."""
    return Config()


@pytest.fixture
def geodesy_config() -> GeodesyConfig:
    return GeodesyConfig()


@pytest.fixture
def analysis_config() -> AnalysisConfig:
    return AnalysisConfig()


@pytest.fixture
def navigation_config() -> NavigationConfig:
    return NavigationConfig()


@pytest.fixture
def hunting_config() -> HuntingConfig:
    return HuntingConfig()


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator for deterministic noise."""
    return np.random.default_rng(42)


@pytest.fixture
def synthetic_source() -> SyntheticTelemetrySource:
    """Seeded synthetic cellular environment with four towers."""
    return SyntheticTelemetrySource(seed=1234, tower_count=4, wifi_count=5)


@pytest.fixture
def sample_observations() -> list[TowerObservation]:
    """Three towers with distinct strengths."""
    return [
        TowerObservation(bearing=30.0, distance=800.0, confidence=0.9, signal_strength=-75, tower_id=101),
        TowerObservation(bearing=120.0, distance=2500.0, confidence=0.8, signal_strength=-68, tower_id=102),
        TowerObservation(bearing=250.0, distance=12000.0, confidence=0.5, signal_strength=-95, tower_id=103),
    ]


@pytest.fixture
def flat_pattern():
    """Pattern with identical strengths at four bearings."""
    return SignalPatternAnalyzer.from_measurements([-80, -80, -80, -80], [0.0, 90.0, 180.0, 270.0])


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Empty config directory for loader tests."""
    directory = tmp_path / "config"
    directory.mkdir()
    return directory
