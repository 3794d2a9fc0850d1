"""RF environment analysis: optimal bearing, SNR, interference and quality."""

from datetime import datetime

import numpy as np

from src.tower_finder.core.config import AnalysisConfig, GeodesyConfig, get_config
from src.tower_finder.models.schemas import EnvironmentAnalysis, SignalPattern, TowerObservation
from src.tower_finder.services.signal_pattern_analyzer import SignalPatternAnalyzer
from src.tower_finder.services.telemetry_source import TelemetrySource
from src.tower_finder.services.tower_locator import TowerLocator, strongest_tower_bearing
from src.tower_finder.utils.logging import get_logger
from src.tower_finder.utils.rf_bands import signal_tier_score

logger = get_logger(__name__)

# SNR at which the SNR sub-score saturates
SNR_SCORE_SCALE = 10.0


class EnvironmentAnalyzer:
    """Aggregates tower observations and a signal pattern into an EnvironmentAnalysis."""

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        geodesy_config: GeodesyConfig | None = None,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ) -> None:
        """
        Initialize the analyzer.

        Args:
            config: Analysis configuration section
            geodesy_config: Geodesy configuration used when locating towers
            rng: Random generator for the measurement noise terms
            seed: Seed for a fresh generator when rng is not given
        """
        self.config = config or get_config().analysis
        self.locator = TowerLocator(geodesy_config)
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def analyze(
        self,
        observations: list[TowerObservation],
        pattern: SignalPattern,
        current_signal_strength: int,
        nearby_networks: int,
        rng: np.random.Generator | None = None,
        timestamp: datetime | None = None,
    ) -> EnvironmentAnalysis:
        """
        Build an environment snapshot.

        Args:
            observations: Towers seen in this read, in scan order
            pattern: Directional pattern for the same location
            current_signal_strength: Serving signal strength in dBm
            nearby_networks: Count of competing networks in range
            rng: Random generator for this call, defaults to the analyzer's
            timestamp: Snapshot time, defaults to now

        Returns:
            EnvironmentAnalysis with all scalars clamped to their ranges
        """
        rng = rng if rng is not None else self.rng

        optimal_bearing = strongest_tower_bearing(observations)
        if optimal_bearing is None:
            logger.warning("No towers in range, optimal bearing defaults to 0°")
            optimal_bearing = 0.0

        snr = self._signal_to_noise_ratio(current_signal_strength, rng)
        interference = self._interference_level(nearby_networks, rng)
        quality = self._environment_quality(current_signal_strength, snr, interference)

        logger.debug(
            f"Environment: {len(observations)} towers, optimal {optimal_bearing:.1f}°, "
            f"SNR {snr:.2f}, interference {interference:.2f}, quality {quality:.2f}"
        )

        kwargs = {"timestamp": timestamp} if timestamp is not None else {}
        return EnvironmentAnalysis(
            nearby_towers=tuple(observations),
            signal_pattern=pattern,
            optimal_bearing=optimal_bearing,
            signal_to_noise_ratio=snr,
            interference_level=interference,
            environment_quality=quality,
            **kwargs,
        )

    def analyze_source(
        self, source: TelemetrySource, pattern: SignalPattern | None = None
    ) -> EnvironmentAnalysis:
        """
        Read a telemetry source and analyze it.

        When no pattern is given the source is probed around the full circle
        at the configured step.
        """
        observations = self.locator.locate(source)
        if pattern is None:
            pattern = self.probe_pattern(source)

        return self.analyze(
            observations,
            pattern,
            current_signal_strength=source.current_signal_strength(),
            nearby_networks=source.count_nearby_networks(),
        )

    def probe_pattern(self, source: TelemetrySource) -> SignalPattern:
        """Sweep the source through 360° and summarize the readings."""
        bearings = [float(b) for b in np.arange(0.0, 360.0, self.config.ANALYSIS_PATTERN_STEP_DEG)]
        strengths = [source.measure_signal_at_bearing(bearing) for bearing in bearings]
        return SignalPatternAnalyzer.from_measurements(strengths, bearings)

    def _signal_to_noise_ratio(self, signal_strength: int, rng: np.random.Generator) -> float:
        jitter = self.config.ANALYSIS_NOISE_FLOOR_JITTER
        noise_floor = self.config.ANALYSIS_NOISE_FLOOR_BASE + rng.uniform(-jitter, jitter)
        # Jitter larger than the base must not flip the sign of the ratio
        noise_floor = max(noise_floor, 1e-6)
        return float(abs(signal_strength) / noise_floor)

    def _interference_level(self, nearby_networks: int, rng: np.random.Generator) -> float:
        jitter = rng.uniform(0.0, self.config.ANALYSIS_INTERFERENCE_JITTER_MAX)
        level = max(0, nearby_networks) * self.config.ANALYSIS_INTERFERENCE_PER_NETWORK + jitter
        return float(min(1.0, max(0.0, level)))

    def _environment_quality(self, signal_strength: int, snr: float, interference: float) -> float:
        signal_score = signal_tier_score(signal_strength)
        snr_score = min(1.0, snr / SNR_SCORE_SCALE)
        interference_score = 1.0 - interference
        return float(np.clip((signal_score + snr_score + interference_score) / 3.0, 0.0, 1.0))
