"""
Telemetry sources feeding the analysis core.

The core only talks to the TelemetrySource interface. The host application
pushes real platform readings into a HostTelemetrySource; tests and demos use
the seeded SyntheticTelemetrySource.
"""

import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from src.tower_finder.core.config import DevelopmentConfig, get_config
from src.tower_finder.core.exceptions import TelemetryError
from src.tower_finder.models.schemas import (
    CellTelemetry,
    GeoCoordinate,
    LocationFix,
    OrientationSample,
    WifiTelemetry,
)
from src.tower_finder.utils.geodesy import normalize_bearing
from src.tower_finder.utils.logging import get_logger

logger = get_logger(__name__)

# Signal assumed when the host has not reported a serving cell
DEFAULT_SIGNAL_STRENGTH_DBM = -100

# Peak-to-trough swing of a probe sweep around the true tower bearing
PROBE_SWING_DB = 15.0


class TelemetrySource(ABC):
    """Capability interface for raw platform telemetry."""

    @abstractmethod
    def read_cells(self) -> list[CellTelemetry]:
        """Return the cells seen by the latest cellular scan."""
        pass

    @abstractmethod
    def read_location(self) -> LocationFix | None:
        """Return the latest position fix, if any."""
        pass

    @abstractmethod
    def count_nearby_networks(self) -> int:
        """Return the number of competing networks (WiFi access points) in range."""
        pass

    @abstractmethod
    def current_signal_strength(self) -> int:
        """Return the current serving signal strength in dBm."""
        pass

    @abstractmethod
    def measure_signal_at_bearing(self, bearing: float) -> int:
        """Return the signal strength measured with the device pointed at bearing."""
        pass

    @abstractmethod
    def estimate_bearing(self, cell: CellTelemetry, index: int) -> float:
        """Estimate the bearing to a cell that has no known coordinates."""
        pass

    def read_orientation(self) -> OrientationSample:
        """Return the latest orientation sample."""
        raise TelemetryError(f"{type(self).__name__} does not provide orientation samples")

    def supports_orientation(self) -> bool:
        """Check whether read_orientation() is available."""
        return False


class HostTelemetrySource(TelemetrySource):
    """
    Production adapter: the host application pushes platform readings in.

    All push methods accept either parsed records or raw camelCase payloads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cells: list[CellTelemetry] = []
        self._location: LocationFix | None = None
        self._wifi: list[WifiTelemetry] = []
        self._orientation: OrientationSample | None = None
        self._pointed_signal: int | None = None

    def update_cells(self, cells: list[CellTelemetry | dict]) -> None:
        """Replace the current cellular scan."""
        parsed = [
            cell if isinstance(cell, CellTelemetry) else CellTelemetry.from_payload(cell)
            for cell in cells
        ]
        with self._lock:
            self._cells = parsed
        logger.debug(f"Host cellular scan updated: {len(parsed)} cells")

    def update_location(self, location: LocationFix | dict | None) -> None:
        """Replace the current position fix (None clears it)."""
        if isinstance(location, dict):
            location = LocationFix.from_payload(location)
        with self._lock:
            self._location = location

    def update_wifi(self, networks: list[WifiTelemetry | dict]) -> None:
        """Replace the current WiFi scan."""
        parsed = [
            network if isinstance(network, WifiTelemetry) else WifiTelemetry.from_payload(network)
            for network in networks
        ]
        with self._lock:
            self._wifi = parsed

    def update_orientation(self, sample: OrientationSample | dict) -> None:
        """Store the latest orientation sample."""
        if isinstance(sample, dict):
            sample = OrientationSample.from_payload(sample)
        with self._lock:
            self._orientation = sample

    def update_pointed_signal(self, signal_strength_dbm: int) -> None:
        """Store the signal measured at the device's current pointing direction."""
        with self._lock:
            self._pointed_signal = int(signal_strength_dbm)

    def read_cells(self) -> list[CellTelemetry]:
        with self._lock:
            return list(self._cells)

    def read_location(self) -> LocationFix | None:
        with self._lock:
            return self._location

    def count_nearby_networks(self) -> int:
        with self._lock:
            return len(self._wifi)

    def current_signal_strength(self) -> int:
        with self._lock:
            for cell in self._cells:
                if cell.is_serving and cell.has_reading:
                    return cell.signal_strength_dbm
        return DEFAULT_SIGNAL_STRENGTH_DBM

    def measure_signal_at_bearing(self, bearing: float) -> int:
        # The host measures where the user points; the bearing only labels the reading
        with self._lock:
            pointed = self._pointed_signal
        if pointed is not None:
            return pointed
        return self.current_signal_strength()

    def estimate_bearing(self, cell: CellTelemetry, index: int) -> float:
        if cell.bearing_hint is not None:
            return cell.bearing_hint
        logger.debug(f"No bearing information for tower {cell.tower_identifier}, using 0°")
        return 0.0

    def read_orientation(self) -> OrientationSample:
        with self._lock:
            sample = self._orientation
        if sample is None:
            raise TelemetryError("No orientation sample has been received from the host")
        return sample

    def supports_orientation(self) -> bool:
        return True


@dataclass
class SyntheticTower:
    """Ground truth for one simulated transmitter."""

    tower_id: int
    true_bearing: float
    signal_strength: int
    raw_frequency_code: int
    is_serving: bool = False


class SyntheticTelemetrySource(TelemetrySource):
    """
    Seeded simulation of a cellular environment for tests and demos.

    Towers are spread roughly every 45° with up to 30° of random offset.
    Probing a bearing returns the strongest tower's signal modulated by the
    cosine of the angle to it.
    """

    FREQUENCY_CODES = (300, 1000, 1500, 2500, 1_850_000_000)

    def __init__(
        self,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
        tower_count: int = 4,
        wifi_count: int = 5,
        location: GeoCoordinate | None = None,
        probe_noise_db: float = 2.0,
        heading_step_deg: float = 5.0,
        compass_accuracy: float = 0.9,
    ) -> None:
        """
        Initialize the synthetic environment.

        Args:
            rng: Random generator, takes precedence over seed
            seed: Seed for a fresh generator
            tower_count: Number of simulated transmitters
            wifi_count: Number of simulated WiFi access points
            location: Simulated position fix, None for no fix
            probe_noise_db: Uniform noise amplitude added to probe readings
            heading_step_deg: Compass rotation between orientation samples
            compass_accuracy: Reported compass accuracy
        """
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.wifi_count = wifi_count
        self.location = location
        self.probe_noise_db = probe_noise_db
        self.heading_step_deg = heading_step_deg
        self.compass_accuracy = compass_accuracy
        self._heading = 0.0

        self.towers: list[SyntheticTower] = []
        for index in range(tower_count):
            self.towers.append(
                SyntheticTower(
                    tower_id=1000 + index,
                    true_bearing=normalize_bearing(index * 45 + self.rng.uniform(-30.0, 30.0)),
                    signal_strength=int(self.rng.integers(-110, -60)),
                    raw_frequency_code=self.FREQUENCY_CODES[index % len(self.FREQUENCY_CODES)],
                    is_serving=index == 0,
                )
            )

        logger.debug(f"Synthetic environment created with {tower_count} towers")

    @property
    def strongest(self) -> SyntheticTower | None:
        if not self.towers:
            return None
        return max(self.towers, key=lambda tower: tower.signal_strength)

    def true_bearing(self, tower_id: int) -> float:
        """Return the simulated ground-truth bearing of a tower."""
        for tower in self.towers:
            if tower.tower_id == tower_id:
                return tower.true_bearing
        raise KeyError(tower_id)

    def read_cells(self) -> list[CellTelemetry]:
        return [
            CellTelemetry(
                signal_strength_dbm=tower.signal_strength,
                raw_frequency_code=tower.raw_frequency_code,
                tower_identifier=tower.tower_id,
                is_serving=tower.is_serving,
                technology="LTE",
            )
            for tower in self.towers
        ]

    def read_location(self) -> LocationFix | None:
        if self.location is None:
            return None
        return LocationFix(latitude=self.location.latitude, longitude=self.location.longitude)

    def count_nearby_networks(self) -> int:
        return self.wifi_count

    def current_signal_strength(self) -> int:
        strongest = self.strongest
        if strongest is None:
            return DEFAULT_SIGNAL_STRENGTH_DBM
        return strongest.signal_strength

    def measure_signal_at_bearing(self, bearing: float) -> int:
        strongest = self.strongest
        if strongest is None:
            return DEFAULT_SIGNAL_STRENGTH_DBM

        angle = math.radians(bearing - strongest.true_bearing)
        noise = self.rng.uniform(-self.probe_noise_db, self.probe_noise_db) if self.probe_noise_db else 0.0
        return int(round(strongest.signal_strength + math.cos(angle) * PROBE_SWING_DB + noise))

    def estimate_bearing(self, cell: CellTelemetry, index: int) -> float:
        try:
            return self.true_bearing(cell.tower_identifier)
        except KeyError:
            return normalize_bearing(index * 45 + self.rng.uniform(-30.0, 30.0))

    def read_orientation(self) -> OrientationSample:
        sample = OrientationSample(
            accelerometer=(
                float(self.rng.normal(0.0, 0.05)),
                float(self.rng.normal(0.0, 0.05)),
                9.8,
            ),
            gyroscope=(0.0, 0.0, math.radians(self.heading_step_deg)),
            compass_bearing_deg=self._heading,
            compass_accuracy=self.compass_accuracy,
        )
        self._heading = normalize_bearing(self._heading + self.heading_step_deg)
        return sample

    def supports_orientation(self) -> bool:
        return True


def create_telemetry_source(
    config: DevelopmentConfig | None = None, seed: int | None = None
) -> TelemetrySource:
    """Build the source selected by DEV_SYNTHETIC_TELEMETRY."""
    config = config or get_config().development
    if config.DEV_SYNTHETIC_TELEMETRY:
        logger.info(f"Using synthetic telemetry (seed={seed})")
        return SyntheticTelemetrySource(seed=seed)
    return HostTelemetrySource()
