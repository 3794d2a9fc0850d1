"""Data models and schemas for the tower finder core.

Computed records are plain dataclasses serialised with camelCase keys and
epoch-millisecond timestamps. Records handed in by the host application are
pydantic models so that numeric ranges are validated and clamped on
ingestion.
"""

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from src.tower_finder.core.exceptions import InvalidInputError
from src.tower_finder.utils.geodesy import normalize_bearing

VERTICAL_TOLERANCE_DEG = 15.0
RESTING_GRAVITY = 9.8

# Range every TowerObservation distance is held to
MIN_OBSERVATION_DISTANCE_M = 100.0
MAX_OBSERVATION_DISTANCE_M = 35000.0


def to_epoch_ms(timestamp: datetime) -> int:
    """Convert a datetime to epoch milliseconds."""
    return int(timestamp.timestamp() * 1000)


def from_epoch_ms(value: int | None) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime (now if missing)."""
    if value is None:
        return datetime.now(UTC)
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def _clamp_unit(value: float) -> float:
    # NaN reads as the lowest value
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


class QualityTier(str, Enum):
    """Overall RF environment quality tiers."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


class NavigationInstruction(str, Enum):
    """Discrete turn guidance classes."""

    ON_TARGET = "ON_TARGET"
    NEAR_TARGET = "NEAR_TARGET"
    HARD_RIGHT = "HARD_RIGHT"
    RIGHT = "RIGHT"
    SLIGHT_RIGHT = "SLIGHT_RIGHT"
    HARD_LEFT = "HARD_LEFT"
    LEFT = "LEFT"
    SLIGHT_LEFT = "SLIGHT_LEFT"
    CENTERED = "CENTERED"


@dataclass(frozen=True)
class GeoCoordinate:
    """Geographic position in degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class TowerObservation:
    """One transmitter as seen in a single telemetry read."""

    bearing: float  # degrees [0, 360)
    distance: float  # meters [100, 35000]
    confidence: float  # 0.0-1.0
    signal_strength: int  # dBm
    tower_id: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "bearing", normalize_bearing(self.bearing))
        object.__setattr__(
            self,
            "distance",
            max(MIN_OBSERVATION_DISTANCE_M, min(MAX_OBSERVATION_DISTANCE_M, self.distance)),
        )
        object.__setattr__(self, "confidence", _clamp_unit(self.confidence))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "bearing": self.bearing,
            "distance": self.distance,
            "confidence": self.confidence,
            "signalStrength": self.signal_strength,
            "towerId": self.tower_id,
            "timestamp": to_epoch_ms(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TowerObservation":
        """Build from a dictionary, defaulting missing keys."""
        return cls(
            bearing=float(data.get("bearing", 0.0)),
            distance=float(data.get("distance", 0.0)),
            confidence=float(data.get("confidence", 0.0)),
            signal_strength=int(data.get("signalStrength", 0)),
            tower_id=int(data.get("towerId", 0)),
            timestamp=from_epoch_ms(data.get("timestamp")),
        )

    def __str__(self) -> str:
        return f"TowerObservation({self.bearing:.1f}°, {self.distance:.0f}m, {self.signal_strength}dBm)"


@dataclass(frozen=True)
class SignalPattern:
    """Directional signal statistics over a batch of (bearing, strength) samples."""

    signal_strengths: tuple[int, ...]
    bearings: tuple[float, ...]
    peak_bearing: float
    peak_strength: int
    directionality_index: float  # std-dev / |mean| of strengths
    quality: float  # 0.0-1.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "signalStrengths": list(self.signal_strengths),
            "bearings": list(self.bearings),
            "peakBearing": self.peak_bearing,
            "peakStrength": self.peak_strength,
            "directionalityIndex": self.directionality_index,
            "quality": self.quality,
        }


@dataclass(frozen=True)
class EnvironmentAnalysis:
    """Snapshot of the RF environment at the device location."""

    nearby_towers: tuple[TowerObservation, ...]
    signal_pattern: SignalPattern
    optimal_bearing: float
    signal_to_noise_ratio: float
    interference_level: float
    environment_quality: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def strongest_tower(self) -> TowerObservation | None:
        """Tower with the highest signal strength (first one on ties)."""
        if not self.nearby_towers:
            return None
        strongest = self.nearby_towers[0]
        for tower in self.nearby_towers[1:]:
            if tower.signal_strength > strongest.signal_strength:
                strongest = tower
        return strongest

    @property
    def towers_by_strength(self) -> list[TowerObservation]:
        """Towers sorted strongest first, stable on ties."""
        return sorted(self.nearby_towers, key=lambda tower: -tower.signal_strength)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "nearbyTowers": [tower.to_dict() for tower in self.nearby_towers],
            "signalPattern": self.signal_pattern.to_dict(),
            "optimalBearing": self.optimal_bearing,
            "signalToNoiseRatio": self.signal_to_noise_ratio,
            "interferenceLevel": self.interference_level,
            "environmentQuality": self.environment_quality,
            "timestamp": to_epoch_ms(self.timestamp),
        }


@dataclass(frozen=True)
class OptimizationReport:
    """Ranked signal improvement advice derived from one analysis."""

    current_quality: QualityTier
    recommendations: tuple[str, ...]
    optimal_orientation: float | None
    estimated_improvement_db: int
    technical_details: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "currentQuality": self.current_quality.value,
            "recommendations": list(self.recommendations),
            "optimalOrientation": self.optimal_orientation,
            "estimatedImprovement": self.estimated_improvement_db,
            "technicalDetails": dict(self.technical_details),
            "timestamp": to_epoch_ms(self.timestamp),
        }


@dataclass(frozen=True)
class DeviceOrientation:
    """Device attitude derived from one sensor sample."""

    tilt_angle: float  # degrees from vertical
    compass_bearing: float  # degrees [0, 360)
    rotation_x: float
    rotation_y: float
    rotation_z: float
    accelerometer_x: float
    accelerometer_y: float
    accelerometer_z: float
    is_vertical: bool
    compass_accuracy: float  # 0.0-1.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_sensor_data(
        cls,
        accelerometer: tuple[float, float, float] | list[float],
        gyroscope: tuple[float, float, float] | list[float],
        compass: float,
        compass_accuracy: float,
        timestamp: datetime | None = None,
    ) -> "DeviceOrientation":
        """Build an orientation from raw 3-axis readings and a compass bearing."""
        if len(accelerometer) != 3 or len(gyroscope) != 3:
            raise InvalidInputError("Accelerometer and gyroscope readings need exactly 3 axes")

        ax, ay, az = (float(v) for v in accelerometer)
        gx, gy, gz = (float(v) for v in gyroscope)
        tilt_angle = cls._calculate_tilt_angle(ax, ay, az)

        return cls(
            tilt_angle=tilt_angle,
            compass_bearing=normalize_bearing(compass),
            rotation_x=gx,
            rotation_y=gy,
            rotation_z=gz,
            accelerometer_x=ax,
            accelerometer_y=ay,
            accelerometer_z=az,
            is_vertical=tilt_angle < VERTICAL_TOLERANCE_DEG,
            compass_accuracy=_clamp_unit(compass_accuracy),
            timestamp=timestamp or datetime.now(UTC),
        )

    @classmethod
    def resting(cls) -> "DeviceOrientation":
        """Orientation of a device lying still, used before the first sample."""
        return cls.from_sensor_data(
            accelerometer=(0.0, 0.0, RESTING_GRAVITY),
            gyroscope=(0.0, 0.0, 0.0),
            compass=0.0,
            compass_accuracy=0.0,
        )

    @staticmethod
    def _calculate_tilt_angle(x: float, y: float, z: float) -> float:
        magnitude = math.sqrt(x * x + y * y + z * z)
        if magnitude == 0.0:
            # Free fall or a dead sensor: attitude is unknown
            return 90.0
        normalized_z = min(1.0, abs(z) / magnitude)
        return math.degrees(math.acos(normalized_z))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tiltAngle": self.tilt_angle,
            "compassBearing": self.compass_bearing,
            "rotationX": self.rotation_x,
            "rotationY": self.rotation_y,
            "rotationZ": self.rotation_z,
            "accelerometerX": self.accelerometer_x,
            "accelerometerY": self.accelerometer_y,
            "accelerometerZ": self.accelerometer_z,
            "isVertical": self.is_vertical,
            "compassAccuracy": self.compass_accuracy,
            "timestamp": to_epoch_ms(self.timestamp),
        }


@dataclass(frozen=True)
class TowerDirection:
    """Turn guidance towards one tower for a single orientation tick."""

    target_bearing: float
    current_bearing: float
    bearing_difference: float  # (-180, 180], positive means turn right
    distance: float
    signal_strength: int
    tower_id: int
    is_on_target: bool
    confidence: float
    instruction: str
    instruction_kind: NavigationInstruction

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "targetBearing": self.target_bearing,
            "currentBearing": self.current_bearing,
            "bearingDifference": self.bearing_difference,
            "distance": self.distance,
            "signalStrength": self.signal_strength,
            "towerId": self.tower_id,
            "isOnTarget": self.is_on_target,
            "confidence": self.confidence,
            "instruction": self.instruction,
        }


@dataclass
class NavigationSession:
    """Mutable state of one navigation session."""

    is_active: bool
    device_orientation: DeviceOrientation
    tower_direction: TowerDirection | None = None
    session_duration: timedelta = timedelta(0)
    towers_found: int = 0
    status: str = "Navigation ready"
    needs_calibration: bool = True

    @classmethod
    def initial(cls) -> "NavigationSession":
        """Session state before the first start()."""
        return cls(is_active=False, device_orientation=DeviceOrientation.resting())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "isActive": self.is_active,
            "deviceOrientation": self.device_orientation.to_dict(),
            "towerDirection": self.tower_direction.to_dict() if self.tower_direction else None,
            "sessionDuration": int(self.session_duration.total_seconds() * 1000),
            "towersFound": self.towers_found,
            "status": self.status,
            "needsCalibration": self.needs_calibration,
        }


@dataclass(frozen=True)
class Calibration:
    """Compass calibration record."""

    compass_offset: float  # degrees, subtracted from raw compass bearings
    bearing_correlation: float  # -1.0-1.0
    calibration_points: int
    accuracy: float  # 0.0-1.0
    calibration_time: datetime
    is_valid: bool

    @classmethod
    def empty(cls) -> "Calibration":
        """Placeholder used until a calibration has been recorded."""
        return cls(
            compass_offset=0.0,
            bearing_correlation=0.0,
            calibration_points=0,
            accuracy=0.0,
            calibration_time=datetime.now(UTC),
            is_valid=False,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "compassOffset": self.compass_offset,
            "bearingCorrelation": self.bearing_correlation,
            "calibrationPoints": self.calibration_points,
            "accuracy": self.accuracy,
            "calibrationTime": to_epoch_ms(self.calibration_time),
            "isValid": self.is_valid,
        }


# Host-supplied telemetry records


class TelemetryRecord(BaseModel):
    """Base for host-supplied records: camelCase payloads, immutable once parsed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]):
        """Parse a host payload, reporting validation failures as InvalidInputError."""
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid {cls.__name__} payload: {e}") from e


class CellTelemetry(TelemetryRecord):
    """One cell from a platform cellular scan."""

    signal_strength_dbm: int
    raw_frequency_code: int = Field(default=0, ge=0)
    tower_identifier: int
    is_serving: bool = False
    technology: str = "Unknown"
    pci: int | None = None
    tac: int | None = None
    rsrp: int | None = None
    rsrq: int | None = None
    sinr: int | None = None
    tower_latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    tower_longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    bearing_hint: float | None = None

    @field_validator("signal_strength_dbm")
    @classmethod
    def _clamp_signal(cls, value: int) -> int:
        # 0 is the platform's "no reading" marker and is kept as-is
        if value == 0:
            return 0
        return max(-150, min(-1, value))

    @field_validator("bearing_hint")
    @classmethod
    def _wrap_bearing_hint(cls, value: float | None) -> float | None:
        return None if value is None else normalize_bearing(value)

    @property
    def has_reading(self) -> bool:
        return self.signal_strength_dbm != 0

    @property
    def tower_location(self) -> GeoCoordinate | None:
        if self.tower_latitude is None or self.tower_longitude is None:
            return None
        return GeoCoordinate(self.tower_latitude, self.tower_longitude)


class LocationFix(TelemetryRecord):
    """Device position fix."""

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def to_coordinate(self) -> GeoCoordinate:
        return GeoCoordinate(self.latitude, self.longitude)


class OrientationSample(TelemetryRecord):
    """Raw orientation sensor sample delivered once per tick."""

    accelerometer: tuple[float, float, float]
    gyroscope: tuple[float, float, float]
    compass_bearing_deg: float
    compass_accuracy: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("compass_bearing_deg")
    @classmethod
    def _wrap_compass(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("compass bearing must be finite")
        return normalize_bearing(value)

    @field_validator("compass_accuracy")
    @classmethod
    def _clamp_accuracy(cls, value: float) -> float:
        return _clamp_unit(value)

    def to_orientation(self) -> DeviceOrientation:
        return DeviceOrientation.from_sensor_data(
            accelerometer=self.accelerometer,
            gyroscope=self.gyroscope,
            compass=self.compass_bearing_deg,
            compass_accuracy=self.compass_accuracy,
            timestamp=self.timestamp,
        )


class WifiTelemetry(TelemetryRecord):
    """One access point from a WiFi scan."""

    ssid: str = "unknown"
    signal_strength_dbm: int = 0
    frequency_mhz: int = 0
    bssid: str | None = None
    channel: int | None = None
