"""Bearing, great-circle distance and path-loss distance math.

Every component that needs bearings or distances imports them from here.
"""

import math
from typing import TYPE_CHECKING

from src.tower_finder.core.config import GeodesyConfig, get_config
from src.tower_finder.utils.logging import get_logger
from src.tower_finder.utils.rf_bands import normalize_frequency_mhz

if TYPE_CHECKING:
    from src.tower_finder.models.schemas import GeoCoordinate

logger = get_logger(__name__)

EARTH_RADIUS_M = 6371000
FSPL_CONSTANT_DB = 32.45

# 10**10 km is far outside any clamp range and keeps pow() finite
MAX_LOG_DISTANCE_EXPONENT = 10.0


def normalize_bearing(bearing: float) -> float:
    """Normalize a bearing into [0, 360)."""
    result = (bearing + 360.0) % 360.0
    return 0.0 if result >= 360.0 else result


def calculate_bearing(origin: "GeoCoordinate", target: "GeoCoordinate") -> float:
    """Initial great-circle bearing from origin to target in degrees [0, 360)."""
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    delta_lon = math.radians(target.longitude - origin.longitude)

    y = math.sin(delta_lon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(delta_lon)

    return normalize_bearing(math.degrees(math.atan2(y, x)))


def haversine_distance(origin: "GeoCoordinate", target: "GeoCoordinate") -> float:
    """Calculate distance between two coordinates in meters."""
    phi1 = math.radians(origin.latitude)
    phi2 = math.radians(target.latitude)
    delta_phi = math.radians(target.latitude - origin.latitude)
    delta_lambda = math.radians(target.longitude - origin.longitude)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    # Rounding can push a marginally outside [0, 1] for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def bearing_difference(target_bearing: float, current_bearing: float) -> float:
    """Signed turn from current to target bearing in (-180, 180].

    Positive values mean turn right (clockwise).
    """
    diff = normalize_bearing(target_bearing) - normalize_bearing(current_bearing)
    while diff > 180.0:
        diff -= 360.0
    while diff <= -180.0:
        diff += 360.0
    return diff


def clamp_distance(distance_m: float, config: GeodesyConfig | None = None) -> float:
    """Clamp a distance to the plausible cell tower range."""
    config = config or get_config().geodesy
    return max(config.GEODESY_MIN_DISTANCE_M, min(config.GEODESY_MAX_DISTANCE_M, distance_m))


def estimate_distance_from_signal(
    signal_strength_dbm: float,
    frequency: float,
    config: GeodesyConfig | None = None,
) -> float:
    """
    Estimate tower distance by inverting free-space path loss.

    FSPL(dB) = 20*log10(d_km) + 20*log10(f_MHz) + 32.45, with the path loss
    taken as |signal| minus any configured environmental loss.

    Args:
        signal_strength_dbm: Received signal strength in dBm
        frequency: Raw carrier value (channel code or Hz)
        config: Geodesy configuration section

    Returns:
        Estimated distance in meters, clamped to the configured range
    """
    config = config or get_config().geodesy

    if frequency <= 0:
        return config.GEODESY_DEFAULT_DISTANCE_M

    frequency_mhz = normalize_frequency_mhz(frequency, config.GEODESY_FALLBACK_FREQUENCY_MHZ)
    path_loss_db = abs(signal_strength_dbm) - config.GEODESY_ENVIRONMENTAL_LOSS_DB

    exponent = (path_loss_db - 20 * math.log10(frequency_mhz) - FSPL_CONSTANT_DB) / 20
    exponent = max(-MAX_LOG_DISTANCE_EXPONENT, min(MAX_LOG_DISTANCE_EXPONENT, exponent))
    distance_m = (10**exponent) * 1000

    clamped = clamp_distance(distance_m, config)
    if clamped != distance_m:
        logger.debug(
            f"Path-loss distance {distance_m:.1f}m clamped to {clamped:.1f}m "
            f"({signal_strength_dbm}dBm @ {frequency_mhz:.0f}MHz)"
        )
    return clamped
