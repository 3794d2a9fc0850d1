"""
Test suite for bearing, great-circle distance and path-loss math.

Test Requirements:
- Bearings are normalized into [0, 360)
- Bearing differences fall in (-180, 180] and pick the short way round
- Path-loss distances are clamped to the tower range
- Non-positive frequencies return the default distance
"""

import math

import pytest

from src.tower_finder.core.config import GeodesyConfig
from src.tower_finder.models.schemas import GeoCoordinate
from src.tower_finder.utils.geodesy import (
    EARTH_RADIUS_M,
    bearing_difference,
    calculate_bearing,
    clamp_distance,
    estimate_distance_from_signal,
    haversine_distance,
    normalize_bearing,
)

ORIGIN = GeoCoordinate(0.0, 0.0)


def fspl_distance_m(signal_dbm: float, frequency_mhz: float) -> float:
    """Reference inversion of FSPL(dB) = 20log10(d_km) + 20log10(f_MHz) + 32.45."""
    return 10 ** ((abs(signal_dbm) - 20 * math.log10(frequency_mhz) - 32.45) / 20) * 1000


class TestNormalizeBearing:
    """Test bearing normalization."""

    @pytest.mark.parametrize(
        "raw,expected",
        [(0.0, 0.0), (360.0, 0.0), (370.0, 10.0), (-10.0, 350.0), (-370.0, 350.0), (719.5, 359.5)],
    )
    def test_normalizes_into_range(self, raw: float, expected: float) -> None:
        assert normalize_bearing(raw) == pytest.approx(expected)

    def test_tiny_negative_does_not_return_360(self) -> None:
        """Rounding of tiny negatives must not produce 360.0."""
        result = normalize_bearing(-1e-15)
        assert 0.0 <= result < 360.0


class TestCalculateBearing:
    """Test initial great-circle bearing."""

    @pytest.mark.parametrize(
        "target,expected",
        [
            (GeoCoordinate(1.0, 0.0), 0.0),
            (GeoCoordinate(0.0, 1.0), 90.0),
            (GeoCoordinate(-1.0, 0.0), 180.0),
            (GeoCoordinate(0.0, -1.0), 270.0),
        ],
    )
    def test_cardinal_directions(self, target: GeoCoordinate, expected: float) -> None:
        assert calculate_bearing(ORIGIN, target) == pytest.approx(expected, abs=1e-9)

    def test_northeast_is_between_north_and_east(self) -> None:
        bearing = calculate_bearing(ORIGIN, GeoCoordinate(1.0, 1.0))
        assert 40.0 < bearing < 50.0


class TestHaversineDistance:
    """Test great-circle distance."""

    def test_one_degree_of_longitude_at_equator(self) -> None:
        distance = haversine_distance(ORIGIN, GeoCoordinate(0.0, 1.0))
        assert distance == pytest.approx(EARTH_RADIUS_M * math.radians(1.0))

    def test_same_point_is_zero(self) -> None:
        point = GeoCoordinate(41.0082, 28.9784)
        assert haversine_distance(point, point) == 0.0

    def test_antipodal_points(self) -> None:
        distance = haversine_distance(GeoCoordinate(0.0, 0.0), GeoCoordinate(0.0, 180.0))
        assert distance == pytest.approx(math.pi * EARTH_RADIUS_M)


class TestBearingDifference:
    """Test signed turn calculation."""

    def test_short_way_round_to_the_left(self) -> None:
        """Target 350°, heading 10° is a 20° left turn, not 340° right."""
        assert bearing_difference(350.0, 10.0) == pytest.approx(-20.0)

    def test_short_way_round_to_the_right(self) -> None:
        assert bearing_difference(10.0, 350.0) == pytest.approx(20.0)

    def test_opposite_direction_is_positive_180(self) -> None:
        assert bearing_difference(0.0, 180.0) == 180.0
        assert bearing_difference(180.0, 0.0) == 180.0

    def test_unnormalized_inputs(self) -> None:
        assert bearing_difference(-10.0, 730.0) == pytest.approx(-20.0)


class TestEstimateDistanceFromSignal:
    """Test free-space path-loss inversion."""

    def test_minus_80_dbm_at_1800_mhz(self, geodesy_config: GeodesyConfig) -> None:
        """-80 dBm on a 1800 MHz channel code gives the FSPL distance."""
        distance = estimate_distance_from_signal(-80, 1500, geodesy_config)

        assert 100.0 <= distance <= 35000.0
        assert distance == pytest.approx(fspl_distance_m(-80, 1800.0))
        assert estimate_distance_from_signal(-80, 1500, geodesy_config) == distance

    def test_absolute_frequency_in_hz(self, geodesy_config: GeodesyConfig) -> None:
        distance = estimate_distance_from_signal(-120, 1_800_000_000, geodesy_config)
        assert distance == pytest.approx(fspl_distance_m(-120, 1800.0))

    def test_weak_signal_clamps_to_max(self, geodesy_config: GeodesyConfig) -> None:
        assert estimate_distance_from_signal(-150, 1500, geodesy_config) == 35000.0

    def test_strong_signal_clamps_to_min(self, geodesy_config: GeodesyConfig) -> None:
        assert estimate_distance_from_signal(-40, 1500, geodesy_config) == 100.0

    @pytest.mark.parametrize("frequency", [0, -1, -1_800_000_000])
    def test_non_positive_frequency_returns_default(
        self, frequency: int, geodesy_config: GeodesyConfig
    ) -> None:
        assert estimate_distance_from_signal(-80, frequency, geodesy_config) == 1000.0

    def test_implausible_frequency_falls_back_to_1800(self, geodesy_config: GeodesyConfig) -> None:
        """10 GHz is outside the cellular range and uses the fallback band."""
        distance = estimate_distance_from_signal(-100, 10_000_000_000, geodesy_config)
        assert distance == pytest.approx(fspl_distance_m(-100, 1800.0))

    def test_environmental_loss_shortens_distance(self) -> None:
        config = GeodesyConfig(GEODESY_ENVIRONMENTAL_LOSS_DB=10.0)
        distance = estimate_distance_from_signal(-90, 1500, config)
        assert distance == pytest.approx(fspl_distance_m(-80, 1800.0))

    def test_extreme_signal_does_not_overflow(self, geodesy_config: GeodesyConfig) -> None:
        assert estimate_distance_from_signal(-100_000, 1500, geodesy_config) == 35000.0


class TestClampDistance:
    """Test distance clamping against configured bounds."""

    def test_custom_bounds(self) -> None:
        config = GeodesyConfig(GEODESY_MIN_DISTANCE_M=50.0, GEODESY_MAX_DISTANCE_M=500.0)
        assert clamp_distance(10.0, config) == 50.0
        assert clamp_distance(1000.0, config) == 500.0
        assert clamp_distance(250.0, config) == 250.0
