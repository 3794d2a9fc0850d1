"""Property-based tests for bearing, distance and pattern invariants.

TEST VALUE: Every downstream component assumes bearings in [0, 360),
differences in (-180, 180] and distances inside the tower range. These
tests hold those contracts over the whole input space.
"""

import math

import hypothesis.strategies as st
from hypothesis import given

from src.tower_finder.core.config import GeodesyConfig
from src.tower_finder.services.signal_pattern_analyzer import SignalPatternAnalyzer
from src.tower_finder.utils.geodesy import (
    bearing_difference,
    calculate_bearing,
    estimate_distance_from_signal,
    haversine_distance,
    normalize_bearing,
)
from tests.property.strategies import (
    any_bearings,
    bearings,
    coordinates,
    measurement_batches,
    raw_frequencies,
    signal_strengths,
)

GEODESY = GeodesyConfig()


class TestGeodesyInvariants:
    """Property tests for GeodesyMath."""

    @given(a=coordinates, b=coordinates)
    def test_bearing_in_range(self, a, b) -> None:
        """Initial bearing is always normalized."""
        result = calculate_bearing(a, b)
        assert 0.0 <= result < 360.0

    @given(a=coordinates, b=coordinates)
    def test_distance_non_negative(self, a, b) -> None:
        """Great-circle distance is never negative or NaN."""
        result = haversine_distance(a, b)
        assert result >= 0.0
        assert not math.isnan(result)

    @given(a=coordinates)
    def test_distance_to_self_is_zero(self, a) -> None:
        assert haversine_distance(a, a) == 0.0

    @given(a=coordinates, b=coordinates)
    def test_distance_symmetric(self, a, b) -> None:
        assert math.isclose(haversine_distance(a, b), haversine_distance(b, a), abs_tol=1e-6)

    @given(bearing=any_bearings)
    def test_normalize_bearing_range(self, bearing: float) -> None:
        assert 0.0 <= normalize_bearing(bearing) < 360.0

    @given(signal=signal_strengths, frequency=raw_frequencies)
    def test_path_loss_distance_clamped(self, signal: int, frequency: float) -> None:
        """Path-loss inversion always lands inside the tower distance range."""
        distance = estimate_distance_from_signal(signal, frequency, GEODESY)
        assert 100.0 <= distance <= 35000.0

    @given(signal=st.integers(min_value=-10_000, max_value=10_000), frequency=raw_frequencies)
    def test_path_loss_distance_clamped_for_out_of_range_signal(self, signal: int, frequency: float) -> None:
        distance = estimate_distance_from_signal(signal, frequency, GEODESY)
        assert 100.0 <= distance <= 35000.0


class TestBearingDifferenceInvariants:
    """Property tests for turn direction normalization."""

    @given(target=bearings, current=bearings)
    def test_difference_half_open_range(self, target: float, current: float) -> None:
        diff = bearing_difference(target, current)
        assert -180.0 < diff <= 180.0

    @given(target=any_bearings, current=any_bearings)
    def test_difference_range_for_unnormalized_inputs(self, target: float, current: float) -> None:
        diff = bearing_difference(target, current)
        assert -180.0 < diff <= 180.0

    @given(target=bearings, current=bearings)
    def test_difference_points_at_target(self, target: float, current: float) -> None:
        """Turning by the difference from current reaches the target."""
        diff = bearing_difference(target, current)
        reached = normalize_bearing(current + diff)
        gap = abs(reached - target)
        assert min(gap, 360.0 - gap) < 1e-6


class TestSignalPatternInvariants:
    """Property tests for SignalPatternAnalyzer."""

    @given(batch=measurement_batches())
    def test_quality_in_unit_interval(self, batch) -> None:
        strengths, probed = batch
        pattern = SignalPatternAnalyzer.from_measurements(strengths, probed)
        assert 0.0 <= pattern.quality <= 1.0
        assert pattern.directionality_index >= 0.0

    @given(batch=measurement_batches())
    def test_peak_is_first_maximum(self, batch) -> None:
        strengths, probed = batch
        pattern = SignalPatternAnalyzer.from_measurements(strengths, probed)
        assert pattern.peak_strength == max(strengths)
        first_index = strengths.index(max(strengths))
        assert pattern.peak_bearing == normalize_bearing(probed[first_index])

    @given(batch=measurement_batches())
    def test_sequences_stay_parallel(self, batch) -> None:
        strengths, probed = batch
        pattern = SignalPatternAnalyzer.from_measurements(strengths, probed)
        assert len(pattern.signal_strengths) == len(pattern.bearings) == len(strengths)
