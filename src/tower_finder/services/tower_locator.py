"""Conversion of one telemetry read into tower observations."""

from src.tower_finder.core.config import GeodesyConfig, get_config
from src.tower_finder.models.schemas import CellTelemetry, LocationFix, TowerObservation
from src.tower_finder.services.telemetry_source import TelemetrySource
from src.tower_finder.utils.geodesy import (
    calculate_bearing,
    clamp_distance,
    estimate_distance_from_signal,
    haversine_distance,
)
from src.tower_finder.utils.logging import get_logger
from src.tower_finder.utils.rf_bands import distance_tier_score, signal_tier_score

logger = get_logger(__name__)

# Distance at which the proximity bonus of best_tower() reaches zero
BEST_TOWER_REFERENCE_DISTANCE_M = 10000.0


def observation_confidence(signal_strength_dbm: float, distance_m: float) -> float:
    """Average of the coarse signal and distance tier scores."""
    return (signal_tier_score(signal_strength_dbm) + distance_tier_score(distance_m)) / 2


class TowerLocator:
    """Builds TowerObservation records from a TelemetrySource."""

    def __init__(self, config: GeodesyConfig | None = None) -> None:
        self.config = config or get_config().geodesy

    def locate(self, source: TelemetrySource) -> list[TowerObservation]:
        """
        Read the source once and return one observation per tower.

        Cells without a signal reading are skipped. Duplicate tower ids keep
        the strongest reading.

        Args:
            source: Telemetry source to read

        Returns:
            Observations in scan order of first appearance
        """
        cells = source.read_cells()
        location = source.read_location()

        by_tower: dict[int, TowerObservation] = {}
        for index, cell in enumerate(cells):
            if not cell.has_reading:
                logger.debug(f"Skipping tower {cell.tower_identifier}: no signal reading")
                continue

            observation = self.observe(cell, index, location, source)
            existing = by_tower.get(observation.tower_id)
            if existing is None or observation.signal_strength > existing.signal_strength:
                by_tower[observation.tower_id] = observation

        if not by_tower:
            logger.warning("Telemetry source reported no usable towers")

        return list(by_tower.values())

    def observe(
        self,
        cell: CellTelemetry,
        index: int,
        location: LocationFix | None,
        source: TelemetrySource,
    ) -> TowerObservation:
        """Build one observation for a cell."""
        tower_location = cell.tower_location

        if tower_location is not None:
            if location is None:
                bearing = 0.0
                distance = estimate_distance_from_signal(
                    cell.signal_strength_dbm, cell.raw_frequency_code, self.config
                )
            else:
                origin = location.to_coordinate()
                bearing = calculate_bearing(origin, tower_location)
                distance = clamp_distance(haversine_distance(origin, tower_location), self.config)
        else:
            bearing = source.estimate_bearing(cell, index)
            distance = estimate_distance_from_signal(
                cell.signal_strength_dbm, cell.raw_frequency_code, self.config
            )

        return TowerObservation(
            bearing=bearing,
            distance=distance,
            confidence=observation_confidence(cell.signal_strength_dbm, distance),
            signal_strength=cell.signal_strength_dbm,
            tower_id=cell.tower_identifier,
        )

    def serving_tower(
        self, source: TelemetrySource, observations: list[TowerObservation]
    ) -> TowerObservation | None:
        """Return the observation of the cell the device is registered to."""
        serving_ids = {cell.tower_identifier for cell in source.read_cells() if cell.is_serving}
        for observation in observations:
            if observation.tower_id in serving_ids:
                return observation
        return None


def best_tower(observations: list[TowerObservation]) -> TowerObservation | None:
    """Pick the tower balancing signal strength against proximity."""
    if not observations:
        return None
    return max(
        observations,
        key=lambda o: o.signal_strength + (BEST_TOWER_REFERENCE_DISTANCE_M - o.distance) / 100,
    )


def strongest_tower_bearing(observations: list[TowerObservation]) -> float | None:
    """Bearing of the strongest tower, None when there are no towers."""
    if not observations:
        return None
    strongest = observations[0]
    for observation in observations[1:]:
        if observation.signal_strength > strongest.signal_strength:
            strongest = observation
    return strongest.bearing
