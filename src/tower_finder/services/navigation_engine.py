"""
Real-time navigation towards a chosen tower.

The engine is driven by orientation samples at roughly 10 Hz. All session
state is replaced under a single lock, so a tick racing with stop() either
completes against the pre-stop state or is discarded.
"""

import math
import threading
import uuid
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from enum import Enum

from src.tower_finder.core.config import NavigationConfig, get_config
from src.tower_finder.core.exceptions import (
    CalibrationError,
    InvalidInputError,
    StateTransitionError,
)
from src.tower_finder.models.schemas import (
    Calibration,
    DeviceOrientation,
    EnvironmentAnalysis,
    NavigationInstruction,
    NavigationSession,
    OrientationSample,
    TowerDirection,
    TowerObservation,
)
from src.tower_finder.services.telemetry_source import TelemetrySource
from src.tower_finder.utils.geodesy import bearing_difference, normalize_bearing
from src.tower_finder.utils.logging import (
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    log_info,
    log_warning,
    set_correlation_id,
)

logger = get_logger(__name__)

NEAR_TARGET_DEG = 5.0
HARD_TURN_DEG = 45.0
TURN_DEG = 15.0
SLIGHT_TURN_DEG = 5.0

CONFIDENCE_REFERENCE_DISTANCE_M = 10000.0
CONFIDENCE_SIGNAL_FLOOR_DBM = -120
CONFIDENCE_SIGNAL_SPAN_DB = 50.0

# Calibration recorded when no reference bearings are available
DEFAULT_CALIBRATION_CORRELATION = 1.0
DEFAULT_CALIBRATION_ACCURACY = 0.8


class NavigationState(str, Enum):
    """Navigation engine states."""

    IDLE = "IDLE"
    ACTIVE = "ACTIVE"


def classify_instruction(difference: float, is_on_target: bool) -> tuple[NavigationInstruction, str]:
    """Map a signed bearing difference to a turn instruction.

    Right and left bands use the same cut points mirrored around zero.
    """
    if is_on_target:
        return NavigationInstruction.ON_TARGET, "Target found!"
    if abs(difference) < NEAR_TARGET_DEG:
        return NavigationInstruction.NEAR_TARGET, "Very close! A little more..."
    if difference > HARD_TURN_DEG:
        return NavigationInstruction.HARD_RIGHT, f"Turn hard right: {difference:.0f}°"
    if difference > TURN_DEG:
        return NavigationInstruction.RIGHT, f"Turn right: {difference:.0f}°"
    if difference > SLIGHT_TURN_DEG:
        return NavigationInstruction.SLIGHT_RIGHT, f"Slight right: {difference:.0f}°"
    if difference < -HARD_TURN_DEG:
        return NavigationInstruction.HARD_LEFT, f"Turn hard left: {-difference:.0f}°"
    if difference < -TURN_DEG:
        return NavigationInstruction.LEFT, f"Turn left: {-difference:.0f}°"
    if difference < -SLIGHT_TURN_DEG:
        return NavigationInstruction.SLIGHT_LEFT, f"Slight left: {-difference:.0f}°"
    return NavigationInstruction.CENTERED, "On target!"


def direction_confidence(distance: float, signal_strength: int) -> float:
    """Confidence in a direction from tower distance and signal strength."""
    distance_score = max(0.0, 1.0 - distance / CONFIDENCE_REFERENCE_DISTANCE_M)
    signal_score = max(0.0, (signal_strength - CONFIDENCE_SIGNAL_FLOOR_DBM) / CONFIDENCE_SIGNAL_SPAN_DB)
    return min(1.0, (distance_score + signal_score) / 2.0)


def compute_tower_direction(
    target_bearing: float,
    current_bearing: float,
    distance: float,
    signal_strength: int,
    tower_id: int,
    tolerance: float = 10.0,
) -> TowerDirection:
    """
    Compute turn guidance for one orientation tick.

    Args:
        target_bearing: Bearing to the tower in degrees
        current_bearing: Corrected compass bearing of the device
        distance: Distance to the tower in meters
        signal_strength: Tower signal strength in dBm
        tower_id: Tower identifier
        tolerance: Maximum |difference| counted as on target

    Returns:
        TowerDirection for this tick
    """
    difference = bearing_difference(target_bearing, current_bearing)
    is_on_target = abs(difference) <= tolerance
    kind, instruction = classify_instruction(difference, is_on_target)

    return TowerDirection(
        target_bearing=normalize_bearing(target_bearing),
        current_bearing=normalize_bearing(current_bearing),
        bearing_difference=difference,
        distance=distance,
        signal_strength=signal_strength,
        tower_id=tower_id,
        is_on_target=is_on_target,
        confidence=direction_confidence(distance, signal_strength),
        instruction=instruction,
        instruction_kind=kind,
    )


def target_from_analysis(analysis: EnvironmentAnalysis) -> TowerObservation | None:
    """Pick the navigation target of an analysis: the tower at its optimal bearing."""
    return analysis.strongest_tower


class NavigationEngine:
    """Idle/Active navigation state machine with compass calibration."""

    def __init__(self, config: NavigationConfig | None = None) -> None:
        self.config = config or get_config().navigation

        self._lock = threading.Lock()
        self._state = NavigationState.IDLE
        self._session = NavigationSession.initial()
        self._calibration: Calibration | None = None
        self._target: TowerObservation | None = None
        self._started_at: datetime | None = None
        self._found_tower_ids: set[int] = set()
        self._low_accuracy_ticks = 0
        self.session_id: str | None = None

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state == NavigationState.ACTIVE

    @property
    def tick_interval(self) -> float:
        """Seconds between orientation ticks at the configured rate."""
        return 1.0 / self.config.NAVIGATION_TICK_RATE_HZ

    @property
    def session(self) -> NavigationSession:
        """Snapshot of the current session state."""
        with self._lock:
            return replace(self._session)

    @property
    def calibration(self) -> Calibration | None:
        return self._calibration

    @property
    def target(self) -> TowerObservation | None:
        return self._target

    def set_target(self, target: TowerObservation | None) -> None:
        """Change the tower the engine steers towards."""
        with self._lock:
            self._target = target
        if target is not None:
            logger.debug(f"Navigation target set to tower {target.tower_id} at {target.bearing:.1f}°")

    def start(self, target: TowerObservation | None = None, strict: bool = False) -> NavigationSession:
        """
        Activate navigation.

        Args:
            target: Optional tower to steer towards
            strict: Raise on a redundant start instead of logging it

        Returns:
            Snapshot of the started session
        """
        with self._lock:
            if self._state == NavigationState.ACTIVE:
                if strict:
                    raise StateTransitionError("Navigation is already active")
                log_warning(logger, "Navigation already active", session_id=self.session_id)
                return replace(self._session)

            if target is not None:
                self._target = target

            self._state = NavigationState.ACTIVE
            self.session_id = str(uuid.uuid4())
            self._started_at = datetime.now(UTC)
            self._found_tower_ids = set()
            self._low_accuracy_ticks = 0

            status = (
                f"Navigating to tower {self._target.tower_id}"
                if self._target is not None
                else "Navigation active"
            )
            self._session = replace(
                self._session,
                is_active=True,
                tower_direction=None,
                session_duration=timedelta(0),
                towers_found=0,
                status=status,
                needs_calibration=not self._has_valid_calibration(),
            )
            snapshot = replace(self._session)

        set_correlation_id(self.session_id)
        log_info(
            logger,
            "Navigation started",
            session_id=self.session_id,
            target=self._target.tower_id if self._target else None,
        )
        return snapshot

    def stop(self, strict: bool = False) -> NavigationSession:
        """Deactivate navigation, keeping the last orientation and direction."""
        with self._lock:
            if self._state == NavigationState.IDLE:
                if strict:
                    raise StateTransitionError("Navigation is not active")
                log_warning(logger, "Navigation not active", session_id=self.session_id)
                return replace(self._session)

            self._state = NavigationState.IDLE
            self._session = replace(
                self._session,
                is_active=False,
                session_duration=self._elapsed(datetime.now(UTC)),
                status="Navigation stopped",
            )
            snapshot = replace(self._session)

        log_info(
            logger,
            "Navigation stopped",
            session_id=self.session_id,
            towers_found=snapshot.towers_found,
            duration_s=f"{snapshot.session_duration.total_seconds():.1f}",
        )
        if get_correlation_id() == self.session_id:
            clear_correlation_id()
        return snapshot

    def navigate_to_tower(self, tower_id: int, observations: list[TowerObservation]) -> NavigationSession:
        """
        Start navigating towards a specific tower.

        Raises:
            InvalidInputError: If tower_id is not among the observations
        """
        for observation in observations:
            if observation.tower_id == tower_id:
                if self.is_active:
                    self.set_target(observation)
                    return self.session
                return self.start(observation)
        raise InvalidInputError(f"Tower {tower_id} is not among the {len(observations)} observed towers")

    def tick(self, sample: OrientationSample | DeviceOrientation) -> TowerDirection | None:
        """
        Process one orientation sample.

        Returns:
            Direction towards the target, or None if the tick was discarded
            (engine idle) or there is no target
        """
        orientation = sample.to_orientation() if isinstance(sample, OrientationSample) else sample

        with self._lock:
            if self._state != NavigationState.ACTIVE:
                logger.debug("Discarding orientation tick while navigation is idle")
                return None

            needs_calibration = self._update_accuracy_tracking(orientation)
            current_bearing = self._corrected_bearing(orientation.compass_bearing)

            direction = None
            status = self._session.status
            if self._target is not None:
                direction = compute_tower_direction(
                    target_bearing=self._target.bearing,
                    current_bearing=current_bearing,
                    distance=self._target.distance,
                    signal_strength=self._target.signal_strength,
                    tower_id=self._target.tower_id,
                    tolerance=self.config.NAVIGATION_TOLERANCE_DEG,
                )
                if direction.is_on_target and direction.tower_id not in self._found_tower_ids:
                    self._found_tower_ids.add(direction.tower_id)
                    log_info(
                        logger,
                        "Tower found",
                        session_id=self.session_id,
                        tower_id=direction.tower_id,
                    )
                status = direction.instruction

            self._session = replace(
                self._session,
                device_orientation=orientation,
                tower_direction=direction,
                session_duration=self._elapsed(orientation.timestamp),
                towers_found=len(self._found_tower_ids),
                status=status,
                needs_calibration=needs_calibration,
            )

        if direction is not None:
            logger.debug(
                f"Tick: target {direction.target_bearing:.1f}°, current {direction.current_bearing:.1f}°, "
                f"diff {direction.bearing_difference:.1f}° -> {direction.instruction_kind.value}"
            )
        return direction

    def tick_from_source(self, source: TelemetrySource) -> TowerDirection | None:
        """Read one orientation sample from a source and process it."""
        return self.tick(source.read_orientation())

    def calibrate(self, pairs: list[tuple[float, float]] | None = None) -> Calibration:
        """
        Record a compass calibration.

        Args:
            pairs: (compass bearing, reference bearing) pairs in degrees. The
                offset is their circular mean difference. Without pairs a
                default calibration is recorded.

        Returns:
            The recorded calibration

        Raises:
            CalibrationError: If any bearing is not finite
        """
        if not pairs:
            calibration = Calibration(
                compass_offset=0.0,
                bearing_correlation=DEFAULT_CALIBRATION_CORRELATION,
                calibration_points=1,
                accuracy=DEFAULT_CALIBRATION_ACCURACY,
                calibration_time=datetime.now(UTC),
                is_valid=DEFAULT_CALIBRATION_ACCURACY >= self.config.NAVIGATION_MIN_CALIBRATION_ACCURACY,
            )
        else:
            calibration = self._calibration_from_pairs(pairs)

        with self._lock:
            self._calibration = calibration
            if calibration.is_valid:
                self._low_accuracy_ticks = 0
                self._session = replace(self._session, needs_calibration=False)

        log_info(
            logger,
            "Compass calibrated",
            session_id=self.session_id,
            offset=f"{calibration.compass_offset:.1f}",
            accuracy=f"{calibration.accuracy:.2f}",
            valid=calibration.is_valid,
        )
        return calibration

    def _calibration_from_pairs(self, pairs: list[tuple[float, float]]) -> Calibration:
        for compass, reference in pairs:
            if not (math.isfinite(compass) and math.isfinite(reference)):
                raise CalibrationError(f"Calibration bearings must be finite, got ({compass}, {reference})")

        differences = [math.radians(compass - reference) for compass, reference in pairs]
        mean_sin = sum(math.sin(d) for d in differences) / len(differences)
        mean_cos = sum(math.cos(d) for d in differences) / len(differences)
        offset = math.atan2(mean_sin, mean_cos)

        correlation = sum(math.cos(d - offset) for d in differences) / len(differences)
        correlation = max(-1.0, min(1.0, correlation))
        accuracy = max(0.0, min(1.0, correlation))

        return Calibration(
            compass_offset=math.degrees(offset),
            bearing_correlation=correlation,
            calibration_points=len(pairs),
            accuracy=accuracy,
            calibration_time=datetime.now(UTC),
            is_valid=accuracy >= self.config.NAVIGATION_MIN_CALIBRATION_ACCURACY,
        )

    def _has_valid_calibration(self) -> bool:
        return self._calibration is not None and self._calibration.is_valid

    def _corrected_bearing(self, compass_bearing: float) -> float:
        if self.config.NAVIGATION_APPLY_CALIBRATION_OFFSET and self._has_valid_calibration():
            return normalize_bearing(compass_bearing - self._calibration.compass_offset)
        return compass_bearing

    def _update_accuracy_tracking(self, orientation: DeviceOrientation) -> bool:
        needs_calibration = self._session.needs_calibration
        if orientation.compass_accuracy < self.config.NAVIGATION_LOW_ACCURACY_THRESHOLD:
            self._low_accuracy_ticks += 1
            if (
                self._low_accuracy_ticks >= self.config.NAVIGATION_LOW_ACCURACY_TICKS
                and not needs_calibration
            ):
                log_warning(
                    logger,
                    "Compass accuracy persistently low, calibration required",
                    session_id=self.session_id,
                    ticks=self._low_accuracy_ticks,
                )
                needs_calibration = True
        else:
            self._low_accuracy_ticks = 0
        return needs_calibration

    def _elapsed(self, now: datetime) -> timedelta:
        if self._started_at is None:
            return timedelta(0)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        return max(timedelta(0), now - self._started_at)
