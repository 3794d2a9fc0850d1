"""Tower hunting: recording signal strength against probed bearings."""

import threading
import uuid
from collections import deque
from enum import Enum

from src.tower_finder.core.config import HuntingConfig, get_config
from src.tower_finder.core.exceptions import InvalidInputError, StateTransitionError
from src.tower_finder.models.schemas import SignalPattern
from src.tower_finder.services.signal_pattern_analyzer import SignalPatternAnalyzer
from src.tower_finder.services.telemetry_source import TelemetrySource
from src.tower_finder.utils.geodesy import normalize_bearing
from src.tower_finder.utils.logging import (
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    log_debug,
    log_info,
    log_warning,
    set_correlation_id,
)

logger = get_logger(__name__)


class HuntingState(str, Enum):
    """Hunting session states."""

    IDLE = "IDLE"
    HUNTING = "HUNTING"


class HuntingSession:
    """Toggleable recorder of (bearing, signal) probes."""

    def __init__(self, source: TelemetrySource, config: HuntingConfig | None = None) -> None:
        """
        Initialize hunting session.

        Args:
            source: Telemetry source answering bearing probes
            config: Hunting configuration section
        """
        self.source = source
        self.config = config or get_config().hunting
        self.max_samples = self.config.HUNTING_MAX_SAMPLES or None

        self._lock = threading.Lock()
        self._state = HuntingState.IDLE
        self._signal_history: deque[int] = deque(maxlen=self.max_samples)
        self._bearing_history: deque[float] = deque(maxlen=self.max_samples)
        self.session_id: str | None = None

    @property
    def state(self) -> HuntingState:
        return self._state

    @property
    def is_hunting(self) -> bool:
        return self._state == HuntingState.HUNTING

    @property
    def signal_history(self) -> list[int]:
        with self._lock:
            return list(self._signal_history)

    @property
    def bearing_history(self) -> list[float]:
        with self._lock:
            return list(self._bearing_history)

    def start(self, strict: bool = False) -> None:
        """Clear history and begin recording."""
        with self._lock:
            if self._state == HuntingState.HUNTING:
                if strict:
                    raise StateTransitionError("Hunting is already active")
                log_warning(logger, "Hunting already active", session_id=self.session_id)
                return

            self._signal_history.clear()
            self._bearing_history.clear()
            self._state = HuntingState.HUNTING
            self.session_id = str(uuid.uuid4())

        set_correlation_id(self.session_id)
        log_info(logger, "Tower hunting started", session_id=self.session_id, max_samples=self.max_samples)

    def stop(self, strict: bool = False) -> None:
        """Stop recording; history stays available."""
        with self._lock:
            if self._state == HuntingState.IDLE:
                if strict:
                    raise StateTransitionError("Hunting is not active")
                log_warning(logger, "Hunting not active", session_id=self.session_id)
                return

            self._state = HuntingState.IDLE
            recorded = len(self._signal_history)

        log_info(logger, "Tower hunting stopped", session_id=self.session_id, samples=recorded)
        if get_correlation_id() == self.session_id:
            clear_correlation_id()

    def probe(self, bearing: float) -> int:
        """
        Measure the signal at a bearing, recording it while hunting.

        Args:
            bearing: Probed bearing in degrees

        Returns:
            Measured signal strength in dBm
        """
        bearing = normalize_bearing(bearing)
        with self._lock:
            session_id = self.session_id if self._state == HuntingState.HUNTING else None

        signal = self.source.measure_signal_at_bearing(bearing)

        with self._lock:
            # A start/stop during the measurement changes the session
            if session_id is not None and self._state == HuntingState.HUNTING and self.session_id == session_id:
                self._signal_history.append(signal)
                self._bearing_history.append(bearing)

        log_debug(logger, "Probe", bearing=f"{bearing:.1f}", signal=signal)
        return signal

    def to_signal_pattern(self) -> SignalPattern:
        """
        Summarize the recorded history.

        Raises:
            InvalidInputError: If nothing has been recorded
        """
        with self._lock:
            strengths = list(self._signal_history)
            bearings = list(self._bearing_history)

        if not strengths:
            raise InvalidInputError("Hunting history is empty")
        return SignalPatternAnalyzer.from_measurements(strengths, bearings)
