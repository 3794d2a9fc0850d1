"""Tests for HuntingSession recording and history limits."""

import threading

import pytest

from src.tower_finder.core.config import HuntingConfig
from src.tower_finder.core.exceptions import InvalidInputError, StateTransitionError
from src.tower_finder.services.hunting_session import HuntingSession, HuntingState
from src.tower_finder.services.telemetry_source import SyntheticTelemetrySource
from src.tower_finder.utils.logging import get_correlation_id


@pytest.fixture
def source() -> SyntheticTelemetrySource:
    return SyntheticTelemetrySource(seed=21, probe_noise_db=0.0)


@pytest.fixture
def session(source, hunting_config) -> HuntingSession:
    return HuntingSession(source, config=hunting_config)


class TestLifecycle:
    """Test Idle/Hunting transitions."""

    def test_starts_idle(self, session) -> None:
        assert session.state == HuntingState.IDLE
        assert session.signal_history == []

    def test_start_clears_history(self, session) -> None:
        session.start()
        session.probe(0.0)
        session.probe(90.0)
        session.stop()

        session.start()
        assert session.signal_history == []
        assert session.bearing_history == []

    def test_stop_keeps_history(self, session) -> None:
        session.start()
        session.probe(0.0)
        session.probe(180.0)
        session.stop()

        assert session.state == HuntingState.IDLE
        assert session.bearing_history == [0.0, 180.0]
        assert len(session.signal_history) == 2

    def test_redundant_transitions(self, session) -> None:
        session.stop()
        session.start()
        session.probe(10.0)
        session.start()
        # A redundant start must not wipe the running history
        assert session.bearing_history == [10.0]

    def test_strict_transitions(self, session) -> None:
        with pytest.raises(StateTransitionError):
            session.stop(strict=True)
        session.start()
        with pytest.raises(StateTransitionError):
            session.start(strict=True)

    def test_session_runs_under_its_correlation_id(self, session) -> None:
        session.start()
        assert get_correlation_id() == session.session_id

        session.stop()
        assert get_correlation_id() is None


class TestProbe:
    """Test bearing probes."""

    def test_probe_returns_measurement(self, session, source) -> None:
        strongest = source.strongest
        signal = session.probe(strongest.true_bearing)
        assert signal == strongest.signal_strength + 15

    def test_probe_while_idle_is_not_recorded(self, session) -> None:
        signal = session.probe(45.0)

        assert isinstance(signal, int)
        assert session.signal_history == []

    def test_probe_normalizes_bearing(self, session) -> None:
        session.start()
        session.probe(-90.0)
        assert session.bearing_history == [270.0]


class TestHistoryCap:
    """Test the configurable history limit."""

    def test_cap_keeps_most_recent(self, source) -> None:
        session = HuntingSession(source, config=HuntingConfig(HUNTING_MAX_SAMPLES=3))
        session.start()
        for bearing in [0.0, 10.0, 20.0, 30.0, 40.0]:
            session.probe(bearing)

        assert session.bearing_history == [20.0, 30.0, 40.0]
        assert len(session.signal_history) == 3

    def test_zero_means_unbounded(self, source) -> None:
        session = HuntingSession(source, config=HuntingConfig(HUNTING_MAX_SAMPLES=0))
        session.start()
        for i in range(5000):
            session.probe(float(i % 360))

        assert len(session.signal_history) == 5000

    def test_concurrent_probes_keep_histories_parallel(self, source) -> None:
        session = HuntingSession(source, config=HuntingConfig(HUNTING_MAX_SAMPLES=0))
        session.start()

        def probe_many() -> None:
            for i in range(200):
                session.probe(float(i))

        workers = [threading.Thread(target=probe_many) for _ in range(4)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        assert len(session.signal_history) == len(session.bearing_history) == 800


class TestSignalPattern:
    """Test conversion of history into a SignalPattern."""

    def test_pattern_from_sweep(self, session, source) -> None:
        session.start()
        for bearing in range(0, 360, 10):
            session.probe(float(bearing))
        session.stop()

        pattern = session.to_signal_pattern()

        assert len(pattern.bearings) == 36
        assert pattern.peak_strength == max(session.signal_history)
        assert 0.0 <= pattern.quality <= 1.0

    def test_empty_history_raises(self, session) -> None:
        with pytest.raises(InvalidInputError):
            session.to_signal_pattern()


class RestartDuringMeasurement(SyntheticTelemetrySource):
    """Source that runs a callback in the middle of the first measurement."""

    def __init__(self, on_measure, **kwargs) -> None:
        super().__init__(**kwargs)
        self.on_measure = on_measure

    def measure_signal_at_bearing(self, bearing: float) -> int:
        callback, self.on_measure = self.on_measure, None
        if callback is not None:
            callback()
        return super().measure_signal_at_bearing(bearing)


class TestProbeRaces:
    """Test probes that overlap a state transition."""

    def test_reading_from_before_restart_is_dropped(self, hunting_config) -> None:
        session = None

        def restart() -> None:
            session.stop()
            session.start()

        session = HuntingSession(RestartDuringMeasurement(restart, seed=21), config=hunting_config)
        session.start()
        session.probe(90.0)

        assert session.state == HuntingState.HUNTING
        assert session.signal_history == []

    def test_reading_from_idle_not_recorded_after_start(self, hunting_config) -> None:
        session = None

        def start() -> None:
            session.start()

        session = HuntingSession(RestartDuringMeasurement(start, seed=21), config=hunting_config)
        session.probe(90.0)

        assert session.is_hunting is True
        assert session.bearing_history == []
