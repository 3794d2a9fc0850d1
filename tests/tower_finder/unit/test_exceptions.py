"""Unit tests for core exceptions.

Tests exception hierarchy and error handling.
"""

import pytest

from src.tower_finder.core.exceptions import (
    CalibrationError,
    ConfigurationError,
    InvalidInputError,
    StateTransitionError,
    TelemetryError,
    TowerFinderException,
)


class TestCoreExceptions:
    """Test core exception classes."""

    def test_tower_finder_exception_base(self):
        """Test base exception."""
        msg = "Test error message"
        exc = TowerFinderException(msg)

        assert str(exc) == msg
        assert isinstance(exc, Exception)

    @pytest.mark.parametrize(
        "exc_class",
        [InvalidInputError, TelemetryError, StateTransitionError, CalibrationError, ConfigurationError],
    )
    def test_inherits_from_base(self, exc_class):
        """Test every project error can be caught through the base class."""
        with pytest.raises(TowerFinderException, match="boom"):
            raise exc_class("boom")

    def test_errors_are_distinct(self):
        """Test sibling errors do not catch each other."""
        assert not issubclass(InvalidInputError, TelemetryError)
        assert not issubclass(ConfigurationError, InvalidInputError)
