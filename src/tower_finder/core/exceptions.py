"""
Custom exception classes for the tower finder core.

Degenerate-but-valid inputs (no towers, zero mean signal) are reported as
low-confidence results and never raise.
"""


class TowerFinderException(Exception):
    """Base exception for all tower finder custom exceptions."""

    pass


class InvalidInputError(TowerFinderException):
    """Exception raised when caller-supplied samples or records are unusable."""

    pass


class TelemetryError(TowerFinderException):
    """Exception raised when a telemetry source cannot provide a reading."""

    pass


class StateTransitionError(TowerFinderException):
    """Exception raised for invalid session state transitions."""

    pass


class CalibrationError(TowerFinderException):
    """Exception raised for unusable compass calibration input."""

    pass


class ConfigurationError(TowerFinderException):
    """Exception raised for configuration errors."""

    pass
