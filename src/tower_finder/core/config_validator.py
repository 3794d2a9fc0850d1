"""
Configuration validation for the tower finder core.
Provides JSON schema validation for YAML configuration files.
"""

import logging
from pathlib import Path
from typing import Any, Dict

import jsonschema
import yaml

logger = logging.getLogger(__name__)


class ConfigValidator:
    """Validates configuration files against JSON schemas."""

    def __init__(self) -> None:
        """Initialize the configuration validator."""
        self.schemas = self._load_schemas()

    def _load_schemas(self) -> Dict[str, Dict[str, Any]]:
        """Load JSON schema definitions for configuration validation."""

        main_schema = {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "properties": {
                # Application settings
                "APP_NAME": {"type": "string", "minLength": 1},
                "APP_VERSION": {"type": "string", "pattern": r"^\d+\.\d+\.\d+$"},
                "APP_ENV": {"type": "string", "enum": ["development", "production", "testing"]},
                # Logging Configuration
                "LOG_LEVEL": {
                    "type": "string",
                    "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                },
                "LOG_FORMAT": {"type": "string", "minLength": 10},
                "LOG_FILE_PATH": {"type": "string", "minLength": 1},
                "LOG_FILE_MAX_BYTES": {
                    "type": "integer",
                    "minimum": 1048576,
                    "maximum": 1073741824,
                },
                "LOG_FILE_BACKUP_COUNT": {"type": "integer", "minimum": 1, "maximum": 50},
                "LOG_ENABLE_CONSOLE": {"type": "boolean"},
                "LOG_ENABLE_FILE": {"type": "boolean"},
                # Geodesy / path loss
                "GEODESY_MIN_DISTANCE_M": {"type": "number", "minimum": 1, "maximum": 100000},
                "GEODESY_MAX_DISTANCE_M": {"type": "number", "minimum": 1, "maximum": 100000},
                "GEODESY_DEFAULT_DISTANCE_M": {"type": "number", "minimum": 1, "maximum": 100000},
                "GEODESY_FALLBACK_FREQUENCY_MHZ": {
                    "type": "number",
                    "minimum": 400,
                    "maximum": 6000,
                },
                "GEODESY_ENVIRONMENTAL_LOSS_DB": {"type": "number", "minimum": 0, "maximum": 60},
                # Environment analysis
                "ANALYSIS_NOISE_FLOOR_BASE": {"type": "number", "exclusiveMinimum": 0},
                "ANALYSIS_NOISE_FLOOR_JITTER": {"type": "number", "minimum": 0},
                "ANALYSIS_INTERFERENCE_PER_NETWORK": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 1,
                },
                "ANALYSIS_INTERFERENCE_JITTER_MAX": {"type": "number", "minimum": 0, "maximum": 1},
                "ANALYSIS_PATTERN_STEP_DEG": {
                    "type": "number",
                    "exclusiveMinimum": 0,
                    "maximum": 180,
                },
                # Navigation
                "NAVIGATION_TOLERANCE_DEG": {
                    "type": "number",
                    "exclusiveMinimum": 0,
                    "exclusiveMaximum": 180,
                },
                "NAVIGATION_TICK_RATE_HZ": {"type": "number", "minimum": 1, "maximum": 100},
                "NAVIGATION_LOW_ACCURACY_THRESHOLD": {"type": "number", "minimum": 0, "maximum": 1},
                "NAVIGATION_LOW_ACCURACY_TICKS": {"type": "integer", "minimum": 1, "maximum": 1000},
                "NAVIGATION_APPLY_CALIBRATION_OFFSET": {"type": "boolean"},
                "NAVIGATION_MIN_CALIBRATION_ACCURACY": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 1,
                },
                # Hunting
                "HUNTING_MAX_SAMPLES": {"type": "integer", "minimum": 0},
                # Development
                "DEV_DEBUG_MODE": {"type": "boolean"},
                "DEV_SYNTHETIC_TELEMETRY": {"type": "boolean"},
            },
            "required": ["APP_NAME", "APP_VERSION"],
            "additionalProperties": True,  # Allow additional config keys
        }

        return {"main": main_schema}

    def validate_yaml_file(self, file_path: Path) -> tuple[bool, list[str]]:
        """
        Validate a YAML configuration file against its schema.

        Args:
            file_path: Path to the YAML file to validate

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        if not file_path.exists():
            errors.append(f"Configuration file not found: {file_path}")
            return False, errors

        with open(file_path) as f:
            try:
                config_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                line_info = "unknown"
                if hasattr(e, "problem_mark") and e.problem_mark:
                    line_info = str(e.problem_mark.line + 1)
                errors.append(f"YAML syntax error at line {line_info}: {e}")
                return False, errors

        is_valid, errors = self.validate_config_dict(config_data)
        if is_valid:
            logger.info(f"Configuration file validation passed: {file_path}")
        return is_valid, errors

    def validate_config_dict(self, config_data: Dict[str, Any]) -> tuple[bool, list[str]]:
        """
        Validate configuration data dictionary against schema.

        Args:
            config_data: Configuration dictionary to validate

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        try:
            schema = self.schemas["main"]
            jsonschema.validate(config_data, schema)
        except jsonschema.ValidationError as e:
            error_path = " -> ".join(str(p) for p in e.absolute_path) if e.absolute_path else "root"
            errors.append(f"Validation error at {error_path}: {e.message}")
            return False, errors
        except jsonschema.SchemaError as e:
            errors.append(f"Schema error: {e.message}")
            return False, errors

        return self.validate_parameter_ranges(config_data)

    def validate_parameter_ranges(self, config_data: Dict[str, Any]) -> tuple[bool, list[str]]:
        """
        Perform additional parameter range validation beyond schema.

        Args:
            config_data: Configuration dictionary to validate

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        if "GEODESY_MIN_DISTANCE_M" in config_data and "GEODESY_MAX_DISTANCE_M" in config_data:
            if config_data["GEODESY_MIN_DISTANCE_M"] >= config_data["GEODESY_MAX_DISTANCE_M"]:
                errors.append("GEODESY_MIN_DISTANCE_M must be below GEODESY_MAX_DISTANCE_M")

        if (
            "NAVIGATION_LOW_ACCURACY_THRESHOLD" in config_data
            and "NAVIGATION_MIN_CALIBRATION_ACCURACY" in config_data
        ):
            if (
                config_data["NAVIGATION_MIN_CALIBRATION_ACCURACY"]
                < config_data["NAVIGATION_LOW_ACCURACY_THRESHOLD"]
            ):
                errors.append(
                    "NAVIGATION_MIN_CALIBRATION_ACCURACY must not be below "
                    "NAVIGATION_LOW_ACCURACY_THRESHOLD"
                )

        return len(errors) == 0, errors


def validate_startup_config(config_path: Path | None = None) -> None:
    """
    Validate configuration on application startup.

    Args:
        config_path: Optional path to configuration file

    Raises:
        ValueError: If configuration validation fails
    """
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent.parent
        config_path = project_root / "config" / "default.yaml"

    validator = ConfigValidator()
    is_valid, errors = validator.validate_yaml_file(config_path)

    if not is_valid:
        error_msg = f"Configuration validation failed for {config_path}:\n" + "\n".join(
            f"  - {error}" for error in errors
        )
        logger.error(error_msg)
        raise ValueError(error_msg)

    logger.info("Configuration validation completed successfully")
