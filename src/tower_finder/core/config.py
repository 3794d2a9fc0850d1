"""
Configuration management for the tower finder core.
Loads configuration from YAML files and environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from src.tower_finder.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "TOWER_FINDER_"


@dataclass
class AppConfig:
    """Application configuration."""

    APP_NAME: str = "TowerFinder"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE_PATH: str = "logs/tower_finder.log"
    LOG_FILE_MAX_BYTES: int = 10485760
    LOG_FILE_BACKUP_COUNT: int = 5
    LOG_ENABLE_CONSOLE: bool = True
    LOG_ENABLE_FILE: bool = False


@dataclass
class GeodesyConfig:
    """Path-loss inversion and distance range configuration."""

    GEODESY_MIN_DISTANCE_M: float = 100.0
    GEODESY_MAX_DISTANCE_M: float = 35000.0
    GEODESY_DEFAULT_DISTANCE_M: float = 1000.0
    GEODESY_FALLBACK_FREQUENCY_MHZ: float = 1800.0
    GEODESY_ENVIRONMENTAL_LOSS_DB: float = 0.0  # 10 dB models dense urban clutter


@dataclass
class AnalysisConfig:
    """RF environment analysis configuration."""

    ANALYSIS_NOISE_FLOOR_BASE: float = 10.0
    ANALYSIS_NOISE_FLOOR_JITTER: float = 2.0
    ANALYSIS_INTERFERENCE_PER_NETWORK: float = 0.05
    ANALYSIS_INTERFERENCE_JITTER_MAX: float = 0.2
    ANALYSIS_PATTERN_STEP_DEG: float = 10.0


@dataclass
class NavigationConfig:
    """Real-time navigation configuration."""

    NAVIGATION_TOLERANCE_DEG: float = 10.0
    NAVIGATION_TICK_RATE_HZ: float = 10.0
    NAVIGATION_LOW_ACCURACY_THRESHOLD: float = 0.5
    NAVIGATION_LOW_ACCURACY_TICKS: int = 10
    NAVIGATION_APPLY_CALIBRATION_OFFSET: bool = True
    NAVIGATION_MIN_CALIBRATION_ACCURACY: float = 0.5


@dataclass
class HuntingConfig:
    """Tower hunting history configuration."""

    HUNTING_MAX_SAMPLES: int = 3600  # one hour of 1 Hz probes, 0 disables the cap


@dataclass
class DevelopmentConfig:
    """Development settings."""

    DEV_DEBUG_MODE: bool = False
    DEV_SYNTHETIC_TELEMETRY: bool = False


@dataclass
class Config:
    """Main configuration container."""

    app: AppConfig = field(default_factory=AppConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    geodesy: GeodesyConfig = field(default_factory=GeodesyConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    hunting: HuntingConfig = field(default_factory=HuntingConfig)
    development: DevelopmentConfig = field(default_factory=DevelopmentConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "app": self.app.__dict__,
            "logging": self.logging.__dict__,
            "geodesy": self.geodesy.__dict__,
            "analysis": self.analysis.__dict__,
            "navigation": self.navigation.__dict__,
            "hunting": self.hunting.__dict__,
            "development": self.development.__dict__,
        }

    def _section_for_key(self, key: str) -> Any:
        """Map a flat configuration key to its section by prefix."""
        prefixes = {
            "APP_": self.app,
            "LOG_": self.logging,
            "GEODESY_": self.geodesy,
            "ANALYSIS_": self.analysis,
            "NAVIGATION_": self.navigation,
            "HUNTING_": self.hunting,
            "DEV_": self.development,
        }
        for prefix, section in prefixes.items():
            if key.startswith(prefix):
                return section
        return None


class ConfigLoader:
    """Configuration loader that handles YAML files and environment variables."""

    def __init__(self, config_path: str | Path | None = None):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to configuration file. Defaults to profile-based selection.
        """
        if config_path is None:
            project_root = Path(__file__).parent.parent.parent.parent

            profile = os.getenv(f"{ENV_PREFIX}CONFIG_PROFILE", "default")
            if profile in ["development", "dev"]:
                config_file = "development.yaml"
            elif profile in ["production", "prod"]:
                config_file = "production.yaml"
            else:
                config_file = "default.yaml"

            self.config_path = project_root / "config" / config_file
            logger.info(f"Selected configuration profile: {profile} -> {config_file}")
        else:
            self.config_path = Path(config_path)
        self.config = Config()

    def load(self) -> Config:
        """
        Load configuration from file and environment variables.

        Environment variables override file configuration.

        Returns:
            Loaded configuration object
        """
        config_data = self._load_with_inheritance()

        if config_data:
            try:
                from src.tower_finder.core.config_validator import ConfigValidator

                validator = ConfigValidator()
                is_valid, errors = validator.validate_config_dict(config_data)
                if not is_valid:
                    error_msg = "Configuration validation failed:\n" + "\n".join(
                        f"  - {error}" for error in errors
                    )
                    raise ValueError(error_msg)

                self._apply_yaml_config(config_data)
                logger.info(f"Loaded and validated configuration from {self.config_path}")
            except ValueError as e:
                logger.error(f"Failed to load configuration from {self.config_path}: {e}")
                raise ConfigurationError(str(e)) from e
        else:
            logger.warning(f"Configuration file {self.config_path} not found, using defaults")

        self._apply_env_overrides()

        self._validate_config()

        return self.config

    def _load_with_inheritance(self) -> dict[str, Any] | None:
        """
        Load configuration with inheritance from base configuration.

        Returns:
            Merged configuration dictionary or None if file not found
        """
        if not self.config_path.exists():
            return None

        try:
            with open(self.config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"{self.config_path} must contain a mapping of keys")

        # Profile-specific files inherit from default.yaml
        if self.config_path.name != "default.yaml":
            base_config_path = self.config_path.parent / "default.yaml"
            if base_config_path.exists():
                try:
                    with open(base_config_path) as f:
                        base_config = yaml.safe_load(f) or {}

                    merged_config = {**base_config, **config_data}
                    logger.info(f"Inherited base configuration from {base_config_path}")
                    return merged_config

                except yaml.YAMLError as e:
                    logger.warning(f"Failed to load base configuration: {e}")
                    return config_data

        return config_data

    def _apply_yaml_config(self, yaml_config: dict[str, Any]) -> None:
        """Apply configuration from YAML dictionary with proper type conversion."""
        for key, value in yaml_config.items():
            section = self.config._section_for_key(key)
            if section is None:
                logger.warning(f"Unknown configuration key: {key}")
                continue
            self._set_config_value(section, key, str(value))

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            config_key = env_key[len(ENV_PREFIX) :]
            if config_key == "CONFIG_PROFILE":
                continue

            section = self.config._section_for_key(config_key)
            if section is not None:
                self._set_config_value(section, config_key, env_value)

    def _set_config_value(self, config_section: Any, key: str, value: str) -> None:
        """
        Set configuration value with appropriate type conversion.

        Args:
            config_section: Configuration section object
            key: Configuration key
            value: String value from YAML or environment
        """
        if not hasattr(config_section, key):
            logger.warning(f"Unknown configuration key: {key}")
            return

        current_value = getattr(config_section, key)

        converted_value: Any
        if isinstance(current_value, bool):
            converted_value = value.lower() in ("true", "1", "yes", "on")
        elif isinstance(current_value, int):
            try:
                converted_value = int(value)
            except ValueError:
                logger.error(f"Invalid integer value for {key}: {value}")
                return
        elif isinstance(current_value, float):
            try:
                converted_value = float(value)
            except ValueError:
                logger.error(f"Invalid float value for {key}: {value}")
                return
        else:
            converted_value = value

        setattr(config_section, key, converted_value)
        logger.debug(f"Set {key} = {converted_value}")

    def _validate_config(self) -> None:
        """Validate cross-field constraints after all loading is complete."""
        from src.tower_finder.core.config_validator import ConfigValidator

        # Environment overrides bypass the file-level schema check
        flat: dict[str, Any] = {}
        for section in self.config.to_dict().values():
            flat.update(section)
        is_valid, errors = ConfigValidator().validate_config_dict(flat)
        if not is_valid:
            raise ConfigurationError(
                "Configuration invalid after environment overrides:\n"
                + "\n".join(f"  - {error}" for error in errors)
            )

        geodesy = self.config.geodesy
        if not (
            0
            < geodesy.GEODESY_MIN_DISTANCE_M
            <= geodesy.GEODESY_DEFAULT_DISTANCE_M
            <= geodesy.GEODESY_MAX_DISTANCE_M
        ):
            raise ConfigurationError(
                "Distance range must satisfy 0 < min <= default <= max: "
                f"min({geodesy.GEODESY_MIN_DISTANCE_M}) "
                f"default({geodesy.GEODESY_DEFAULT_DISTANCE_M}) "
                f"max({geodesy.GEODESY_MAX_DISTANCE_M})"
            )

        if not 400.0 <= geodesy.GEODESY_FALLBACK_FREQUENCY_MHZ <= 6000.0:
            raise ConfigurationError(
                "Fallback frequency must be between 400 and 6000 MHz, "
                f"got {geodesy.GEODESY_FALLBACK_FREQUENCY_MHZ}"
            )

        navigation = self.config.navigation
        if not 0.0 < navigation.NAVIGATION_TOLERANCE_DEG < 180.0:
            raise ConfigurationError(
                f"Navigation tolerance must be in (0, 180), got {navigation.NAVIGATION_TOLERANCE_DEG}"
            )

        if self.config.hunting.HUNTING_MAX_SAMPLES < 0:
            raise ConfigurationError(
                f"Hunting history cap must be >= 0, got {self.config.hunting.HUNTING_MAX_SAMPLES}"
            )


# Global configuration instance
_config: Config | None = None


def get_config(config_path: str | Path | None = None) -> Config:
    """
    Get configuration instance (singleton pattern).

    Args:
        config_path: Optional path to configuration file

    Returns:
        Configuration object
    """
    global _config

    if _config is None:
        loader = ConfigLoader(config_path)
        _config = loader.load()

    return _config


def reload_config(config_path: str | Path | None = None) -> Config:
    """
    Reload configuration from file and environment.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Reloaded configuration object
    """
    global _config

    loader = ConfigLoader(config_path)
    _config = loader.load()

    return _config
