"""Configuration management for EpochDB Builder."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional
import yaml
import structlog

from epochdb_builder import ConfigurationError


DEFAULT_IDOL_KEYWORDS = ['idol', 'blessing', 'passive', 'summon', 'minion', 'companion']
DEFAULT_SENTINEL_MARKERS = ['???', 'Unknown']


@dataclass
class PathsConfig:
    """Source and output locations."""
    templates_dir: Path = Path("TemplateFilters")
    web_data_dir: Path = Path("WebData")
    overrides_dir: Path = Path("Overrides")
    output_dir: Path = Path("Data")


@dataclass
class BuildConfig:
    """Build behaviour settings."""
    game_version: str = "1.3.0.4"
    sentinel_markers: List[str] = field(default_factory=lambda: list(DEFAULT_SENTINEL_MARKERS))
    summary_warning_limit: int = 3


@dataclass
class ClassificationConfig:
    """Idol/item affix classification settings."""
    idol_keywords: List[str] = field(default_factory=lambda: list(DEFAULT_IDOL_KEYWORDS))


@dataclass
class AppConfig:
    """Main application configuration."""
    name: str = "EpochDB Builder"
    log_level: str = "INFO"
    paths: PathsConfig = field(default_factory=PathsConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    classification: ClassificationConfig = field(default_factory=ClassificationConfig)


class ConfigManager:
    """Manages application configuration from YAML files and environment variables."""

    def __init__(self, config_path: Optional[Path] = None, logger: Optional[structlog.BoundLogger] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file
            logger: Structured logger instance

        Raises:
            ConfigurationError: If configuration is invalid
        """
        self.logger = logger or structlog.get_logger()
        self.config_path = Path(config_path) if config_path else Path("config/default.yaml")
        self._config = self._load_config()

    def _load_config(self) -> AppConfig:
        """Load configuration from file and environment variables.

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigurationError: If configuration cannot be loaded or is invalid
        """
        try:
            config_data = {}

            if self.config_path.exists():
                self.logger.info("Loading configuration", config_path=str(self.config_path))
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    config_data = yaml.safe_load(f) or {}
            else:
                self.logger.warning("Configuration file not found, using defaults",
                                   config_path=str(self.config_path))

            config_data = self._apply_env_overrides(config_data)

            # Relative source paths resolve against the config file's project root
            base_dir = self._base_dir()
            defaults = PathsConfig()
            paths_data = config_data.get("paths", {}) or {}
            paths = PathsConfig(
                **{k: self._resolve(base_dir, paths_data.get(k, getattr(defaults, k)))
                   for k in ['templates_dir', 'web_data_dir', 'overrides_dir', 'output_dir']}
            )

            config = AppConfig(
                name=config_data.get("app", {}).get("name", "EpochDB Builder"),
                log_level=str(config_data.get("logging", {}).get("level", "INFO")).upper(),
                paths=paths,
                build=BuildConfig(
                    **{k: v for k, v in (config_data.get("build", {}) or {}).items()
                       if k in ['game_version', 'sentinel_markers', 'summary_warning_limit']}
                ),
                classification=ClassificationConfig(
                    **{k: v for k, v in (config_data.get("classification", {}) or {}).items()
                       if k in ['idol_keywords']}
                )
            )

            self._validate_config(config)

            self.logger.info("Configuration loaded successfully",
                           game_version=config.build.game_version,
                           templates_dir=str(config.paths.templates_dir),
                           output_dir=str(config.paths.output_dir))

            return config

        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

    def _base_dir(self) -> Path:
        # config/default.yaml sits one level below the project root
        parent = self.config_path.parent
        if parent.name == "config":
            return parent.parent
        return parent

    @staticmethod
    def _resolve(base_dir: Path, value: Any) -> Path:
        path = Path(value)
        if path.is_absolute():
            return path
        return base_dir / path

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration.

        Args:
            config_data: Base configuration data

        Returns:
            Configuration with environment overrides applied
        """
        env_mappings = {
            "EPOCHDB_TEMPLATES_DIR": ["paths", "templates_dir"],
            "EPOCHDB_WEB_DATA_DIR": ["paths", "web_data_dir"],
            "EPOCHDB_OVERRIDES_DIR": ["paths", "overrides_dir"],
            "EPOCHDB_OUTPUT_DIR": ["paths", "output_dir"],
            "EPOCHDB_GAME_VERSION": ["build", "game_version"],
            "EPOCHDB_LOG_LEVEL": ["logging", "level"],
        }

        for env_var, config_path in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                current = config_data
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]

                final_key = config_path[-1]
                if final_key == "level":
                    current[final_key] = env_value.upper()
                else:
                    current[final_key] = env_value

                self.logger.debug("Applied environment override",
                                env_var=env_var, value=env_value, config_path=config_path)

        return config_data

    def _validate_config(self, config: AppConfig) -> None:
        """Validate configuration values.

        Args:
            config: Configuration to validate

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if config.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ConfigurationError(f"Invalid logging level: {config.log_level}")

        if not str(config.build.game_version).strip():
            raise ConfigurationError("game_version must not be empty")

        if config.build.summary_warning_limit < 0:
            raise ConfigurationError("summary_warning_limit must not be negative")

        if not config.classification.idol_keywords:
            raise ConfigurationError("idol_keywords must contain at least one keyword")

        if config.paths.output_dir.resolve() == config.paths.templates_dir.resolve():
            raise ConfigurationError("output_dir must differ from templates_dir")

    @property
    def config(self) -> AppConfig:
        """Get the current configuration."""
        return self._config

    def reload(self) -> None:
        """Reload configuration from file."""
        self.logger.info("Reloading configuration")
        self._config = self._load_config()
