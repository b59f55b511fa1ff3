"""Configuration management for the Content Importer."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .utils.exceptions import ConfigurationError


@dataclass
class PipelineConfig:
    """
    Behaviour of the import pipeline.

    Controls resolver defaults, hierarchy ordering and publishing.
    """

    # Resolver defaults
    string_array_delimiter: str = ","
    max_block_depth: int = 3  # Nesting limit for composite block resolvers

    # Hierarchy ordering
    order_by_references: bool = True  # Use legacy picker references as ordering hints
    legacy_ids_case_sensitive: bool = False

    # Publishing
    publish_by_default: bool = False  # Used when the shouldPublish column is absent


@dataclass
class MediaConfig:
    """Media fetching configuration for URL and path stream resolvers."""

    timeout: float = 30.0  # Seconds per HTTP request
    max_retries: int = 3  # Attempts on network errors / timeouts
    allowed_schemes: tuple[str, ...] = ("http", "https")
    max_bytes: int = 50 * 1024 * 1024  # Reject downloads larger than 50 MiB
    base_directory: Path | None = None  # Relative pathToMedia values resolve against this


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None


@dataclass
class ImporterConfig:
    """
    Complete configuration for the Content Importer.

    This combines all configuration sections.
    """

    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    media: MediaConfig = field(default_factory=MediaConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "ImporterConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            ImporterConfig instance

        Raises:
            ConfigurationError: If the file is not valid YAML or has unknown keys
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {config_path}: {e}"
            ) from e

        if data is None:
            data = {}

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        try:
            pipeline = PipelineConfig(**(data.get("pipeline") or {}))

            media_data = dict(data.get("media") or {})
            if "allowed_schemes" in media_data:
                media_data["allowed_schemes"] = tuple(media_data["allowed_schemes"])
            if media_data.get("base_directory"):
                media_data["base_directory"] = Path(media_data["base_directory"])
            media = MediaConfig(**media_data)

            logging_data = dict(data.get("logging") or {})
            # Convert file path string to Path if present
            if logging_data.get("file"):
                logging_data["file"] = Path(logging_data["file"])
            logging = LoggingConfig(**logging_data)
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key in {config_path}: {e}") from e

        return cls(pipeline=pipeline, media=media, logging=logging)

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        media = {
            k: (str(v) if isinstance(v, Path) else list(v) if isinstance(v, tuple) else v)
            for k, v in self.media.__dict__.items()
            if v is not None
        }
        data = {
            "pipeline": self.pipeline.__dict__,
            "media": media,
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in self.logging.__dict__.items()
                if v is not None
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "ImporterConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            IMPORT_ARRAY_DELIMITER: stringArray delimiter (default: ",")
            IMPORT_MAX_BLOCK_DEPTH: composite resolver depth limit (default: 3)
            IMPORT_PUBLISH: publish items by default (default: false)
            MEDIA_TIMEOUT: HTTP timeout in seconds (default: 30)
            MEDIA_MAX_RETRIES: HTTP retry attempts (default: 3)
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: console or json (default: console)

        Returns:
            ImporterConfig instance

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        try:
            pipeline = PipelineConfig(
                string_array_delimiter=os.environ.get("IMPORT_ARRAY_DELIMITER", ","),
                max_block_depth=int(os.environ.get("IMPORT_MAX_BLOCK_DEPTH", "3")),
                publish_by_default=os.environ.get("IMPORT_PUBLISH", "false").lower()
                in ("true", "1", "yes", "on"),
            )
            media = MediaConfig(
                timeout=float(os.environ.get("MEDIA_TIMEOUT", "30")),
                max_retries=int(os.environ.get("MEDIA_MAX_RETRIES", "3")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric environment variable: {e}") from e

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(pipeline=pipeline, media=media, logging=logging_config)


def load_config(config_file: Path | None = None) -> ImporterConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        ImporterConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return ImporterConfig.from_file(config_file)
    return ImporterConfig.from_env()
