"""Tests for configuration loading."""

from pathlib import Path

import pytest

from src.content_importer.config import (
    ImporterConfig,
    LoggingConfig,
    MediaConfig,
    PipelineConfig,
    load_config,
)
from src.content_importer.utils.exceptions import ConfigurationError


class TestDefaults:
    def test_defaults(self):
        config = ImporterConfig()
        assert config.pipeline == PipelineConfig()
        assert config.pipeline.string_array_delimiter == ","
        assert config.pipeline.max_block_depth == 3
        assert config.pipeline.order_by_references is True
        assert config.media.allowed_schemes == ("http", "https")
        assert config.logging == LoggingConfig()


class TestFromFile:
    """Test YAML loading."""

    def test_full_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "pipeline:\n"
            "  string_array_delimiter: ';'\n"
            "  publish_by_default: true\n"
            "media:\n"
            "  timeout: 5\n"
            "  allowed_schemes: [https]\n"
            "  base_directory: /srv/media\n"
            "logging:\n"
            "  level: DEBUG\n"
            "  file: logs/import.log\n"
        )

        config = ImporterConfig.from_file(path)

        assert config.pipeline.string_array_delimiter == ";"
        assert config.pipeline.publish_by_default is True
        assert config.media.timeout == 5
        assert config.media.allowed_schemes == ("https",)
        assert config.media.base_directory == Path("/srv/media")
        assert config.logging.level == "DEBUG"
        assert config.logging.file == Path("logs/import.log")

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert ImporterConfig.from_file(path) == ImporterConfig()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("pipeline: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ImporterConfig.from_file(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="expected dictionary, got list"):
            ImporterConfig.from_file(path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("pipeline:\n  shout: true\n")
        with pytest.raises(ConfigurationError, match="Unknown configuration key"):
            ImporterConfig.from_file(path)

    def test_round_trip_through_to_file(self, tmp_path):
        config = ImporterConfig(
            pipeline=PipelineConfig(max_block_depth=5),
            media=MediaConfig(base_directory=Path("/data")),
        )
        path = tmp_path / "nested" / "config.yaml"

        config.to_file(path)

        assert ImporterConfig.from_file(path) == config


class TestFromEnv:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("IMPORT_ARRAY_DELIMITER", "|")
        monkeypatch.setenv("IMPORT_PUBLISH", "yes")
        monkeypatch.setenv("MEDIA_MAX_RETRIES", "7")
        monkeypatch.setenv("LOG_FORMAT", "json")

        config = ImporterConfig.from_env()

        assert config.pipeline.string_array_delimiter == "|"
        assert config.pipeline.publish_by_default is True
        assert config.media.max_retries == 7
        assert config.logging.format == "json"

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("MEDIA_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError, match="Invalid numeric"):
            ImporterConfig.from_env()


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_without_file_uses_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        assert load_config().logging.level == "ERROR"
