"""Tests for logging configuration and run context."""

import json
import logging

import structlog

from src.content_importer.observability.logger import (
    TRACE,
    VERBOSE,
    LogContext,
    _inject_run_context,
    configure_logging,
    current_context,
    get_log_level,
)


class TestLogLevels:
    def test_custom_levels(self):
        assert get_log_level("trace") == TRACE == 5
        assert get_log_level("VERBOSE") == VERBOSE == 15
        assert logging.getLevelName(VERBOSE) == "VERBOSE"

    def test_unknown_level_falls_back_to_info(self):
        assert get_log_level("chatty") == logging.INFO


class TestLogContext:
    """Test run-wide context fields."""

    def test_fields_are_bound_inside_block(self):
        with LogContext(run_id="r1"):
            assert current_context() == {"run_id": "r1"}
        assert current_context() == {}

    def test_nested_contexts_merge(self):
        with LogContext(run_id="r1"):
            with LogContext(source_file="a.csv"):
                assert current_context() == {"run_id": "r1", "source_file": "a.csv"}
            assert current_context() == {"run_id": "r1"}

    def test_processor_does_not_override_event_fields(self):
        with LogContext(run_id="r1", source_file="a.csv"):
            event = _inject_run_context(None, "info", {"event": "x", "source_file": "b.csv"})
        assert event == {"event": "x", "run_id": "r1", "source_file": "b.csv"}


class TestConfigureLogging:
    def test_json_logs_carry_run_id(self, capsys):
        configure_logging(level="INFO", json_logs=True)
        logger = structlog.get_logger("test")

        with LogContext(run_id="abc"):
            logger.info("Import run started", records=3)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "Import run started"
        assert event["run_id"] == "abc"
        assert event["records"] == 3
        assert event["level"] == "info"

    def test_log_file_is_created(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        configure_logging(level="DEBUG", log_file=log_file)
        assert log_file.exists()
        assert logging.getLogger().level == logging.DEBUG

    def test_httpx_is_kept_at_warning(self):
        configure_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
