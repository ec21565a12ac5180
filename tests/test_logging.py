"""Tests for logging setup."""

import pytest

from flink_results.core.logging import get_logger, setup_logging


@pytest.mark.unit
class TestSetupLogging:
    def test_setup_without_errors(self):
        """Logger initializes without errors."""
        setup_logging()

    def test_setup_verbose(self):
        """Logger initializes with verbose flag."""
        setup_logging(verbose=True)

    def test_setup_not_verbose(self):
        """Logger initializes with default (non-verbose)."""
        setup_logging(verbose=False)


@pytest.mark.unit
class TestGetLogger:
    def test_get_logger_without_name(self):
        """Get logger without binding a name."""
        setup_logging()
        log = get_logger()
        assert log is not None

    def test_get_logger_with_name(self):
        """Get logger with a bound name."""
        setup_logging()
        log = get_logger("test_module")
        assert log is not None


@pytest.mark.unit
class TestLogOutput:
    def test_log_to_stderr(self, capsys):
        """Log output goes to stderr, not stdout."""
        setup_logging(verbose=True)
        log = get_logger()
        log.info("test message")

        captured = capsys.readouterr()
        assert captured.out == ""

    def test_debug_hidden_without_verbose(self, capsys):
        setup_logging(verbose=False)
        get_logger().debug("fetched result page", rows=2)

        captured = capsys.readouterr()
        assert "fetched result page" not in captured.err

    def test_bound_context_rendered(self, capsys):
        setup_logging(verbose=True)
        get_logger("manager", statement="weather-stream").info("results polling halted")

        captured = capsys.readouterr()
        assert "results polling halted" in captured.err
        assert "weather-stream" in captured.err
