"""
Tests for logging configuration module.
"""

import logging
import sys
import tempfile
from pathlib import Path

from upcheck.common import vlog
from upcheck.logging_config import (
    LOGGER_NAME,
    ColoredFormatter,
    get_logger,
    setup_logging,
)


def _record(level=logging.INFO, msg="Test message"):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestSetupLogging:
    """Test logging setup and configuration."""

    def test_setup_logging_default(self):
        """Test default logging setup."""
        logger = setup_logging()
        assert logger.name == LOGGER_NAME == "upcheck"
        assert logger.level == logging.INFO

    def test_setup_logging_verbose(self):
        """Test verbose logging enables DEBUG level."""
        logger = setup_logging(verbose=True)
        assert logger.level == logging.DEBUG

    def test_console_uses_stderr(self):
        """Test console output stays off stdout."""
        logger = setup_logging()
        console_handlers = [
            h for h in logger.handlers
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        ]
        assert len(console_handlers) == 1
        assert console_handlers[0].stream is sys.stderr

    def test_setup_logging_quiet(self):
        """Test quiet mode suppresses console output."""
        logger = setup_logging(quiet=True)
        assert logger.level == logging.WARNING
        console_handlers = [
            h for h in logger.handlers
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        ]
        assert len(console_handlers) == 0

    def test_setup_logging_with_file(self):
        """Test logging to file, creating the directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / "subdir" / "test.log"
            logger = setup_logging(log_file=str(log_file))

            logger.info("Test message")
            for handler in logger.handlers:
                handler.flush()

            assert log_file.exists()
            assert "Test message" in log_file.read_text()
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

    def test_module_loggers_propagate(self, caplog):
        """Test upcheck.* loggers reach the package logger."""
        setup_logging(propagate=True)
        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            logging.getLogger("upcheck.orchestrator").warning("sink down")
        assert "sink down" in caplog.text

    def test_get_logger_singleton(self):
        """Test get_logger returns same instance."""
        assert get_logger() is get_logger()


class TestColoredFormatter:
    """Test colored log formatter."""

    def test_with_colors(self):
        formatter = ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=True)
        formatted = formatter.format(_record())
        assert "Test message" in formatted
        assert "\033[" in formatted

    def test_without_colors(self):
        formatter = ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=False)
        formatted = formatter.format(_record())
        assert formatted == "INFO Test message"

    def test_module_tag(self):
        """Test records from package modules carry the module name."""
        formatter = ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=False)
        record = _record(logging.WARNING, "sink down")
        record.name = "upcheck.orchestrator"
        assert formatter.format(record) == "WARNING [orchestrator] sink down"

    def test_all_levels(self):
        formatter = ColoredFormatter("%(levelname_colored)s", use_colors=True)
        for level in [logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL]:
            assert formatter.format(_record(level, "Test"))


class TestVlog:
    """Test verbose logging helper."""

    def test_verbose_logs(self, caplog):
        setup_logging(propagate=True)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            vlog("checking brew", verbose=True)
        assert "checking brew" in caplog.text

    def test_silent_without_verbose(self, caplog, monkeypatch):
        monkeypatch.delenv("UPCHECK_DEBUG", raising=False)
        setup_logging(propagate=True)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            vlog("checking brew", verbose=False)
        assert "checking brew" not in caplog.text

    def test_debug_env(self, caplog, monkeypatch):
        monkeypatch.setenv("UPCHECK_DEBUG", "1")
        setup_logging(propagate=True)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            vlog("checking bun")
        assert "checking bun" in caplog.text
