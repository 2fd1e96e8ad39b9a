"""
Logging setup for upcheck.

Everything logs under the "upcheck" logger: modules use
logging.getLogger(__name__), vlog() goes through get_logger(). The console
handler writes to stderr because stdout carries command results (and --json
documents). An optional log file always receives DEBUG records, which include
every executed command line and its duration.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "upcheck"

CONSOLE_FORMAT = "%(levelname_colored)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

_logger: Optional[logging.Logger] = None


def _console_colors() -> bool:
    if os.environ.get("UPCHECK_COLOR", "1") != "1":
        return False
    return sys.stderr.isatty()


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, use_colors=_console_colors()))
    return handler


def _file_handler(log_file: str) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the upcheck logger. Safe to call repeatedly; handlers are replaced.

    Args:
        level: Console log level name when neither verbose nor quiet is set
        log_file: Also write DEBUG records to this file (parent dirs are created)
        verbose: DEBUG on the console (shows each command as it runs)
        quiet: No console handler; the logger level becomes WARNING
        propagate: Pass records on to the root logger (pytest's caplog needs this)

    Returns:
        The configured "upcheck" logger
    """
    global _logger

    if verbose:
        effective_level = logging.DEBUG
    elif quiet:
        effective_level = logging.WARNING
    else:
        effective_level = getattr(logging, level.upper())

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(effective_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if not quiet:
        logger.addHandler(_console_handler(effective_level))
    if log_file:
        logger.addHandler(_file_handler(log_file))

    logger.propagate = propagate
    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """The upcheck logger, set up with defaults on first use."""
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger


class ColoredFormatter(logging.Formatter):
    """
    Console formatter providing %(levelname_colored)s.

    With colors, the level name gets an ANSI color and a status symbol.
    Records from module loggers other than the package logger are tagged
    with their short module name, e.g. "[shell_runner]".
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    SYMBOLS = {
        "DEBUG": "·",
        "INFO": "✓",
        "WARNING": "!",
        "ERROR": "✗",
        "CRITICAL": "✗✗",
    }

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def _module_tag(self, record: logging.LogRecord) -> str:
        prefix = LOGGER_NAME + "."
        if record.name.startswith(prefix):
            return f" [{record.name[len(prefix):]}]"
        return ""

    def format(self, record: logging.LogRecord) -> str:
        label = record.levelname + self._module_tag(record)
        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            symbol = self.SYMBOLS.get(record.levelname, "")
            record.levelname_colored = f"{color}{symbol} {label}{self.RESET}"
        else:
            record.levelname_colored = label
        return super().format(record)
