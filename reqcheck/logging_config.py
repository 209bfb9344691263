"""
Centralized logging configuration for reqcheck.

Modules log through logging.getLogger(__name__); everything below the
"reqcheck" logger is routed to the handlers configured here. Console output
goes to stderr so reports on stdout stay clean.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "reqcheck"

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

CONSOLE_FORMAT = "%(levelname_colored)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_level(level: str) -> str:
    """Normalize a level name ("warn" and "warning" are the same)."""
    name = level.strip().upper()
    if name == "WARN":
        name = "WARNING"
    if name not in LEVELS:
        expected = ", ".join(n.lower() for n in LEVELS)
        raise ValueError(f"invalid logging level {level!r} (expected one of: {expected})")
    return name


class ColoredFormatter(logging.Formatter):
    """
    Formatter exposing a colored level name as %(levelname_colored)s.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        name = record.levelname
        if self.use_colors and name in self.COLORS:
            name = f"{self.COLORS[name]}{name}{self.RESET}"
        record.levelname_colored = name
        return super().format(record)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, use_colors=sys.stderr.isatty()))
    return handler


def _file_handler(log_file: str) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the reqcheck logger.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Console level name (debug, info, warning, error, critical)
        log_file: Also write every record, down to DEBUG, to this file
        verbose: Shortcut for level="debug"
        quiet: No console handler
        propagate: Pass records on to the root logger (tests)

    Returns:
        The "reqcheck" logger

    Raises:
        ValueError: If level is not a known level name
    """
    console_level = logging.DEBUG if verbose else getattr(logging, parse_level(level))

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if not quiet:
        logger.addHandler(_console_handler(console_level))

    if log_file:
        logger.addHandler(_file_handler(log_file))
        # The logger level gates records before any handler sees them
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(console_level)

    logger.propagate = propagate
    return logger
