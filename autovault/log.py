"""
Logging setup for AutoVault

Every diagnostic line goes to stderr with a level tag and both timestamps:

    [INFO][UTC:2025-01-15T09:30:00Z][Local:2025-01-15T10:30:00+0100] Creating directory: ...

Usage:
    from autovault.log import setup_logging, level_from_verbosity

    setup_logging(level_from_verbosity(4), color=False)
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import TextIO

LOGGER_NAME = "autovault"

# ANSI colors
COLOR_RED = "\033[91m"
COLOR_YELLOW = "\033[93m"
COLOR_BLUE = "\033[94m"
COLOR_GRAY = "\033[90m"
COLOR_RESET = "\033[0m"

LEVEL_TAGS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "ERROR",
}

LEVEL_COLORS = {
    logging.DEBUG: COLOR_GRAY,
    logging.INFO: COLOR_BLUE,
    logging.WARNING: COLOR_YELLOW,
    logging.ERROR: COLOR_RED,
    logging.CRITICAL: COLOR_RED,
}

# Numeric verbosity: 0=silent, 1=error, 2=warn, 3=info, 4=debug
VERBOSITY_LEVELS = {
    0: logging.CRITICAL + 10,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
}

LEVEL_NAMES = {
    "silent": 0,
    "error": 1,
    "warn": 2,
    "warning": 2,
    "info": 3,
    "debug": 4,
}


class StampFormatter(logging.Formatter):
    """Formats records as [LEVEL][UTC:...][Local:...] message."""

    def __init__(self, color: bool = False):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        utc = created.strftime("%Y-%m-%dT%H:%M:%SZ")
        local = created.astimezone().strftime("%Y-%m-%dT%H:%M:%S%z")

        tag = LEVEL_TAGS.get(record.levelno, record.levelname)
        if self.color:
            tag = f"{LEVEL_COLORS.get(record.levelno, '')}{tag}{COLOR_RESET}"

        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"[{tag}][UTC:{utc}][Local:{local}] {message}"


def level_from_verbosity(verbosity: int | str) -> int:
    """Map a 0-4 verbosity (or a level name) to a logging level.

    Args:
        verbosity: Integer 0-4, a digit string, or a name like "debug"

    Returns:
        logging level number

    Raises:
        ValueError: If the value is not a known verbosity
    """
    if isinstance(verbosity, str):
        value = verbosity.strip().lower()
        if value.isdigit():
            verbosity = int(value)
        elif value in LEVEL_NAMES:
            verbosity = LEVEL_NAMES[value]
        else:
            raise ValueError(f"Unknown log level: {verbosity}")

    if verbosity not in VERBOSITY_LEVELS:
        raise ValueError(f"Log level must be between 0 and 4 (got: {verbosity})")
    return VERBOSITY_LEVELS[verbosity]


def color_enabled(stream: TextIO, requested: bool = True) -> bool:
    """Colors only for a TTY and only when NO_COLOR is unset."""
    if not requested or os.environ.get("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def setup_logging(
    level: int = logging.INFO, color: bool = True, stream: TextIO | None = None
) -> logging.Logger:
    """Configure the autovault logger.

    Replaces any handler installed by an earlier call so repeated CLI
    invocations in one process do not duplicate output.

    Args:
        level: logging level (see level_from_verbosity)
        color: Allow ANSI colors (still subject to NO_COLOR and TTY checks)
        stream: Target stream (default: sys.stderr)

    Returns:
        The configured autovault logger
    """
    stream = stream or sys.stderr
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(StampFormatter(color=color_enabled(stream, color)))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
