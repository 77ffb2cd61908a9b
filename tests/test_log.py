"""Tests for log.py."""

from __future__ import annotations

import io
import logging
import re

import pytest

from autovault.log import (
    COLOR_RESET,
    StampFormatter,
    color_enabled,
    level_from_verbosity,
    setup_logging,
)

LINE_PATTERN = re.compile(
    r"^\[(?P<tag>[A-Z]+)\]"
    r"\[UTC:\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z\]"
    r"\[Local:\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}[+-]\d{4}\] (?P<message>.*)$"
)


class FakeTTY(io.StringIO):
    def isatty(self) -> bool:
        return True


class TestLevelFromVerbosity:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (1, logging.ERROR),
            (2, logging.WARNING),
            (3, logging.INFO),
            (4, logging.DEBUG),
            ("4", logging.DEBUG),
            ("debug", logging.DEBUG),
            ("WARN", logging.WARNING),
            ("warning", logging.WARNING),
            (" info ", logging.INFO),
        ],
    )
    def test_known_values(self, value, expected):
        assert level_from_verbosity(value) == expected

    def test_silent_is_above_critical(self):
        assert level_from_verbosity(0) > logging.CRITICAL
        assert level_from_verbosity("silent") > logging.CRITICAL

    @pytest.mark.parametrize("value", [5, -1, "loud", "9"])
    def test_unknown_values(self, value):
        with pytest.raises(ValueError):
            level_from_verbosity(value)


class TestSetupLogging:
    """Tests for setup_logging and the line format"""

    def test_line_format(self):
        stream = io.StringIO()
        logger = setup_logging(logging.DEBUG, stream=stream)

        logger.getChild("structure").warning("Creating directory: %s", "/vault/Run")

        match = LINE_PATTERN.match(stream.getvalue().rstrip("\n"))
        assert match is not None
        assert match.group("tag") == "WARN"
        assert match.group("message") == "Creating directory: /vault/Run"

    def test_level_filters(self):
        stream = io.StringIO()
        logger = setup_logging(logging.WARNING, stream=stream)

        logger.info("hidden")
        logger.error("shown")

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert lines[0].startswith("[ERROR]")

    def test_silent(self):
        stream = io.StringIO()
        logger = setup_logging(level_from_verbosity(0), stream=stream)
        logger.critical("nothing")
        assert stream.getvalue() == ""

    def test_repeated_setup_does_not_duplicate(self):
        stream = io.StringIO()
        setup_logging(stream=stream)
        logger = setup_logging(stream=stream)

        logger.info("once")

        assert len(stream.getvalue().splitlines()) == 1

    def test_no_color_for_plain_streams(self):
        stream = io.StringIO()
        setup_logging(stream=stream, color=True).info("plain")
        assert "\033[" not in stream.getvalue()


class TestColor:
    def test_tty_gets_color(self):
        assert color_enabled(FakeTTY())

    def test_not_requested(self):
        assert not color_enabled(FakeTTY(), requested=False)

    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert not color_enabled(FakeTTY())

    def test_colored_tag(self):
        record = logging.LogRecord("autovault", logging.ERROR, __file__, 1, "boom", None, None)
        line = StampFormatter(color=True).format(record)
        assert COLOR_RESET in line
        assert line.endswith("] boom")
