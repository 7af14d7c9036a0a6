"""Colorful console logging formatter."""

import logging
import re
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Longest prefix wins, so order does not matter here
COMPONENT_COLORS = {
    "vhost_mcp.server": COLORS["bright_cyan"],
    "vhost_mcp.services.session": COLORS["bright_magenta"],
    "vhost_mcp.services.store": COLORS["bright_blue"],
    "vhost_mcp.services.driver": COLORS["cyan"],
    "vhost_mcp.tools": COLORS["bright_blue"],
    "vhost_mcp.middleware": COLORS["yellow"],
    "vhost_mcp.config": COLORS["green"],
}

# (pattern, color) pairs applied to the message body
HIGHLIGHTS = [
    (re.compile(r"(\d+\.?\d*ms)"), COLORS["bright_yellow"]),
    (re.compile(r"([\w.\-]+@[\w.\-]+:\d+)"), COLORS["bright_magenta"]),
    (re.compile(r"(state=\w+)"), COLORS["cyan"]),
]

PACKAGE_PREFIX = "vhost_mcp."


def _resolve_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


class ColorfulFormatter(logging.Formatter):
    """Colorful log formatter with timestamps and component highlighting."""

    def __init__(self, use_colors: bool = True, timezone: str = "UTC") -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors.
            timezone: IANA zone name for timestamps (falls back to UTC).
        """
        super().__init__()
        self.use_colors = use_colors
        self.zone = _resolve_zone(timezone)

    def _colorize(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _component_color(self, name: str) -> str:
        matches = [prefix for prefix in COMPONENT_COLORS if name.startswith(prefix)]
        if not matches:
            return COLORS["white"]
        return COMPONENT_COLORS[max(matches, key=len)]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created, tz=self.zone)
        return f"{dt:%H:%M:%S}.{int(record.msecs):03d} {dt:%m/%d}"

    def _format_component(self, record: logging.LogRecord) -> str:
        name = record.name.removeprefix(PACKAGE_PREFIX)
        return self._colorize(f"{name:<20}", self._component_color(record.name))

    def _highlight_message(self, message: str) -> str:
        if not self.use_colors:
            return message
        for pattern, color in HIGHLIGHTS:
            message = pattern.sub(f"{color}\\1{COLORS['reset']}", message)
        return message

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as ``time | level | component | message``."""
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._colorize(
            f"{record.levelname:<8}",
            LEVEL_COLORS.get(record.levelname, COLORS["white"]),
        )
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())

        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class MCPRequestFormatter(ColorfulFormatter):
    """Extended formatter with markers for request and lifecycle events."""

    MARKERS = [
        (("starting", "ready"), "bright_green", ">>>"),
        (("shutting down", "shutdown"), "bright_red", "<<<"),
        (("error", "failed"), "bright_red", "!!"),
        (("warning", "slow"), "bright_yellow", "!"),
        (("created", "updated", "deleted", "succeeded"), "bright_green", "OK"),
        (("opening", "writing"), "bright_cyan", "+"),
        (("closing", "removing"), "bright_yellow", "-"),
        (("reusing",), "bright_magenta", "~"),
    ]

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.use_colors:
            return base

        message = record.getMessage().lower()
        for words, color, marker in self.MARKERS:
            if any(word in message for word in words):
                return f"{COLORS[color]}{marker:<3}{COLORS['reset']} {base}"
        return f"    {base}"
