"""Tests for the console log formatters."""

import logging

from vhost_mcp.utils.console import ColorfulFormatter, MCPRequestFormatter


def _record(name: str, message: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, message, None, None)


def test_plain_format_has_level_component_and_message() -> None:
    formatter = ColorfulFormatter(use_colors=False)

    line = formatter.format(_record("vhost_mcp.services.store", "Deleted blog"))

    parts = [part.strip() for part in line.split("|")]
    assert parts[1] == "INFO"
    assert parts[2] == "services.store"
    assert parts[3] == "Deleted blog"
    assert "\033[" not in line


def test_colored_format_highlights_targets() -> None:
    formatter = ColorfulFormatter(use_colors=True)

    line = formatter.format(_record("vhost_mcp.services.session", "Opening deploy@web01:22"))

    assert "\033[" in line
    assert "deploy@web01:22" in line


def test_unknown_timezone_falls_back_to_utc() -> None:
    formatter = ColorfulFormatter(use_colors=False, timezone="Not/AZone")
    assert str(formatter.zone) == "UTC"


def test_request_formatter_marks_failures() -> None:
    formatter = MCPRequestFormatter(use_colors=True)

    line = formatter.format(_record("vhost_mcp.services.driver", "update blog failed"))

    assert "!!" in line.split("|")[0]


def test_request_formatter_without_colors_has_no_marker() -> None:
    formatter = MCPRequestFormatter(use_colors=False)

    line = formatter.format(_record("vhost_mcp.server", "vhost MCP server ready"))

    assert not line.startswith(">>>")
