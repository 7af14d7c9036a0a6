"""Utilities for vhost MCP."""

from vhost_mcp.utils.console import ColorfulFormatter, MCPRequestFormatter
from vhost_mcp.utils.parser import parse_import_id
from vhost_mcp.utils.shell import format_command, privileged, quote_arg
from vhost_mcp.utils.validation import (
    PathTraversalError,
    validate_host,
    validate_identity,
    validate_path,
)

__all__ = [
    "ColorfulFormatter",
    "format_command",
    "MCPRequestFormatter",
    "parse_import_id",
    "PathTraversalError",
    "privileged",
    "quote_arg",
    "validate_host",
    "validate_identity",
    "validate_path",
]
