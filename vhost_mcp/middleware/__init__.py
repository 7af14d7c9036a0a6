"""vhost MCP middleware components."""

from vhost_mcp.middleware.base import VhostMiddleware
from vhost_mcp.middleware.errors import ErrorHandlingMiddleware
from vhost_mcp.middleware.logging import LoggingMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
    "VhostMiddleware",
]
