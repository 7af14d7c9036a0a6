"""vhost MCP FastMCP server.

This is a thin wrapper that wires the MCP server to the vhost tools.
All reconciliation logic lives in the services/ modules.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from vhost_mcp.config import Settings
from vhost_mcp.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from vhost_mcp.services.state import get_dependencies
from vhost_mcp.tools import (
    vhost_apply,
    vhost_destroy,
    vhost_import,
    vhost_list,
    vhost_plan,
    vhost_refresh,
)
from vhost_mcp.utils.console import MCPRequestFormatter

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "asyncssh",
    "httpx",
    "httpcore",
    "fastmcp",
    "starlette",
    "anyio",
)


def _configure_logging(settings: Settings) -> None:
    """Configure colorful logging for the vhost_mcp package.

    Called at module load time so loggers are configured regardless of
    how the server is started.
    """
    use_colors = settings.log_colors and sys.stderr.isatty()

    vhost_logger = logging.getLogger("vhost_mcp")
    vhost_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    # Only add handler if not already configured
    if not vhost_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            MCPRequestFormatter(use_colors=use_colors, timezone=settings.log_timezone)
        )
        vhost_logger.addHandler(handler)
        vhost_logger.propagate = False

    for name in NOISY_LOGGERS:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING)
        lg.handlers = []
        lg.propagate = False

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(logging.WARNING)


_configure_logging(Settings.from_env())

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Assemble dependencies at startup and close SSH connections on shutdown.

    Args:
        server: The FastMCP server instance

    Yields:
        Dict with the managed target key
    """
    logger.info("vhost MCP server starting up")

    deps = get_dependencies()
    logger.info(
        "Managing %s (sites_dir=%s, state=%s, sudo=%s)",
        deps.target.key,
        deps.config.settings.sites_dir,
        deps.config.settings.state_file,
        deps.config.settings.use_sudo,
    )
    if not deps.provider.verifies_host_keys:
        logger.warning("Host key verification is DISABLED for %s", deps.target.host)
    logger.info("vhost MCP server ready to accept connections")

    try:
        yield {"target": deps.target.key}
    finally:
        logger.info("vhost MCP server shutting down")
        if deps.provider.pool_size > 0:
            logger.info(
                "Closing %d active SSH connection(s): %s",
                deps.provider.pool_size,
                ", ".join(deps.provider.active_hosts),
            )
        await deps.cleanup()
        logger.info("vhost MCP server shutdown complete")


def configure_middleware(server: FastMCP, settings: Settings | None = None) -> None:
    """Configure middleware stack for the server.

    Adds middleware in order: ErrorHandling -> Logging

    Environment variables:
        VHOST_LOG_PAYLOADS: Set to "true" to log request/response payloads
        VHOST_SLOW_THRESHOLD_MS: Threshold for slow request warnings (default: 1000)
        VHOST_INCLUDE_TRACEBACK: Set to "true" to include tracebacks in error logs

    Args:
        server: The FastMCP server to configure.
        settings: Settings to read; loaded from the environment if omitted.
    """
    settings = settings or Settings.from_env()

    # First added = innermost
    server.add_middleware(
        ErrorHandlingMiddleware(include_traceback=settings.include_traceback)
    )
    server.add_middleware(
        LoggingMiddleware(
            include_payloads=settings.log_payloads,
            slow_threshold_ms=float(settings.slow_threshold_ms),
        )
    )


def create_server() -> FastMCP:
    """Create and configure the MCP server with middleware and tools.

    Returns:
        Configured FastMCP server instance
    """
    server = FastMCP(
        "vhost_mcp",
        lifespan=app_lifespan,
    )

    configure_middleware(server)

    server.tool()(vhost_apply)
    server.tool()(vhost_plan)
    server.tool()(vhost_refresh)
    server.tool()(vhost_destroy)
    server.tool()(vhost_import)
    server.tool()(vhost_list)

    # Health check endpoint for HTTP transport
    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server


# Default server instance
mcp = create_server()
