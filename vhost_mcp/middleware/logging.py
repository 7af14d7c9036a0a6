"""Logging middleware for MCP tool calls."""

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from vhost_mcp.middleware.base import VhostMiddleware

# Arguments that identify which artifact a tool call touches
IDENTITY_ARGS = ("name", "import_id")

CallNext = Callable[[MiddlewareContext], Awaitable[Any]]


class LoggingMiddleware(VhostMiddleware):
    """Log every tool call with the artifact it targets, its outcome and duration.

    Line markers: ``>>>`` request, ``<<<`` response, ``!!!`` failure.
    Calls slower than ``slow_threshold_ms`` are logged at WARNING.

    Example:
        >>> mcp.add_middleware(LoggingMiddleware(slow_threshold_ms=2000))
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_payloads: bool = False,
        max_payload_length: int = 1000,
        slow_threshold_ms: float = 1000.0,
    ) -> None:
        """Initialize logging middleware.

        Args:
            logger: Optional custom logger.
            include_payloads: Also log full arguments and results at DEBUG.
            max_payload_length: Maximum payload length before truncation.
            slow_threshold_ms: Threshold in ms for slow call warnings.
        """
        super().__init__(logger=logger)
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length
        self.slow_threshold_ms = slow_threshold_ms

    def _payload(self, data: Any) -> str:
        try:
            text = json.dumps(data, default=str, sort_keys=True)
        except (TypeError, ValueError):
            text = repr(data)
        if len(text) <= self.max_payload_length:
            return text
        return text[: self.max_payload_length] + "... [truncated]"

    @staticmethod
    def _describe_call(tool: str, args: dict[str, Any] | None) -> str:
        """``tool(name='blog', kind='proxy')`` with long values elided."""
        if not args:
            return f"{tool}()"
        ordered = sorted(args, key=lambda k: (k not in IDENTITY_ARGS, k))
        shown = []
        for key in ordered:
            value = args[key]
            if isinstance(value, str) and len(value) > 50:
                value = value[:47] + "..."
            shown.append(f"{key}={value!r}")
        return f"{tool}({', '.join(shown)})"

    def _elapsed(self, start: float) -> tuple[float, str]:
        duration_ms = (time.perf_counter() - start) * 1000
        label = f"{duration_ms:.1f}ms"
        if duration_ms >= self.slow_threshold_ms:
            label += " SLOW!"
        return duration_ms, label

    @staticmethod
    def _first_line(error: BaseException) -> str:
        text = str(error)
        return text.splitlines()[0] if text else ""

    async def on_call_tool(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        """Log tool calls with target artifact, result summary and timing."""
        tool = getattr(context.message, "name", "unknown")
        args = getattr(context.message, "arguments", None)

        self.logger.info(">>> TOOL: %s", self._describe_call(tool, args))
        if self.include_payloads and args:
            self.logger.debug("    Args: %s", self._payload(args))

        start = time.perf_counter()
        try:
            result = await call_next(context)
        except Exception as e:
            # Diagnostics are multi-line; the error middleware logs the rest
            _, elapsed = self._elapsed(start)
            self.logger.error(
                "!!! TOOL: %s -> %s: %s [%s]",
                tool,
                type(e).__name__,
                self._first_line(e),
                elapsed,
            )
            raise

        duration_ms, elapsed = self._elapsed(start)
        level = logging.WARNING if duration_ms >= self.slow_threshold_ms else logging.INFO
        self.logger.log(
            level, "<<< TOOL: %s -> %s [%s]", tool, self._summarize_result(result), elapsed
        )
        if self.include_payloads and result is not None:
            self.logger.debug("    Result: %s", self._payload(result))
        return result

    async def on_list_tools(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        """Log tool listing requests."""
        start = time.perf_counter()
        result = await call_next(context)
        _, elapsed = self._elapsed(start)

        tools = getattr(result, "tools", result)
        count: int | str = len(tools) if isinstance(tools, (list, tuple, dict)) else "?"
        self.logger.info("<<< LIST TOOLS -> %s tool(s) [%s]", count, elapsed)
        return result

    async def on_message(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        """Log other protocol traffic at DEBUG."""
        method = context.method
        if method in ("tools/call", "tools/list"):
            return await call_next(context)

        start = time.perf_counter()
        self.logger.debug(">>> MCP: %s", method)
        try:
            result = await call_next(context)
        except Exception as e:
            _, elapsed = self._elapsed(start)
            self.logger.error(
                "!!! MCP: %s -> %s: %s [%s]", method, type(e).__name__, self._first_line(e), elapsed
            )
            raise

        _, elapsed = self._elapsed(start)
        self.logger.debug("<<< MCP: %s [%s]", method, elapsed)
        return result

    @staticmethod
    def _summarize_result(result: Any) -> str:
        """Short description of a tool result for the response line."""
        if result is None:
            return "null"
        if isinstance(result, str):
            first = result.splitlines()[0] if result else ""
            if len(first) > 80:
                first = first[:77] + "..."
            lines = result.count("\n") + 1
            return f"{first!r} ({lines} lines)" if lines > 1 else repr(first)
        content = getattr(result, "content", None)
        if isinstance(content, (list, tuple)):
            return f"{len(content)} content item(s)"
        if isinstance(result, (list, tuple, dict)):
            return f"{len(result)} items"
        return type(result).__name__
