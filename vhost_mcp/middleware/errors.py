"""Error handling middleware: log, count and re-raise request failures."""

import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from vhost_mcp.errors import Diagnostic, DiagnosticToolError, ErrorKind, VhostError
from vhost_mcp.middleware.base import VhostMiddleware

ErrorCallback = Callable[[Exception, MiddlewareContext], None]
CallNext = Callable[[MiddlewareContext], Awaitable[Any]]


def _diagnostic_of(error: Exception) -> Diagnostic | None:
    if isinstance(error, DiagnosticToolError):
        return error.primary
    if isinstance(error, VhostError):
        return error.to_diagnostic()
    return None


class ErrorHandlingMiddleware(VhostMiddleware):
    """Log every failed request, count failures, then re-raise.

    Failures that carry a diagnostic (tool errors raised from driver
    responses, or reconciliation errors) are counted under the error kind
    (``validation``, ``transport``...), anything else under its class
    name. Validation failures are user input problems and log at WARNING.

    Example:
        >>> def on_error(exc, ctx):
        ...     print(f"Error in {ctx.method}: {exc}")
        >>> mcp.add_middleware(ErrorHandlingMiddleware(error_callback=on_error))
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_traceback: bool = False,
        error_callback: ErrorCallback | None = None,
    ) -> None:
        """Initialize error handling middleware.

        Args:
            logger: Optional custom logger.
            include_traceback: Attach the traceback to error log records.
            error_callback: Called with (exception, context) for each failure.
        """
        super().__init__(logger=logger)
        self.include_traceback = include_traceback
        self.error_callback = error_callback
        self._counts: Counter[str] = Counter()

    def get_error_stats(self) -> dict[str, int]:
        """Failure counts keyed by error kind or exception type."""
        return dict(self._counts)

    def reset_stats(self) -> None:
        self._counts.clear()

    def _log(self, context: MiddlewareContext, error: Exception, diagnostic: Diagnostic | None) -> None:
        where = context.method
        if diagnostic is not None and diagnostic.identity:
            where = f"{where} [{diagnostic.operation or '?'} {diagnostic.identity}]"

        if diagnostic is not None and diagnostic.kind is ErrorKind.VALIDATION:
            self.logger.warning("Rejected %s: %s", where, diagnostic.detail)
            return

        self.logger.error(
            "Error in %s: %s: %s",
            where,
            type(error).__name__,
            diagnostic.detail if diagnostic is not None else error,
            exc_info=error if self.include_traceback else None,
        )

    async def on_message(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        """Pass the request through; on failure log, count and re-raise."""
        try:
            return await call_next(context)
        except Exception as e:
            diagnostic = _diagnostic_of(e)
            if diagnostic is not None and diagnostic.kind is not None:
                self._counts[diagnostic.kind.value] += 1
            else:
                self._counts[type(e).__name__] += 1
            self._log(context, e, diagnostic)

            if self.error_callback:
                try:
                    self.error_callback(e, context)
                except Exception as callback_error:
                    self.logger.warning("Error callback failed: %s", callback_error)
            raise
