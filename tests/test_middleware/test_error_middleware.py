"""Tests for error handling middleware."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from vhost_mcp.errors import DiagnosticToolError, TransportError, ValidationError
from vhost_mcp.middleware.errors import ErrorHandlingMiddleware


@pytest.fixture
def error_middleware() -> ErrorHandlingMiddleware:
    """Create an error handling middleware instance."""
    return ErrorHandlingMiddleware()


@pytest.fixture
def mock_context() -> MagicMock:
    """Create a mock middleware context."""
    context = MagicMock()
    context.method = "tools/call"
    context.message = MagicMock()
    context.message.name = "vhost_apply"
    return context


@pytest.mark.asyncio
async def test_error_middleware_passes_through_success(
    error_middleware: ErrorHandlingMiddleware,
    mock_context: MagicMock,
) -> None:
    call_next = AsyncMock(return_value="success")

    result = await error_middleware.on_message(mock_context, call_next)

    assert result == "success"
    assert error_middleware.get_error_stats() == {}


@pytest.mark.asyncio
async def test_error_middleware_logs_and_reraises(mock_context: MagicMock) -> None:
    mock_logger = MagicMock()
    middleware = ErrorHandlingMiddleware(logger=mock_logger, include_traceback=True)
    error = ValueError("test error")

    with pytest.raises(ValueError):
        await middleware.on_message(mock_context, AsyncMock(side_effect=error))

    mock_logger.error.assert_called_once()
    assert "ValueError" in str(mock_logger.error.call_args)
    assert mock_logger.error.call_args.kwargs["exc_info"] is error


@pytest.mark.asyncio
async def test_validation_errors_logged_as_warning(mock_context: MagicMock) -> None:
    """Bad input is the caller's problem, not a server error."""
    mock_logger = MagicMock()
    middleware = ErrorHandlingMiddleware(logger=mock_logger)
    error = ValidationError("listen_port", "bad port", operation="create", identity="blog")

    with pytest.raises(ValidationError):
        await middleware.on_message(mock_context, AsyncMock(side_effect=error))

    mock_logger.error.assert_not_called()
    assert "tools/call [create blog]" in str(mock_logger.warning.call_args)


@pytest.mark.asyncio
async def test_error_middleware_counts_vhost_errors_by_kind(
    error_middleware: ErrorHandlingMiddleware,
    mock_context: MagicMock,
) -> None:
    """Reconciliation errors are counted under their kind."""
    for error in (
        TransportError("channel closed"),
        TransportError("timed out"),
        ValidationError("listen_port", "bad port"),
        RuntimeError("boom"),
    ):
        with pytest.raises(type(error)):
            await error_middleware.on_message(mock_context, AsyncMock(side_effect=error))

    assert error_middleware.get_error_stats() == {
        "transport": 2,
        "validation": 1,
        "RuntimeError": 1,
    }

    error_middleware.reset_stats()
    assert error_middleware.get_error_stats() == {}


@pytest.mark.asyncio
async def test_error_callback_invoked(mock_context: MagicMock) -> None:
    callback = MagicMock()
    middleware = ErrorHandlingMiddleware(error_callback=callback)
    error = ValueError("test")

    with pytest.raises(ValueError):
        await middleware.on_message(mock_context, AsyncMock(side_effect=error))

    callback.assert_called_once_with(error, mock_context)


@pytest.mark.asyncio
async def test_failing_callback_does_not_mask_error(mock_context: MagicMock) -> None:
    mock_logger = MagicMock()
    middleware = ErrorHandlingMiddleware(
        logger=mock_logger, error_callback=MagicMock(side_effect=RuntimeError("callback broke"))
    )

    with pytest.raises(ValueError):
        await middleware.on_message(mock_context, AsyncMock(side_effect=ValueError("original")))

    mock_logger.warning.assert_called_once()


@pytest.mark.asyncio
async def test_tool_errors_counted_by_diagnostic_kind(mock_context: MagicMock) -> None:
    """Tool failures built from driver responses count under their error kind."""
    mock_logger = MagicMock()
    middleware = ErrorHandlingMiddleware(logger=mock_logger)
    transport = DiagnosticToolError(
        [TransportError("channel closed", operation="update", identity="blog").to_diagnostic()]
    )
    rejected = DiagnosticToolError(
        [ValidationError("listen_port", "bad port", operation="create", identity="shop").to_diagnostic()]
    )

    for error in (transport, rejected):
        with pytest.raises(DiagnosticToolError):
            await middleware.on_message(mock_context, AsyncMock(side_effect=error))

    assert middleware.get_error_stats() == {"transport": 1, "validation": 1}
    assert "tools/call [update blog]" in str(mock_logger.error.call_args)
    assert "tools/call [create shop]" in str(mock_logger.warning.call_args)
