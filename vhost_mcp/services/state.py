"""Process-wide dependency access for the MCP tool layer.

Only the outer tool layer reads from here; core components receive their
collaborators through constructors.
"""

from vhost_mcp.dependencies import Dependencies

_deps: Dependencies | None = None


def get_dependencies() -> Dependencies:
    """Get or create the dependency container."""
    global _deps
    if _deps is None:
        _deps = Dependencies.create()
    return _deps


def set_dependencies(deps: Dependencies) -> None:
    """Set the global dependency container.

    Allows tests and the server lifespan to inject a container.

    Args:
        deps: Dependencies instance to use globally.
    """
    global _deps
    _deps = deps


def reset_state() -> None:
    """Reset global state for testing."""
    global _deps
    _deps = None
