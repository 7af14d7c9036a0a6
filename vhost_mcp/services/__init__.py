"""Services for vhost MCP."""

from vhost_mcp.services.driver import (
    DriverResponse,
    PlanAction,
    PlanResult,
    ReconciliationDriver,
)
from vhost_mcp.services.executor import run_command
from vhost_mcp.services.renderer import FIELD_RULES, render, validate_params
from vhost_mcp.services.session import SessionProvider, classify_connect_error
from vhost_mcp.services.state_store import StateFileError, StateStore
from vhost_mcp.services.store import RemoteArtifactStore

__all__ = [
    "classify_connect_error",
    "DriverResponse",
    "FIELD_RULES",
    "PlanAction",
    "PlanResult",
    "ReconciliationDriver",
    "RemoteArtifactStore",
    "render",
    "run_command",
    "SessionProvider",
    "StateFileError",
    "StateStore",
    "validate_params",
]
