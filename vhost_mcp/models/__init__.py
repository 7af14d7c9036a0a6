"""Data models for vhost MCP."""

from vhost_mcp.models.artifact import (
    ArtifactKind,
    ArtifactState,
    DesiredArtifact,
    ObservedArtifact,
    RenderParams,
    StateRecord,
)
from vhost_mcp.models.command import CommandResult
from vhost_mcp.models.ssh import Credential, PooledConnection, RemoteSession, SSHTarget

__all__ = [
    "ArtifactKind",
    "ArtifactState",
    "CommandResult",
    "Credential",
    "DesiredArtifact",
    "ObservedArtifact",
    "PooledConnection",
    "RemoteSession",
    "RenderParams",
    "SSHTarget",
    "StateRecord",
]
