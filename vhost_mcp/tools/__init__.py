"""MCP tools for vhost MCP."""

from vhost_mcp.tools.vhost import (
    vhost_apply,
    vhost_destroy,
    vhost_import,
    vhost_list,
    vhost_plan,
    vhost_refresh,
)

__all__ = [
    "vhost_apply",
    "vhost_destroy",
    "vhost_import",
    "vhost_list",
    "vhost_plan",
    "vhost_refresh",
]
