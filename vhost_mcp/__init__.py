"""MCP server that reconciles nginx virtual host files on a remote host over SSH."""

__version__ = "0.1.0"
