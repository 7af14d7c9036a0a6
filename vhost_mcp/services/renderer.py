"""Artifact renderer.

Pure, deterministic mapping from render parameters to an nginx server
block. Validation runs first, against the per-kind constraint table, so
bad attributes are reported before any remote call is made.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from vhost_mcp.errors import ValidationError
from vhost_mcp.models import ArtifactKind, RenderParams

MIN_PORT = 1
MAX_PORT = 65535
INDENT = "    "


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _port(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and MIN_PORT <= value <= MAX_PORT
    )


def _upstream_list(value: Any) -> bool:
    return (
        isinstance(value, tuple | list)
        and len(value) > 0
        and all(_non_empty_str(item) for item in value)
    )


@dataclass(frozen=True)
class FieldRule:
    """Constraint on one render parameter."""

    name: str
    required: bool
    check: Callable[[Any], bool]
    message: str


SERVER_NAME = FieldRule("server_name", True, _non_empty_str, "server_name must be a non-empty string")
LISTEN_PORT = FieldRule(
    "listen_port", True, _port, f"listen_port must be an integer in [{MIN_PORT}, {MAX_PORT}]"
)
ROOT = FieldRule("root", True, _non_empty_str, "root must be a non-empty path")
UPSTREAMS = FieldRule("upstreams", False, _upstream_list, "upstreams must list at least one server")
UPSTREAMS_REQUIRED = FieldRule(
    "upstreams", True, _upstream_list, "upstreams must list at least one server"
)

FIELD_RULES: dict[ArtifactKind, tuple[FieldRule, ...]] = {
    ArtifactKind.SITE: (SERVER_NAME, LISTEN_PORT, ROOT, UPSTREAMS),
    ArtifactKind.CONFIG: (SERVER_NAME, LISTEN_PORT, ROOT, UPSTREAMS),
    ArtifactKind.API: (SERVER_NAME, LISTEN_PORT, ROOT, UPSTREAMS),
    ArtifactKind.PROXY: (SERVER_NAME, LISTEN_PORT, ROOT, UPSTREAMS_REQUIRED),
}


def validate_params(params: RenderParams, kind: ArtifactKind = ArtifactKind.SITE) -> None:
    """Check params against the constraint table for ``kind``.

    Raises:
        ValidationError: Attributed to the first invalid field
    """
    for rule in FIELD_RULES[kind]:
        value = getattr(params, rule.name)
        if value is None:
            if rule.required:
                raise ValidationError(rule.name, f"{rule.name} is required for {kind.value}")
            continue
        if not rule.check(value):
            raise ValidationError(rule.name, f"{rule.message}, got {value!r}")


def upstream_name(server_name: str) -> str:
    """Derive a stable nginx upstream identifier from a server name."""
    slug = re.sub(r"[^A-Za-z0-9_]+", "_", server_name).strip("_") or "default"
    return f"{slug}_backend"


def render(params: RenderParams, kind: ArtifactKind = ArtifactKind.SITE) -> str:
    """Render the canonical server block for ``params``.

    Output uses four-space indentation, LF line endings and exactly one
    trailing newline, and is byte-identical for identical inputs.

    Raises:
        ValidationError: If params violate the constraints for ``kind``
    """
    validate_params(params, kind)

    lines: list[str] = []
    if params.upstreams:
        backend = upstream_name(params.server_name)
        lines.append(f"upstream {backend} {{")
        lines.extend(f"{INDENT}server {server};" for server in params.upstreams)
        lines.append("}")
        lines.append("")
        location = [f"proxy_pass http://{backend};", "proxy_set_header Host $host;"]
    else:
        location = ["try_files $uri $uri/ =404;"]

    lines.extend(
        [
            "server {",
            f"{INDENT}listen {params.listen_port};",
            f"{INDENT}server_name {params.server_name};",
            "",
            f"{INDENT}root {params.root};",
            f"{INDENT}index index.html;",
            "",
            f"{INDENT}location / {{",
            *(f"{INDENT * 2}{directive}" for directive in location),
            f"{INDENT}}}",
            "}",
        ]
    )
    return "\n".join(lines) + "\n"
