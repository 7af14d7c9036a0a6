"""MCP tools for managing nginx virtual hosts on the remote host."""

import difflib
import logging

from fastmcp.exceptions import ToolError

from vhost_mcp.dependencies import Dependencies
from vhost_mcp.errors import DiagnosticToolError, VhostError
from vhost_mcp.models import ArtifactKind, DesiredArtifact, RenderParams, StateRecord
from vhost_mcp.services.driver import DriverResponse, PlanAction
from vhost_mcp.services.state import get_dependencies
from vhost_mcp.utils.validation import validate_identity

logger = logging.getLogger(__name__)


def _parse_kind(kind: str) -> ArtifactKind:
    try:
        return ArtifactKind(kind.strip().lower())
    except ValueError:
        choices = ", ".join(k.value for k in ArtifactKind)
        raise ToolError(f"Unknown kind {kind!r}. Expected one of: {choices}") from None


def _build_desired(
    deps: Dependencies,
    name: str,
    server_name: str,
    listen_port: int,
    root: str,
    path: str | None,
    kind: str,
    upstreams: list[str] | None,
) -> DesiredArtifact:
    try:
        identity = validate_identity(name)
    except VhostError as e:
        raise DiagnosticToolError([e.to_diagnostic()]) from e

    return DesiredArtifact(
        identity=identity,
        destination_path=path or deps.config.default_destination(identity),
        kind=_parse_kind(kind),
        params=RenderParams(
            server_name=server_name,
            listen_port=listen_port,
            root=root,
            upstreams=tuple(upstreams) if upstreams else None,
        ),
    )


def _diagnostics_text(response: DriverResponse) -> str:
    return "\n".join(d.format() for d in response.diagnostics)


def _check(response: DriverResponse) -> None:
    """Raise ToolError carrying the diagnostics of a failed response."""
    if response.has_error:
        raise DiagnosticToolError(response.diagnostics)


async def _tracked(deps: Dependencies, name: str, operation: str) -> StateRecord | None:
    try:
        return await deps.state.get(name)
    except VhostError as e:
        e.with_context(operation=operation, identity=name)
        raise DiagnosticToolError([e.to_diagnostic()]) from e


async def vhost_apply(
    name: str,
    server_name: str,
    listen_port: int,
    root: str,
    path: str | None = None,
    kind: str = "site",
    upstreams: list[str] | None = None,
) -> str:
    """Create or overwrite an nginx server block on the managed host.

    Args:
        name: Stable identity of the artifact (also the default file name).
        server_name: nginx server_name.
        listen_port: Port to listen on (1-65535).
        root: Document root directory.
        path: Absolute destination path
            (default: <VHOST_SITES_DIR>/<name>.conf).
        kind: One of site, config, proxy, api. proxy requires upstreams.
        upstreams: Upstream servers for load balancing ("host:port").

    Returns:
        Summary with the written path and rendered content.
    """
    deps = get_dependencies()
    desired = _build_desired(deps, name, server_name, listen_port, root, path, kind, upstreams)

    response = await deps.driver.apply(desired)
    _check(response)

    observed = response.observed
    assert observed is not None
    verb = "created" if observed.operation == "create" else "updated"
    summary = f"{verb} {observed.kind.value} '{observed.identity}' at {observed.destination_path}"
    if response.warnings:
        summary += "\n" + "\n".join(d.format() for d in response.warnings)
    return f"{summary}\n\n{observed.content}"


async def vhost_plan(
    name: str,
    server_name: str,
    listen_port: int,
    root: str,
    path: str | None = None,
    kind: str = "site",
    upstreams: list[str] | None = None,
) -> str:
    """Show what vhost_apply would do, using recorded state only.

    Args:
        Same as vhost_apply.

    Returns:
        Planned action (create, update, no-op) with a unified diff.
    """
    deps = get_dependencies()
    desired = _build_desired(deps, name, server_name, listen_port, root, path, kind, upstreams)

    plan = await deps.driver.plan(desired)
    if plan.diagnostics:
        raise DiagnosticToolError(plan.diagnostics)

    assert plan.action is not None and plan.content is not None
    lines = [f"Plan for '{plan.identity}': {plan.action.value}"]
    if plan.path_changed:
        lines.append(f"Destination changes to {desired.destination_path}")
    if plan.action is PlanAction.UPDATE:
        diff = difflib.unified_diff(
            (plan.recorded_content or "").splitlines(keepends=True),
            plan.content.splitlines(keepends=True),
            fromfile="recorded",
            tofile="desired",
        )
        lines.append("".join(diff).rstrip("\n"))
    elif plan.action is PlanAction.CREATE:
        lines.append(plan.content.rstrip("\n"))
    return "\n".join(lines)


async def vhost_refresh(name: str) -> str:
    """Re-read a tracked artifact from the remote host.

    An artifact found absent is dropped from state, so the next
    vhost_apply recreates it.

    Args:
        name: Identity of a tracked artifact.

    Returns:
        Current remote content, with a note if it drifted from state.
    """
    deps = get_dependencies()
    record = await _tracked(deps, name, "read")
    if record is None:
        raise ToolError(f"'{name}' is not tracked. Use vhost_apply or vhost_import.")

    response = await deps.driver.read(record.to_observed())
    _check(response)

    if response.dropped:
        return f"'{name}' is absent on the remote host and was removed from state.\n" + (
            _diagnostics_text(response)
        )

    observed = response.observed
    assert observed is not None
    drift = observed.content != record.rendered_content
    header = f"'{name}' at {observed.destination_path}"
    if drift:
        header += " (drift detected: remote content differs from last applied)"
    return f"{header}\n\n{observed.content}"


async def vhost_destroy(name: str) -> str:
    """Delete a tracked artifact from the remote host and from state.

    Deleting an artifact whose file is already gone succeeds.

    Args:
        name: Identity of a tracked artifact.
    """
    deps = get_dependencies()
    record = await _tracked(deps, name, "delete")
    if record is None:
        raise ToolError(f"'{name}' is not tracked; nothing to destroy.")

    response = await deps.driver.delete(record.to_observed())
    _check(response)
    return f"deleted '{name}' at {record.destination_path}"


async def vhost_import(import_id: str, kind: str = "site") -> str:
    """Start tracking an existing remote file.

    Args:
        import_id: "<name>:<absolute path>", e.g. "blog:/etc/nginx/sites-available/blog.conf".
        kind: Artifact kind to record (site, config, proxy, api).
    """
    deps = get_dependencies()
    response = await deps.driver.import_state(import_id, _parse_kind(kind))
    _check(response)

    observed = response.observed
    assert observed is not None
    if response.dropped:
        raise DiagnosticToolError(response.diagnostics)
    return f"imported '{observed.identity}' from {observed.destination_path}\n\n{observed.content}"


async def vhost_list() -> str:
    """List tracked artifacts and their last known state."""
    deps = get_dependencies()
    try:
        records = await deps.state.all()
    except VhostError as e:
        raise DiagnosticToolError([e.with_context(operation="list").to_diagnostic()]) from e
    if not records:
        return "No tracked artifacts."

    lines = [f"Tracked artifacts on {deps.target.key}:"]
    for record in records:
        lines.append(
            f"  {record.identity:<20} {record.kind.value:<7} "
            f"{record.last_known_presence.value:<8} {record.destination_path}"
        )
    return "\n".join(lines)
