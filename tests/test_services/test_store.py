"""Tests for the remote artifact store.

Commands run through the local shell, so these tests cover the real
command templates: quoting, temp-file writes and exit-status mapping.
"""

import shlex
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import asyncssh
import pytest

from vhost_mcp.errors import RemoteCommandError, TransportError, ValidationError
from vhost_mcp.models import (
    ArtifactKind,
    ArtifactState,
    Credential,
    DesiredArtifact,
    RemoteSession,
    RenderParams,
    SSHTarget,
)
from vhost_mcp.services.renderer import render
from vhost_mcp.services.store import RemoteArtifactStore


def _desired(path: Path, port: int = 8080, **params: object) -> DesiredArtifact:
    values: dict[str, object] = {
        "server_name": "blog.example.com",
        "listen_port": port,
        "root": "/var/www/blog",
    }
    values.update(params)
    return DesiredArtifact(
        identity="blog",
        destination_path=str(path),
        params=RenderParams(**values),  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_create_writes_rendered_content(store: RemoteArtifactStore, sites_dir: Path) -> None:
    """create writes exactly the rendered bytes to the destination."""
    desired = _desired(sites_dir / "blog.conf")

    observed = await store.create(desired)

    assert observed.state is ArtifactState.PRESENT
    assert observed.operation == "create"
    assert observed.content == render(desired.params)
    assert (sites_dir / "blog.conf").read_text() == observed.content
    assert observed.content.count("listen 8080;") == 1
    assert observed.content.count("server_name blog.example.com;") == 1


@pytest.mark.asyncio
async def test_create_leaves_no_temp_files(store: RemoteArtifactStore, sites_dir: Path) -> None:
    await store.create(_desired(sites_dir / "blog.conf"))

    assert sorted(p.name for p in sites_dir.iterdir()) == ["blog.conf"]


@pytest.mark.asyncio
async def test_update_then_read_sees_new_port(store: RemoteArtifactStore, sites_dir: Path) -> None:
    """Create on 8080, update to 8081, read returns the 8081 block."""
    path = sites_dir / "blog.conf"
    created = await store.create(_desired(path, 8080))

    updated = await store.update(_desired(path, 8081), created)
    observed = await store.read("blog", str(path))

    assert updated.operation == "update"
    assert observed.state is ArtifactState.PRESENT
    assert observed.content == updated.content
    assert "listen 8081;" in observed.content
    assert "listen 8080;" not in observed.content


@pytest.mark.asyncio
async def test_read_missing_file_is_absent(store: RemoteArtifactStore, sites_dir: Path) -> None:
    """Reading a never-created path reports absent, not an error."""
    observed = await store.read("ghost", str(sites_dir / "ghost.conf"), ArtifactKind.CONFIG)

    assert observed.state is ArtifactState.ABSENT
    assert observed.content is None
    assert observed.kind is ArtifactKind.CONFIG


@pytest.mark.asyncio
async def test_read_uses_single_round_trip(
    store: RemoteArtifactStore, sites_dir: Path, shell_connection: Any
) -> None:
    path = sites_dir / "blog.conf"
    path.write_text("server {}\n")
    shell_connection.commands.clear()

    observed = await store.read("blog", str(path))

    assert observed.content == "server {}\n"
    assert len(shell_connection.commands) == 1


@pytest.mark.asyncio
async def test_delete_is_idempotent(store: RemoteArtifactStore, sites_dir: Path) -> None:
    """Deleting twice succeeds both times and the file stays gone."""
    path = sites_dir / "blog.conf"
    await store.create(_desired(path))

    first = await store.delete("blog", str(path))
    second = await store.delete("blog", str(path))

    assert first.state is ArtifactState.ABSENT
    assert second.state is ArtifactState.ABSENT
    assert not path.exists()


@pytest.mark.asyncio
async def test_server_name_cannot_inject_commands(
    store: RemoteArtifactStore, sites_dir: Path, tmp_path: Path
) -> None:
    """Shell metacharacters in params end up as literal file content."""
    marker = tmp_path / "pwned"
    server_name = f"x'; touch {marker}; echo '"
    path = sites_dir / "blog.conf"

    observed = await store.create(_desired(path, server_name=server_name))

    assert not marker.exists()
    assert f"server_name {server_name};" in path.read_text()
    assert observed.content == path.read_text()


@pytest.mark.asyncio
async def test_path_metacharacters_are_literal(
    store: RemoteArtifactStore,
    sites_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A destination path full of shell syntax names exactly one file."""
    monkeypatch.chdir(sites_dir)
    path = sites_dir / "site;touch pwned;$(touch pwned2) `touch pwned3`.conf"

    await store.create(_desired(path))
    observed = await store.read("blog", str(path))
    await store.delete("blog", str(path))

    assert observed.state is ArtifactState.PRESENT
    assert not path.exists()
    assert list(sites_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_write_failure_raises_remote_command_error(
    store: RemoteArtifactStore, tmp_path: Path
) -> None:
    """Writing into a missing directory fails with state unknown."""
    path = tmp_path / "missing-dir" / "blog.conf"

    with pytest.raises(RemoteCommandError) as exc_info:
        await store.create(_desired(path))

    error = exc_info.value
    assert error.state == "unknown"
    assert error.returncode not in (None, 0)
    assert error.operation == "create"
    assert error.path == str(path)


@pytest.mark.asyncio
async def test_read_of_directory_is_command_error(
    store: RemoteArtifactStore, sites_dir: Path
) -> None:
    """A path that exists but cannot be read is an error, not absent."""
    with pytest.raises(RemoteCommandError) as exc_info:
        await store.read("blog", str(sites_dir))

    assert exc_info.value.operation == "read"


@pytest.mark.asyncio
async def test_transport_failure_reports_unknown_state(
    store: RemoteArtifactStore, sites_dir: Path, shell_connection: Any
) -> None:
    """A dropped channel surfaces as TransportError with state unknown."""
    shell_connection.fail_with = asyncssh.ConnectionLost("connection reset")

    with pytest.raises(TransportError) as exc_info:
        await store.create(_desired(sites_dir / "blog.conf"))

    assert exc_info.value.state == "unknown"
    assert exc_info.value.identity == "blog"
    assert "connection reset" in exc_info.value.message


@pytest.mark.asyncio
async def test_invalid_params_make_no_remote_call(
    store: RemoteArtifactStore, sites_dir: Path, shell_connection: Any
) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await store.create(_desired(sites_dir / "blog.conf", port=70000))

    assert exc_info.value.field == "listen_port"
    assert exc_info.value.operation == "create"
    assert shell_connection.commands == []


@pytest.mark.parametrize("path", ["relative/blog.conf", "/etc/../etc/passwd", "/etc/nginx/"])
@pytest.mark.asyncio
async def test_invalid_path_rejected(
    store: RemoteArtifactStore, shell_connection: Any, path: str
) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await store.read("blog", path)

    assert exc_info.value.field == "path"
    assert shell_connection.commands == []


@pytest.mark.asyncio
async def test_update_rejects_identity_change(
    store: RemoteArtifactStore, sites_dir: Path
) -> None:
    path = sites_dir / "blog.conf"
    desired = _desired(path)
    created = await store.create(desired)
    renamed = DesiredArtifact(identity="news", destination_path=str(path), params=desired.params)

    with pytest.raises(ValidationError) as exc_info:
        await store.update(renamed, created)

    assert exc_info.value.field == "name"


class _RecordingProvider:
    """Provider handing out sessions on a mock connection."""

    def __init__(self, connection: MagicMock) -> None:
        self.connection = connection

    async def acquire(self, target: SSHTarget) -> RemoteSession:
        return RemoteSession(target=target, connection=self.connection)

    @asynccontextmanager
    async def session(self, target: SSHTarget) -> AsyncIterator[RemoteSession]:
        remote = await self.acquire(target)
        try:
            yield remote
        finally:
            remote.release()

    async def close_all(self) -> None:
        pass


@pytest.fixture
def mock_connection() -> MagicMock:
    conn = MagicMock()
    conn.is_closed.return_value = False
    conn.run = AsyncMock(return_value=MagicMock(stdout="", stderr="", returncode=0))
    return conn


@pytest.fixture
def mock_store(mock_connection: MagicMock) -> RemoteArtifactStore:
    target = SSHTarget(host="testhost", credential=Credential("deploy", password="secret"))
    return RemoteArtifactStore(
        _RecordingProvider(mock_connection),
        target,
        use_sudo=True,
        temp_suffix=lambda: "abc123",
    )


@pytest.mark.asyncio
async def test_sudo_wraps_quoted_command(
    mock_store: RemoteArtifactStore, mock_connection: MagicMock
) -> None:
    """With sudo, the quoted command runs as a single sh -c argument."""
    await mock_store.delete("blog", "/etc/nginx/sites-available/my blog.conf")

    command = mock_connection.run.call_args.args[0]
    argv = shlex.split(command)
    assert argv[:4] == ["sudo", "-n", "sh", "-c"]
    assert argv[4] == "rm -f -- '/etc/nginx/sites-available/my blog.conf'"


@pytest.mark.asyncio
async def test_write_streams_content_on_stdin(
    mock_store: RemoteArtifactStore, mock_connection: MagicMock
) -> None:
    """Rendered content is passed as input, never on the command line."""
    desired = _desired(Path("/etc/nginx/sites-available/blog.conf"))

    await mock_store.create(desired)

    call = mock_connection.run.call_args
    assert call.kwargs["input"] == render(desired.params)
    assert "server_name" not in call.args[0]
    assert "/etc/nginx/sites-available/blog.conf.tmp-abc123" in call.args[0]


@pytest.mark.asyncio
async def test_delete_failure_raises(
    mock_store: RemoteArtifactStore, mock_connection: MagicMock
) -> None:
    mock_connection.run.return_value = MagicMock(
        stdout="", stderr="rm: cannot remove: Permission denied", returncode=1
    )

    with pytest.raises(RemoteCommandError) as exc_info:
        await mock_store.delete("blog", "/etc/nginx/sites-available/blog.conf")

    message = exc_info.value.message
    assert message.startswith("Failed to delete file at /etc/nginx/sites-available/blog.conf")
    assert "Permission denied" in message
    assert exc_info.value.state == "unknown"
