"""Shared fixtures.

The remote host is simulated by running every command through the local
``/bin/sh``, so the quoting and exit-status handling of the real command
templates is exercised end to end.
"""

import asyncio
from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from vhost_mcp.models import Credential, SSHTarget
from vhost_mcp.services.driver import ReconciliationDriver
from vhost_mcp.services.session import SessionProvider
from vhost_mcp.services.state_store import StateStore
from vhost_mcp.services.store import RemoteArtifactStore


class LocalShellConnection:
    """Stand-in for an asyncssh connection that runs commands locally."""

    def __init__(self) -> None:
        self.commands: list[str] = []
        self.closed = False
        self.fail_with: BaseException | None = None

    def is_closed(self) -> bool:
        return self.closed

    def close(self) -> None:
        self.closed = True

    async def run(
        self,
        command: str,
        input: str | None = None,
        check: bool = False,
        timeout: float | None = None,
    ) -> SimpleNamespace:
        self.commands.append(command)
        if self.fail_with is not None:
            raise self.fail_with

        proc = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(input.encode() if input is not None else None),
            timeout,
        )
        return SimpleNamespace(
            stdout=stdout.decode(),
            stderr=stderr.decode(),
            returncode=proc.returncode,
        )


@pytest.fixture
def target() -> SSHTarget:
    """SSH target for the simulated host."""
    return SSHTarget(host="testhost", credential=Credential("deploy", password="secret"))


@pytest.fixture
def shell_connection() -> LocalShellConnection:
    return LocalShellConnection()


@pytest.fixture
def provider(shell_connection: LocalShellConnection) -> Iterator[SessionProvider]:
    """Real SessionProvider whose asyncssh.connect yields the local shell."""
    with patch(
        "vhost_mcp.services.session.asyncssh.connect",
        new=AsyncMock(return_value=shell_connection),
    ):
        yield SessionProvider(insecure=True)


@pytest.fixture
def store(provider: SessionProvider, target: SSHTarget) -> RemoteArtifactStore:
    return RemoteArtifactStore(provider, target, command_timeout=10)


@pytest.fixture
def state(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "state" / "state.json")


@pytest.fixture
def driver(store: RemoteArtifactStore, state: StateStore) -> ReconciliationDriver:
    return ReconciliationDriver(store, state)


@pytest.fixture
def sites_dir(tmp_path: Path) -> Path:
    """Directory standing in for /etc/nginx/sites-available."""
    path = tmp_path / "sites"
    path.mkdir()
    return path
