"""SSH-related data models."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import asyncssh


@dataclass(frozen=True)
class Credential:
    """Authentication material for one SSH principal."""

    username: str
    password: str | None = field(default=None, repr=False)
    identity_file: str | None = None

    @property
    def is_complete(self) -> bool:
        """A principal plus a secret or a key."""
        return bool(self.username) and bool(self.password or self.identity_file)


@dataclass(frozen=True)
class SSHTarget:
    """Remote host to manage."""

    host: str
    credential: Credential
    port: int = 22

    @property
    def key(self) -> str:
        """Pool key for this target."""
        return f"{self.credential.username}@{self.host}:{self.port}"


@dataclass
class PooledConnection:
    """A pooled SSH connection with last-used timestamp."""

    connection: "asyncssh.SSHClientConnection"
    last_used: datetime = field(default_factory=datetime.now)

    def touch(self) -> None:
        """Update last-used timestamp."""
        self.last_used = datetime.now()

    @property
    def is_stale(self) -> bool:
        """Check if connection was closed."""
        return bool(self.connection.is_closed())


@dataclass
class RemoteSession:
    """An authenticated command channel to one host.

    Commands on a session are serialized through ``lock``; the executor
    holds it for the full lifetime of each command.
    """

    target: SSHTarget
    connection: "asyncssh.SSHClientConnection"
    owns_connection: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _released: bool = field(default=False, init=False, repr=False)

    @property
    def is_alive(self) -> bool:
        return not self._released and not self.connection.is_closed()

    def release(self) -> None:
        """Release the session, closing the connection if it owns it."""
        if self._released:
            return
        self._released = True
        if self.owns_connection:
            self.connection.close()
