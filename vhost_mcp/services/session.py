"""Remote session provider.

Owns the authenticated SSH connection(s) to the managed host and hands out
short-lived sessions on demand.

Locking Strategy:
- `_meta_lock`: Protects the _connections dict and _target_locks dict structure
- Per-target locks: Protect connection creation/removal for one target
- Lock acquisition order: Always per-target lock first, then meta-lock if needed

Every acquire() returns a fresh RemoteSession. With connection reuse on
(the default) sessions share one pooled connection and each command opens
its own SSH channel; with reuse off every session owns a dedicated
connection that is closed when the session is released.

Connection failures are never retried here; retry is a caller policy.
"""

import asyncio
import logging
import socket
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncssh

from vhost_mcp.errors import ConnectionError, ValidationError
from vhost_mcp.models import PooledConnection, RemoteSession, SSHTarget

logger = logging.getLogger(__name__)


def classify_connect_error(error: BaseException) -> str:
    """Map a connect-time exception to a ConnectionError reason."""
    if isinstance(error, asyncssh.HostKeyNotVerifiable):
        return "hostkey"
    if isinstance(error, (asyncssh.PermissionDenied, asyncssh.KeyImportError)):
        return "auth"
    if isinstance(error, asyncio.TimeoutError):
        return "timeout"
    if isinstance(error, socket.gaierror):
        return "dns"
    return "refused"


class SessionProvider:
    """Manufactures RemoteSessions for SSH targets."""

    def __init__(
        self,
        known_hosts: str | None = None,
        connect_timeout: float = 10,
        reuse_connection: bool = True,
        insecure: bool = False,
    ) -> None:
        """Initialize the provider.

        Host keys are always verified unless ``insecure`` is set. Without
        an explicit ``known_hosts`` path asyncssh checks the user's
        ``~/.ssh/known_hosts``.

        Args:
            known_hosts: Path to known_hosts file, or None for asyncssh's default
            connect_timeout: Seconds allowed for connect and authentication
            reuse_connection: Share one connection per target across sessions
            insecure: Accept any host key
        """
        if connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be > 0, got {connect_timeout}")

        self.connect_timeout = connect_timeout
        self.reuse_connection = reuse_connection
        self.insecure = insecure
        self._known_hosts = known_hosts
        self._connections: dict[str, PooledConnection] = {}
        self._target_locks: dict[str, asyncio.Lock] = {}
        self._meta_lock = asyncio.Lock()

        if insecure:
            logger.warning(
                "SSH host key verification DISABLED - vulnerable to MITM attacks. "
                "Set VHOST_KNOWN_HOSTS to a valid known_hosts file path."
            )
        else:
            logger.info(
                "SSH host key verification enabled (known_hosts=%s)",
                self._known_hosts or "~/.ssh/known_hosts",
            )

    @property
    def verifies_host_keys(self) -> bool:
        return not self.insecure

    def _host_key_options(self) -> dict[str, str | None]:
        if self.insecure:
            return {"known_hosts": None}
        if self._known_hosts is not None:
            return {"known_hosts": self._known_hosts}
        return {}

    async def _get_target_lock(self, key: str) -> asyncio.Lock:
        async with self._meta_lock:
            if key not in self._target_locks:
                self._target_locks[key] = asyncio.Lock()
            return self._target_locks[key]

    @staticmethod
    def _check_target(target: SSHTarget) -> None:
        if not target.host:
            raise ValidationError("host", "A valid hostname or IP is required.")
        if not target.credential.is_complete:
            raise ValidationError(
                "password",
                f"Incomplete credential for {target.key}: a username and a "
                f"password or identity file are required.",
            )

    async def _connect(self, target: SSHTarget) -> asyncssh.SSHClientConnection:
        """Open one authenticated connection, failing fast.

        Raises:
            ConnectionError: With reason dns|refused|auth|timeout|hostkey. An
                unreadable or passphrase-protected identity file is "auth".
        """
        credential = target.credential
        client_keys = [credential.identity_file] if credential.identity_file else None

        logger.info("Opening SSH connection to %s", target.key)
        try:
            conn = await asyncio.wait_for(
                asyncssh.connect(
                    target.host,
                    port=target.port,
                    username=credential.username,
                    password=credential.password,
                    client_keys=client_keys,
                    **self._host_key_options(),
                ),
                timeout=self.connect_timeout,
            )
        except (asyncssh.Error, asyncssh.KeyImportError, OSError, asyncio.TimeoutError) as e:
            reason = classify_connect_error(e)
            logger.error("SSH connection to %s failed (%s): %s", target.key, reason, e)
            raise ConnectionError(target.host, reason, e) from e

        logger.info("SSH connection established to %s", target.key)
        return conn

    async def acquire(self, target: SSHTarget) -> RemoteSession:
        """Get a new session on the target host.

        Raises:
            ValidationError: If the target is missing a host or credential
            ConnectionError: If the connection cannot be established
        """
        self._check_target(target)

        if not self.reuse_connection:
            conn = await self._connect(target)
            return RemoteSession(target=target, connection=conn, owns_connection=True)

        target_lock = await self._get_target_lock(target.key)
        async with target_lock:
            pooled = self._connections.get(target.key)

            if pooled and not pooled.is_stale:
                pooled.touch()
                logger.debug("Reusing existing connection to %s", target.key)
                return RemoteSession(target=target, connection=pooled.connection)

            if pooled and pooled.is_stale:
                logger.info("Connection to %s is stale, creating new connection", target.key)

            conn = await self._connect(target)

            async with self._meta_lock:
                self._connections[target.key] = PooledConnection(connection=conn)

            return RemoteSession(target=target, connection=conn)

    @asynccontextmanager
    async def session(self, target: SSHTarget) -> AsyncIterator[RemoteSession]:
        """Acquire a session and release it when the block exits."""
        remote = await self.acquire(target)
        try:
            yield remote
        finally:
            remote.release()

    async def remove_connection(self, key: str) -> None:
        """Close and forget the pooled connection for a target key.

        Args:
            key: Target key (``user@host:port``).
        """
        target_lock = await self._get_target_lock(key)
        async with target_lock:
            async with self._meta_lock:
                pooled = self._connections.pop(key, None)
            if pooled is None:
                logger.debug("No connection to remove for %s (not in pool)", key)
                return
            logger.info("Closing connection to %s", key)
            pooled.connection.close()

    async def close_all(self) -> None:
        """Close all pooled connections."""
        async with self._meta_lock:
            keys = list(self._connections.keys())

        if keys:
            logger.info("Closing all %d connection(s)", len(keys))
        for key in keys:
            await self.remove_connection(key)

    @property
    def pool_size(self) -> int:
        """Return the current number of pooled connections."""
        return len(self._connections)

    @property
    def active_hosts(self) -> list[str]:
        """Return target keys with pooled connections."""
        return list(self._connections.keys())
