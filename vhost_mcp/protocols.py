"""Protocol interfaces for dependency inversion.

Components receive their collaborators through these interfaces at
construction time, so tests can substitute fakes without patching.

Usage Example:

    from vhost_mcp.protocols import RemoteSessionProvider

    class FakeProvider:
        async def acquire(self, target):
            return RemoteSession(target=target, connection=fake_conn)

        @asynccontextmanager
        async def session(self, target):
            yield await self.acquire(target)

    store = RemoteArtifactStore(FakeProvider(), target)
"""

from contextlib import AbstractAsyncContextManager
from typing import Protocol, runtime_checkable

from vhost_mcp.models import RemoteSession, SSHTarget, StateRecord


@runtime_checkable
class RemoteSessionProvider(Protocol):
    """Source of authenticated remote sessions."""

    async def acquire(self, target: SSHTarget) -> RemoteSession:
        """Open a session on the target host.

        Raises:
            ConnectionError: If the host cannot be reached or authenticated
        """
        ...

    def session(self, target: SSHTarget) -> AbstractAsyncContextManager[RemoteSession]:
        """Acquire a session that is released when the context exits."""
        ...

    async def close_all(self) -> None:
        """Release every pooled connection."""
        ...


@runtime_checkable
class StateBackend(Protocol):
    """Persistence for tracked artifacts, keyed by identity."""

    async def get(self, identity: str) -> StateRecord | None:
        """Return the record for ``identity``, or None if untracked."""
        ...

    async def put(self, record: StateRecord) -> None:
        """Insert or replace the record for ``record.identity``."""
        ...

    async def remove(self, identity: str) -> bool:
        """Drop the record; return whether one existed."""
        ...

    async def all(self) -> list[StateRecord]:
        """Return every tracked record, ordered by identity."""
        ...
