"""Remote artifact store: the convergence engine.

Four single-shot operations against a stateless remote file. Each remote
mutation or probe is exactly one command invocation; paths are quoted and
content is streamed on stdin, never placed on the command line.

State belief after each operation:
- create/update success -> present (content = rendered)
- read -> present(content) | absent
- delete success (including already absent) -> absent
- any transport or command failure -> error carrying state "unknown"
"""

import logging
import secrets
from collections.abc import Callable

from vhost_mcp.errors import RemoteCommandError, TransportError, ValidationError
from vhost_mcp.models import (
    ArtifactKind,
    ArtifactState,
    CommandResult,
    DesiredArtifact,
    ObservedArtifact,
    SSHTarget,
)
from vhost_mcp.protocols import RemoteSessionProvider
from vhost_mcp.services.executor import run_command
from vhost_mcp.services.renderer import render
from vhost_mcp.utils.shell import format_command, privileged
from vhost_mcp.utils.validation import PathTraversalError, validate_path

logger = logging.getLogger(__name__)

# Exit status used by the read probe when the file does not exist
ABSENT_EXIT_STATUS = 3

# Write to a sibling temp file, then rename over the destination.
# On failure the temp file is removed and the original exit status kept.
WRITE_TEMPLATE = (
    "umask 022 && cat > {tmp} && mv -f -- {tmp} {path} "
    "|| {{ rc=$?; rm -f -- {tmp}; exit $rc; }}"
)
READ_TEMPLATE = f"if [ -e {{path}} ]; then cat -- {{path}}; else exit {ABSENT_EXIT_STATUS}; fi"
DELETE_TEMPLATE = "rm -f -- {path}"


def _temp_suffix() -> str:
    return secrets.token_hex(6)


class RemoteArtifactStore:
    """Create, read, update and delete artifacts on one remote host."""

    def __init__(
        self,
        provider: RemoteSessionProvider,
        target: SSHTarget,
        command_timeout: float = 30,
        use_sudo: bool = False,
        temp_suffix: Callable[[], str] = _temp_suffix,
    ) -> None:
        """Initialize the store.

        Args:
            provider: Source of sessions on the target host
            target: Host and credential to operate on
            command_timeout: Deadline in seconds for every remote command
            use_sudo: Run commands through ``sudo -n sh -c``
            temp_suffix: Factory for temp file suffixes used by writes
        """
        self.provider = provider
        self.target = target
        self.command_timeout = command_timeout
        self.use_sudo = use_sudo
        self._temp_suffix = temp_suffix

    def _command(self, template: str, **values: str) -> str:
        command = format_command(template, **values)
        return privileged(command) if self.use_sudo else command

    @staticmethod
    def _check_path(path: str, operation: str, identity: str) -> str:
        try:
            return validate_path(path)
        except (PathTraversalError, ValueError) as e:
            raise ValidationError(
                "path", str(e), operation=operation, identity=identity, path=path
            ) from e

    async def _execute(
        self,
        command: str,
        operation: str,
        identity: str,
        path: str,
        input: str | None = None,
    ) -> CommandResult:
        """Run one command in its own session; raise on transport failure."""
        async with self.provider.session(self.target) as session:
            result = await run_command(
                session, command, timeout=self.command_timeout, input=input
            )

        if result.transport_error:
            logger.error(
                "%s %s at %s: transport failure, state=unknown: %s",
                operation,
                identity,
                path,
                result.error,
            )
            raise TransportError(
                f"Failed to complete {operation} of {path}: {result.error}",
                operation=operation,
                identity=identity,
                path=path,
            )
        return result

    async def _write(self, desired: DesiredArtifact, operation: str) -> ObservedArtifact:
        path = self._check_path(desired.destination_path, operation, desired.identity)
        try:
            content = render(desired.params, desired.kind)
        except ValidationError as e:
            raise e.with_context(operation=operation, identity=desired.identity, path=path)

        tmp = f"{path}.tmp-{self._temp_suffix()}"
        command = self._command(WRITE_TEMPLATE, tmp=tmp, path=path)

        logger.info("Writing %s %s to %s", desired.kind.value, desired.identity, path)
        result = await self._execute(command, operation, desired.identity, path, input=content)

        if not result.ok:
            logger.error(
                "%s %s at %s failed with exit %s, state=unknown",
                operation,
                desired.identity,
                path,
                result.returncode,
            )
            raise RemoteCommandError(
                f"Failed to write {path}",
                returncode=result.returncode,
                stderr=result.error,
                operation=operation,
                identity=desired.identity,
                path=path,
            )

        return ObservedArtifact(
            identity=desired.identity,
            destination_path=path,
            content=content,
            state=ArtifactState.PRESENT,
            kind=desired.kind,
            operation=operation,
        )

    async def create(self, desired: DesiredArtifact) -> ObservedArtifact:
        """Write the rendered artifact, trusting the write result.

        Raises:
            ValidationError: Bad params or path (no remote call made)
            ConnectionError: Session could not be acquired
            TransportError: Write could not be completed (state unknown)
            RemoteCommandError: Write command failed (state unknown)
        """
        observed = await self._write(desired, "create")
        logger.info("Created %s at %s", desired.identity, observed.destination_path)
        return observed

    async def read(
        self,
        identity: str,
        path: str,
        kind: ArtifactKind = ArtifactKind.SITE,
    ) -> ObservedArtifact:
        """Probe for the artifact and fetch its content in one round trip.

        Returns:
            ObservedArtifact in state present (with content) or absent

        Raises:
            TransportError: Probe could not be completed (state unknown)
            RemoteCommandError: Probe or fetch failed (state unknown)
        """
        path = self._check_path(path, "read", identity)
        command = self._command(READ_TEMPLATE, path=path)
        result = await self._execute(command, "read", identity, path)

        if result.returncode == ABSENT_EXIT_STATUS:
            logger.info("Read %s: %s is absent", identity, path)
            return ObservedArtifact(
                identity=identity,
                destination_path=path,
                content=None,
                state=ArtifactState.ABSENT,
                kind=kind,
                operation="read",
            )

        if result.returncode != 0:
            raise RemoteCommandError(
                f"Failed to read {path}",
                returncode=result.returncode,
                stderr=result.error,
                operation="read",
                identity=identity,
                path=path,
            )

        logger.debug("Read %s: %d bytes from %s", identity, len(result.output), path)
        return ObservedArtifact(
            identity=identity,
            destination_path=path,
            content=result.output,
            state=ArtifactState.PRESENT,
            kind=kind,
            operation="read",
        )

    async def update(
        self,
        desired: DesiredArtifact,
        observed: ObservedArtifact,
    ) -> ObservedArtifact:
        """Re-render and overwrite the artifact unconditionally.

        The destination path may change; the identity may not.

        Raises:
            ValidationError: If the identity changed, or params/path are bad
            ConnectionError, TransportError, RemoteCommandError: As for create
        """
        if desired.identity != observed.identity:
            raise ValidationError(
                "name",
                f"Cannot change identity from {observed.identity!r} to "
                f"{desired.identity!r}; replace the artifact instead",
                operation="update",
                identity=observed.identity,
                path=observed.destination_path,
            )

        result = await self._write(desired, "update")
        logger.info("Updated %s at %s", desired.identity, result.destination_path)
        return result

    async def delete(
        self,
        identity: str,
        path: str,
        kind: ArtifactKind = ArtifactKind.SITE,
    ) -> ObservedArtifact:
        """Remove the artifact; an already-absent file is not an error.

        Raises:
            TransportError: Delete could not be completed (state unknown)
            RemoteCommandError: rm failed, e.g. permission denied (state unknown)
        """
        path = self._check_path(path, "delete", identity)
        command = self._command(DELETE_TEMPLATE, path=path)
        result = await self._execute(command, "delete", identity, path)

        if not result.ok:
            raise RemoteCommandError(
                f"Failed to delete file at {path}",
                returncode=result.returncode,
                stderr=result.error,
                operation="delete",
                identity=identity,
                path=path,
            )

        logger.info("Deleted %s at %s", identity, path)
        return ObservedArtifact(
            identity=identity,
            destination_path=path,
            content=None,
            state=ArtifactState.ABSENT,
            kind=kind,
            operation="delete",
        )
