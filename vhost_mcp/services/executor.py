"""Remote command executor."""

import asyncio
import logging

import asyncssh

from vhost_mcp.models import CommandResult, RemoteSession

logger = logging.getLogger(__name__)


def _decode(stream: str | bytes | None) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream


async def run_command(
    session: RemoteSession,
    command: str,
    *,
    timeout: float,
    input: str | None = None,
) -> CommandResult:
    """Run one shell command on the session and wait for it to finish.

    The command line must already be fully formed with untrusted values
    quoted (see ``vhost_mcp.utils.shell``). Untrusted bulk data goes
    through ``input`` and is written to the command's stdin.

    Args:
        session: Session to run on; its lock is held for the whole command
        command: Complete shell command line
        timeout: Deadline in seconds for the command to exit
        input: Optional data for the command's stdin

    Returns:
        CommandResult. Channel/connection failures, missing exit status and
        deadline overruns are reported with ``transport_error=True``; a
        non-zero exit is reported as a normal result.
    """
    if not session.is_alive:
        return CommandResult(
            output="",
            error=f"Session to {session.target.key} is closed",
            returncode=None,
            transport_error=True,
        )

    async with session.lock:
        try:
            result = await session.connection.run(
                command,
                input=input,
                check=False,
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Command on %s exceeded %ss deadline", session.target.key, timeout
            )
            return CommandResult(
                output="",
                error=f"Command timed out after {timeout}s",
                returncode=None,
                transport_error=True,
            )
        except (asyncssh.Error, OSError) as e:
            logger.warning(
                "Transport failure on %s: %s: %s",
                session.target.key,
                type(e).__name__,
                e,
            )
            return CommandResult(
                output="",
                error=f"{type(e).__name__}: {e}",
                returncode=None,
                transport_error=True,
            )

    output = _decode(result.stdout)
    error = _decode(result.stderr)
    returncode = result.returncode

    if returncode is None:
        # Channel closed without an exit status
        return CommandResult(
            output=output,
            error=error or "Remote command ended without an exit status",
            returncode=None,
            transport_error=True,
        )

    logger.debug("Command on %s exited %d", session.target.key, returncode)
    return CommandResult(output=output, error=error, returncode=returncode)
