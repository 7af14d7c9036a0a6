"""Command execution data models."""

from dataclasses import dataclass


@dataclass
class CommandResult:
    """Result of a remote command execution.

    ``transport_error`` distinguishes "could not run the command at all"
    (channel or connection failure, deadline exceeded) from "command ran
    and exited non-zero".
    """

    output: str
    error: str
    returncode: int | None
    transport_error: bool = False

    @property
    def ok(self) -> bool:
        return not self.transport_error and self.returncode == 0
