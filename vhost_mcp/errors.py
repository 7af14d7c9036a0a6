"""Error taxonomy for vhost reconciliation.

Every error raised by the core carries enough context (operation, identity,
path) to be rendered as a user-facing Diagnostic by the driver.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from fastmcp.exceptions import ToolError


class ErrorKind(str, Enum):
    """Category of a reconciliation failure."""

    VALIDATION = "validation"
    CONNECTION = "connection"
    TRANSPORT = "transport"
    REMOTE_COMMAND = "remote_command"
    IMPORT_FORMAT = "import_format"
    STATE = "state"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """Structured, user-actionable outcome of a failed (or noteworthy) operation."""

    severity: Severity
    summary: str
    detail: str
    kind: ErrorKind | None = None
    operation: str | None = None
    identity: str | None = None
    path: str | None = None
    field: str | None = None
    state: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def format(self) -> str:
        """Render as a single human-readable block."""
        head = f"[{self.severity.value}] {self.summary}"
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.identity:
            context.append(f"identity={self.identity}")
        if self.path:
            context.append(f"path={self.path}")
        if self.field:
            context.append(f"field={self.field}")
        if self.state:
            context.append(f"state={self.state}")
        if context:
            head += f" ({', '.join(context)})"
        return f"{head}\n{self.detail}" if self.detail else head


class VhostError(Exception):
    """Base class for all reconciliation errors."""

    kind: ErrorKind
    summary: str = "Reconciliation failed"

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        identity: str | None = None,
        path: str | None = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.identity = identity
        self.path = path
        super().__init__(message)

    @property
    def state(self) -> str | None:
        """Belief about the remote artifact after this failure, if any."""
        return None

    def with_context(
        self,
        *,
        operation: str | None = None,
        identity: str | None = None,
        path: str | None = None,
    ) -> "VhostError":
        """Fill in missing context fields and return self."""
        self.operation = self.operation or operation
        self.identity = self.identity or identity
        self.path = self.path or path
        return self

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            summary=self.summary,
            detail=self.message,
            kind=self.kind,
            operation=self.operation,
            identity=self.identity,
            path=self.path,
            field=getattr(self, "field", None),
            state=self.state,
        )


class ValidationError(VhostError):
    """Invalid desired-state attribute. Raised before any remote call."""

    kind = ErrorKind.VALIDATION
    summary = "Invalid attribute"

    def __init__(self, field: str, message: str, **context: str | None) -> None:
        self.field = field
        super().__init__(message, **context)


class ConnectionError(VhostError):
    """Failed to establish an authenticated SSH session."""

    kind = ErrorKind.CONNECTION
    summary = "Unable to SSH to host"

    REASONS = ("dns", "refused", "auth", "timeout", "hostkey")

    def __init__(
        self,
        host: str,
        reason: str,
        original_error: BaseException | None = None,
        **context: str | None,
    ) -> None:
        if reason not in self.REASONS:
            raise ValueError(f"Unknown connection failure reason: {reason}")
        self.host = host
        self.reason = reason
        self.original_error = original_error
        detail = f"Cannot connect to {host} ({reason})"
        if original_error is not None:
            detail += f": {original_error}"
        super().__init__(detail, **context)


class TransportError(VhostError):
    """A remote command could not be completed. Remote state is unknown."""

    kind = ErrorKind.TRANSPORT
    summary = "SSH transport failure"

    @property
    def state(self) -> str | None:
        return "unknown"


class RemoteCommandError(VhostError):
    """A remote command ran but exited unsuccessfully."""

    kind = ErrorKind.REMOTE_COMMAND
    summary = "Command execution error"

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
        **context: str | None,
    ) -> None:
        self.returncode = returncode
        self.stderr = stderr
        detail = message
        if returncode is not None:
            detail += f" (exit status {returncode})"
        if stderr.strip():
            detail += f": {stderr.strip()}"
        super().__init__(detail, **context)

    @property
    def state(self) -> str | None:
        return "unknown"


class ImportFormatError(VhostError):
    """Malformed composite import identifier."""

    kind = ErrorKind.IMPORT_FORMAT
    summary = "Invalid import ID"


class StateError(VhostError):
    """Local state could not be read or written.

    When raised after a remote write, the remote change happened but was
    not recorded.
    """

    kind = ErrorKind.STATE
    summary = "State file error"


class DiagnosticToolError(ToolError):
    """Tool failure carrying the diagnostics that explain it."""

    def __init__(self, diagnostics: Iterable[Diagnostic]) -> None:
        self.diagnostics = list(diagnostics)
        super().__init__("\n".join(d.format() for d in self.diagnostics))

    @property
    def primary(self) -> Diagnostic | None:
        """First error diagnostic, or the first of any severity."""
        for diagnostic in self.diagnostics:
            if diagnostic.is_error:
                return diagnostic
        return self.diagnostics[0] if self.diagnostics else None
