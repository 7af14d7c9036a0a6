"""Reconciliation driver.

Maps declarative Create/Read/Update/Delete/Import calls onto the remote
artifact store and the persisted state. Store and state errors are
translated into Diagnostics here; a failed operation never changes
persisted state.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from vhost_mcp.errors import Diagnostic, Severity, ValidationError, VhostError
from vhost_mcp.models import (
    ArtifactKind,
    ArtifactState,
    DesiredArtifact,
    ObservedArtifact,
    StateRecord,
)
from vhost_mcp.protocols import StateBackend
from vhost_mcp.services.renderer import render
from vhost_mcp.services.store import RemoteArtifactStore
from vhost_mcp.utils.parser import parse_import_id
from vhost_mcp.utils.validation import validate_identity

logger = logging.getLogger(__name__)


@dataclass
class DriverResponse:
    """Outcome of one lifecycle call.

    Either ``observed`` is the new state that was persisted, or
    ``diagnostics`` holds an error and nothing was persisted. ``dropped``
    means the artifact was removed from tracked state.
    """

    observed: ObservedArtifact | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    dropped: bool = False

    @property
    def has_error(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if not d.is_error]


class PlanAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    NOOP = "no-op"


@dataclass
class PlanResult:
    """Local-only comparison of desired content with recorded state."""

    identity: str
    action: PlanAction | None
    content: str | None = None
    recorded_content: str | None = None
    path_changed: bool = False
    diagnostics: list[Diagnostic] = field(default_factory=list)


def _failure(error: VhostError, operation: str, identity: str, path: str | None) -> DriverResponse:
    error.with_context(operation=operation, identity=identity, path=path)
    diagnostic = error.to_diagnostic()
    logger.error(
        "%s %s failed: %s: %s (state=%s)",
        operation,
        identity,
        type(error).__name__,
        error.message,
        diagnostic.state or "unchanged",
    )
    return DriverResponse(diagnostics=[diagnostic])


def _unexpected(error: Exception, operation: str, identity: str) -> DriverResponse:
    logger.error("%s %s failed unexpectedly", operation, identity, exc_info=error)
    return DriverResponse(
        diagnostics=[
            Diagnostic(
                severity=Severity.ERROR,
                summary="Unexpected error",
                detail=f"{type(error).__name__}: {error}",
                operation=operation,
                identity=identity,
                state="unknown",
            )
        ]
    )


class ReconciliationDriver:
    """Drive tracked artifacts toward their declared state."""

    def __init__(self, store: RemoteArtifactStore, state: StateBackend) -> None:
        self.store = store
        self.state = state

    async def create(self, desired: DesiredArtifact) -> DriverResponse:
        try:
            observed = await self.store.create(desired)
            await self.state.put(StateRecord.from_observed(observed, desired.params))
        except VhostError as e:
            return _failure(e, "create", desired.identity, desired.destination_path)
        return DriverResponse(observed=observed)

    async def read(self, prior: ObservedArtifact) -> DriverResponse:
        """Refresh one tracked artifact from the remote host.

        An absent artifact is dropped from state so the next apply
        recreates it.
        """
        try:
            observed = await self.store.read(prior.identity, prior.destination_path, prior.kind)
            if observed.state is ArtifactState.ABSENT:
                await self.state.remove(prior.identity)
            else:
                existing = await self.state.get(prior.identity)
                params = existing.params if existing else None
                await self.state.put(StateRecord.from_observed(observed, params))
        except VhostError as e:
            return _failure(e, "read", prior.identity, prior.destination_path)

        if observed.state is ArtifactState.ABSENT:
            return DriverResponse(
                observed=observed,
                dropped=True,
                diagnostics=[
                    Diagnostic(
                        severity=Severity.WARNING,
                        summary="File Not Found",
                        detail=f"The file at path '{observed.destination_path}' does not exist.",
                        operation="read",
                        identity=prior.identity,
                        path=observed.destination_path,
                        state=ArtifactState.ABSENT.value,
                    )
                ],
            )
        return DriverResponse(observed=observed)

    async def update(self, desired: DesiredArtifact, prior: ObservedArtifact) -> DriverResponse:
        """Overwrite the artifact. A moved artifact leaves its old file in place."""
        try:
            observed = await self.store.update(desired, prior)
            await self.state.put(StateRecord.from_observed(observed, desired.params))
        except VhostError as e:
            return _failure(e, "update", desired.identity, desired.destination_path)

        response = DriverResponse(observed=observed)
        if observed.destination_path != prior.destination_path:
            logger.warning(
                "%s moved from %s to %s; the previous file is left in place",
                desired.identity,
                prior.destination_path,
                observed.destination_path,
            )
            response.diagnostics.append(
                Diagnostic(
                    severity=Severity.WARNING,
                    summary="Previous file left in place",
                    detail=(
                        f"'{desired.identity}' now lives at '{observed.destination_path}'. "
                        f"The old file at '{prior.destination_path}' was not removed "
                        f"and may still be served."
                    ),
                    operation="update",
                    identity=desired.identity,
                    path=prior.destination_path,
                )
            )
        return response

    async def delete(self, prior: ObservedArtifact) -> DriverResponse:
        try:
            observed = await self.store.delete(prior.identity, prior.destination_path, prior.kind)
            await self.state.remove(prior.identity)
        except VhostError as e:
            return _failure(e, "delete", prior.identity, prior.destination_path)
        return DriverResponse(observed=observed, dropped=True)

    async def apply(self, desired: DesiredArtifact) -> DriverResponse:
        """Create the artifact if untracked, otherwise overwrite it."""
        try:
            record = await self.state.get(desired.identity)
        except VhostError as e:
            return _failure(e, "apply", desired.identity, desired.destination_path)
        if record is None:
            return await self.create(desired)
        return await self.update(desired, record.to_observed())

    async def apply_all(self, desireds: Iterable[DesiredArtifact]) -> dict[str, DriverResponse]:
        """Apply many artifacts concurrently.

        Failures are isolated per identity, including unexpected
        exceptions. Duplicate identities in one batch are rejected
        without touching the remote host.
        """
        batch = list(desireds)
        counts = Counter(d.identity for d in batch)
        responses: dict[str, DriverResponse] = {}

        for identity, count in counts.items():
            if count > 1:
                error = ValidationError(
                    "name", f"Identity {identity!r} declared {count} times in one apply"
                )
                responses[identity] = _failure(error, "apply", identity, None)

        unique = [d for d in batch if counts[d.identity] == 1]
        results = await asyncio.gather(
            *(self.apply(d) for d in unique), return_exceptions=True
        )
        for desired, result in zip(unique, results):
            if isinstance(result, DriverResponse):
                responses[desired.identity] = result
            elif isinstance(result, Exception):
                responses[desired.identity] = _unexpected(result, "apply", desired.identity)
            else:
                raise result
        return responses

    async def import_state(
        self, import_id: str, kind: ArtifactKind = ArtifactKind.SITE
    ) -> DriverResponse:
        """Start tracking an existing remote file from ``"<name>:<path>"``."""
        try:
            identity, path = parse_import_id(import_id)
            identity = validate_identity(identity)
        except VhostError as e:
            return _failure(e, "import", import_id, None)

        try:
            observed = await self.store.read(identity, path, kind)
            if observed.state is ArtifactState.PRESENT:
                observed.operation = "import"
                await self.state.put(StateRecord.from_observed(observed))
        except VhostError as e:
            return _failure(e, "import", identity, path)

        if observed.state is ArtifactState.ABSENT:
            return DriverResponse(
                observed=observed,
                dropped=True,
                diagnostics=[
                    Diagnostic(
                        severity=Severity.WARNING,
                        summary="Cannot import non-existent remote object",
                        detail=f"No file exists at '{path}'; nothing was imported.",
                        operation="import",
                        identity=identity,
                        path=path,
                        state=ArtifactState.ABSENT.value,
                    )
                ],
            )

        logger.info("Imported %s from %s", identity, path)
        return DriverResponse(observed=observed)

    async def plan(self, desired: DesiredArtifact) -> PlanResult:
        """Compare desired content with recorded content; no remote calls."""
        try:
            content = render(desired.params, desired.kind)
            record = await self.state.get(desired.identity)
        except VhostError as e:
            e.with_context(operation="plan", identity=desired.identity, path=desired.destination_path)
            return PlanResult(identity=desired.identity, action=None, diagnostics=[e.to_diagnostic()])

        if record is None:
            return PlanResult(identity=desired.identity, action=PlanAction.CREATE, content=content)

        path_changed = record.destination_path != desired.destination_path
        unchanged = (
            not path_changed
            and record.last_known_presence is ArtifactState.PRESENT
            and record.rendered_content == content
        )
        return PlanResult(
            identity=desired.identity,
            action=PlanAction.NOOP if unchanged else PlanAction.UPDATE,
            content=content,
            recorded_content=record.rendered_content,
            path_changed=path_changed,
        )
