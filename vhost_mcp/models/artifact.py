"""Desired and observed artifact models."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ArtifactKind(str, Enum):
    """Kind of nginx configuration unit managed on the remote host."""

    SITE = "site"
    CONFIG = "config"
    PROXY = "proxy"
    API = "api"


class ArtifactState(str, Enum):
    """The store's belief about one remote artifact."""

    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RenderParams:
    """Template parameters for one server block."""

    server_name: str
    listen_port: int
    root: str
    upstreams: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.upstreams is not None:
            data["upstreams"] = list(self.upstreams)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderParams":
        upstreams = data.get("upstreams")
        return cls(
            server_name=data["server_name"],
            listen_port=data["listen_port"],
            root=data["root"],
            upstreams=tuple(upstreams) if upstreams is not None else None,
        )


@dataclass(frozen=True)
class DesiredArtifact:
    """Declared target state for one configuration unit."""

    identity: str
    destination_path: str
    params: RenderParams
    kind: ArtifactKind = ArtifactKind.SITE


@dataclass
class ObservedArtifact:
    """What the store believes exists remotely after an operation.

    ``content`` is None when the artifact is absent (or unknown).
    """

    identity: str
    destination_path: str
    content: str | None
    state: ArtifactState
    kind: ArtifactKind = ArtifactKind.SITE
    operation: str | None = None

    @property
    def is_present(self) -> bool:
        return self.state is ArtifactState.PRESENT


@dataclass
class StateRecord:
    """Persisted record for one tracked artifact."""

    identity: str
    destination_path: str
    rendered_content: str | None
    last_known_presence: ArtifactState
    kind: ArtifactKind = ArtifactKind.SITE
    params: RenderParams | None = None
    updated_at: str | None = field(default=None, compare=False)

    @classmethod
    def from_observed(
        cls,
        observed: ObservedArtifact,
        params: RenderParams | None = None,
        updated_at: str | None = None,
    ) -> "StateRecord":
        return cls(
            identity=observed.identity,
            destination_path=observed.destination_path,
            rendered_content=observed.content,
            last_known_presence=observed.state,
            kind=observed.kind,
            params=params,
            updated_at=updated_at,
        )

    def to_observed(self) -> ObservedArtifact:
        return ObservedArtifact(
            identity=self.identity,
            destination_path=self.destination_path,
            content=self.rendered_content,
            state=self.last_known_presence,
            kind=self.kind,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "kind": self.kind.value,
            "destination_path": self.destination_path,
            "rendered_content": self.rendered_content,
            "last_known_presence": self.last_known_presence.value,
            "params": self.params.to_dict() if self.params else None,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StateRecord":
        params = data.get("params")
        return cls(
            identity=data["identity"],
            destination_path=data["destination_path"],
            rendered_content=data.get("rendered_content"),
            last_known_presence=ArtifactState(data["last_known_presence"]),
            kind=ArtifactKind(data.get("kind", ArtifactKind.SITE.value)),
            params=RenderParams.from_dict(params) if params else None,
            updated_at=data.get("updated_at"),
        )
