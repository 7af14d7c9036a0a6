"""Persisted artifact state.

One JSON document holds a record per tracked artifact:

    {"version": 1, "artifacts": {"<identity>": {...StateRecord...}}}

Content is stored verbatim so plans can detect drift without a remote
round trip. Writes are serialized and atomic (temp file + rename). File
I/O runs in a worker thread so the event loop keeps serving other calls.
"""

import asyncio
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from vhost_mcp.errors import StateError
from vhost_mcp.models import StateRecord

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class StateFileError(StateError):
    """The state file cannot be read, parsed or written."""


class StateStore:
    """JSON-file backed implementation of StateBackend."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _load(self) -> dict[str, StateRecord]:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StateFileError(f"Cannot read state file {self.path}: {e}") from e

        version = document.get("version")
        if version != STATE_VERSION:
            raise StateFileError(
                f"Unsupported state file version {version!r} in {self.path}"
            )
        return {
            identity: StateRecord.from_dict(data)
            for identity, data in document.get("artifacts", {}).items()
        }

    def _save(self, records: dict[str, StateRecord]) -> None:
        document: dict[str, Any] = {
            "version": STATE_VERSION,
            "artifacts": {
                identity: records[identity].to_dict() for identity in sorted(records)
            },
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        except OSError as e:
            raise StateFileError(f"Cannot write state file {self.path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2)
                handle.write("\n")
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StateFileError(f"Cannot write state file {self.path}: {e}") from e
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _put(self, record: StateRecord) -> None:
        records = self._load()
        records[record.identity] = record
        self._save(records)

    def _remove(self, identity: str) -> bool:
        records = self._load()
        existed = records.pop(identity, None) is not None
        if existed:
            self._save(records)
        return existed

    async def get(self, identity: str) -> StateRecord | None:
        async with self._lock:
            records = await asyncio.to_thread(self._load)
        return records.get(identity)

    async def put(self, record: StateRecord) -> None:
        record.updated_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
        async with self._lock:
            await asyncio.to_thread(self._put, record)
        logger.debug("Persisted state for %s (%s)", record.identity, record.last_known_presence.value)

    async def remove(self, identity: str) -> bool:
        async with self._lock:
            existed = await asyncio.to_thread(self._remove, identity)
        if existed:
            logger.debug("Dropped state for %s", identity)
        return existed

    async def all(self) -> list[StateRecord]:
        async with self._lock:
            records = await asyncio.to_thread(self._load)
        return [records[identity] for identity in sorted(records)]
