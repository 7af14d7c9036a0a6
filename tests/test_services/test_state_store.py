"""Tests for persisted artifact state."""

import asyncio
import json
from pathlib import Path

import pytest

from vhost_mcp.errors import ErrorKind
from vhost_mcp.models import ArtifactKind, ArtifactState, RenderParams, StateRecord
from vhost_mcp.services.state_store import STATE_VERSION, StateFileError, StateStore


def _record(identity: str = "blog") -> StateRecord:
    return StateRecord(
        identity=identity,
        destination_path=f"/etc/nginx/sites-available/{identity}.conf",
        rendered_content="server {}\n",
        last_known_presence=ArtifactState.PRESENT,
        kind=ArtifactKind.PROXY,
        params=RenderParams(
            server_name="blog.example.com",
            listen_port=8080,
            root="/var/www/blog",
            upstreams=("127.0.0.1:3000",),
        ),
    )


@pytest.mark.asyncio
async def test_put_then_get_round_trips(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "state.json")

    await store.put(_record())
    loaded = await StateStore(tmp_path / "state.json").get("blog")

    assert loaded == _record()
    assert loaded is not None
    assert loaded.params is not None
    assert loaded.params.upstreams == ("127.0.0.1:3000",)
    assert loaded.updated_at is not None


@pytest.mark.asyncio
async def test_missing_file_is_empty_state(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "nested" / "state.json")

    assert await store.get("blog") is None
    assert await store.all() == []


@pytest.mark.asyncio
async def test_file_layout_is_versioned(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    await StateStore(path).put(_record())

    document = json.loads(path.read_text())

    assert document["version"] == STATE_VERSION
    assert document["artifacts"]["blog"]["kind"] == "proxy"
    assert document["artifacts"]["blog"]["last_known_presence"] == "present"


@pytest.mark.asyncio
async def test_remove_reports_whether_record_existed(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "state.json")
    await store.put(_record())

    assert await store.remove("blog") is True
    assert await store.remove("blog") is False
    assert await store.get("blog") is None


@pytest.mark.asyncio
async def test_all_is_sorted_by_identity(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "state.json")
    for identity in ("shop", "api", "blog"):
        await store.put(_record(identity))

    assert [r.identity for r in await store.all()] == ["api", "blog", "shop"]


@pytest.mark.asyncio
async def test_writes_leave_no_temp_files(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "state.json")
    await store.put(_record("a"))
    await store.put(_record("b"))
    await store.remove("a")

    assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


@pytest.mark.asyncio
async def test_corrupt_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json")

    with pytest.raises(StateFileError, match="Cannot read state file"):
        await StateStore(path).all()


@pytest.mark.asyncio
async def test_unknown_version_raises(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"version": 99, "artifacts": {}}))

    with pytest.raises(StateFileError, match="Unsupported state file version"):
        await StateStore(path).get("blog")


@pytest.mark.asyncio
async def test_unwritable_location_raises_state_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    with pytest.raises(StateFileError, match="Cannot write state file") as exc_info:
        await StateStore(blocker / "state.json").put(_record())

    assert exc_info.value.kind is ErrorKind.STATE
    assert exc_info.value.to_diagnostic().is_error


@pytest.mark.asyncio
async def test_file_io_runs_in_worker_thread(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Loads and saves are handed to asyncio.to_thread."""
    offloaded: list[str] = []
    to_thread = asyncio.to_thread

    async def spy(func, *args):  # type: ignore[no-untyped-def]
        offloaded.append(func.__name__)
        return await to_thread(func, *args)

    monkeypatch.setattr(asyncio, "to_thread", spy)
    store = StateStore(tmp_path / "state.json")

    await store.put(_record())
    await store.get("blog")
    await store.remove("blog")
    await store.all()

    assert offloaded == ["_put", "_load", "_remove", "_load"]
