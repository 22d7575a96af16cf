"""Tests for save stores, retry-on-quota and session snapshots."""

import json

import pytest

from ifengine.core.errors import PersistenceError, StorageQuotaExceeded
from ifengine.core.persistence import (
    SAVE_VERSION,
    JsonFileStore,
    MemoryStore,
    add_save_metadata,
    save_with_retry,
    validate_session_snapshot,
)


def test_file_store_round_trip(tmp_path):
    store = JsonFileStore(str(tmp_path / "saves"))
    assert store.load("slot1") is None
    assert store.save("slot1", {"answer": 42})
    assert store.load("slot1") == {"answer": 42}
    assert store.list_keys() == ["slot1"]
    assert store.delete("slot1")
    assert not store.delete("slot1")


def test_file_store_rotates_backups(tmp_path):
    store = JsonFileStore(str(tmp_path), max_backups=2)
    for n in range(4):
        store.save("slot", {"n": n})
    assert (tmp_path / "slot.bak-1").exists()
    assert (tmp_path / "slot.bak-2").exists()
    assert not (tmp_path / "slot.bak-3").exists()
    assert json.loads((tmp_path / "slot.bak-1").read_text(encoding="utf-8")) == {"n": 2}
    assert store.cleanup() == 2
    assert store.load("slot") == {"n": 3}


def test_file_store_corrupt_save(tmp_path):
    (tmp_path / "slot.json").write_text("{broken", encoding="utf-8")
    with pytest.raises(PersistenceError):
        JsonFileStore(str(tmp_path)).load("slot")


def test_unserializable_snapshot(tmp_path):
    with pytest.raises(PersistenceError):
        JsonFileStore(str(tmp_path)).save("slot", {"bad": object()})


def test_memory_store_quota():
    store = MemoryStore(quota_bytes=10)
    with pytest.raises(StorageQuotaExceeded):
        store.save("slot", {"payload": "x" * 50})


def test_retry_after_cleanup_succeeds():
    size = len(json.dumps({"n": 1}, indent=2))
    store = MemoryStore(quota_bytes=int(size * 2.5))
    assert save_with_retry(store, "slot", {"n": 1})
    assert save_with_retry(store, "slot", {"n": 2})
    # Third save only fits once the backup of n=1 is gone
    assert save_with_retry(store, "slot", {"n": 3}, retries=1)
    assert store.load("slot") == {"n": 3}


def test_retry_gives_up():
    size = len(json.dumps({"n": 1}, indent=2))
    store = MemoryStore(quota_bytes=int(size * 1.5))
    store.save("slot", {"n": 1})
    with pytest.raises(PersistenceError):
        save_with_retry(store, "slot", {"n": 2}, retries=1)


def _snapshot(**overrides):
    data = add_save_metadata({
        "world": {
            "current_room_id": "start",
            "player": {"name": "P", "health": 100, "score": 0, "inventory": [], "traits": [], "visited_rooms": []},
            "room_items": {},
            "turn": 0,
        },
        "flags": {},
        "traps": [],
        "quests": {},
    })
    data.update(overrides)
    return data


def test_validate_session_snapshot():
    data = _snapshot()
    assert data["_save_metadata"]["version"] == SAVE_VERSION
    assert validate_session_snapshot(data) is data


def test_newer_version_is_refused():
    data = _snapshot()
    data["_save_metadata"]["version"] = SAVE_VERSION + 1
    with pytest.raises(PersistenceError, match="newer"):
        validate_session_snapshot(data)


def test_schema_mismatch_is_refused():
    data = _snapshot()
    del data["world"]
    with pytest.raises(PersistenceError):
        validate_session_snapshot(data)
