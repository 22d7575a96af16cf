"""Save/Load for engine sessions.

Session snapshots are plain dicts carrying a ``_save_metadata`` block with
the format version. Stores only move dicts around; what goes into a
snapshot is decided by ``GameSession``.

Two stores share the same contract (``load(key)``, ``save(key, data)``):

- ``JsonFileStore``: one ``{key}.json`` per slot plus rotating
  ``{key}.bak-N`` backups.
- ``MemoryStore``: in-process dict with an optional byte quota (tests,
  embedding).
"""
from __future__ import annotations
import errno
import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import jsonschema

from .errors import PersistenceError, StorageQuotaExceeded
from .schema import SESSION_SNAPSHOT_SCHEMA

logger = logging.getLogger(__name__)

# Save format version - increment when making breaking changes
SAVE_VERSION = 1

_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class PersistenceStore(Protocol):
    def load(self, key: str) -> Optional[Dict[str, Any]]: ...
    def save(self, key: str, snapshot: Dict[str, Any]) -> bool: ...
    def cleanup(self) -> int: ...


def _encode(snapshot: Dict[str, Any]) -> str:
    try:
        return json.dumps(snapshot, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"Snapshot is not serializable: {e}") from e


class JsonFileStore:
    """Directory of JSON save slots with rotating backups."""

    def __init__(self, directory: str, max_backups: int = 3):
        self.directory = Path(directory)
        self.max_backups = max_backups

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _backup_path(self, key: str, index: int) -> Path:
        return self.directory / f"{key}.bak-{index}"

    def _rotate(self, key: str) -> None:
        if self.max_backups <= 0:
            return
        oldest = self._backup_path(key, self.max_backups)
        if oldest.exists():
            oldest.unlink()
        for index in range(self.max_backups - 1, 0, -1):
            src = self._backup_path(key, index)
            if src.exists():
                src.replace(self._backup_path(key, index + 1))
        current = self._path(key)
        if current.exists():
            current.replace(self._backup_path(key, 1))

    def save(self, key: str, snapshot: Dict[str, Any]) -> bool:
        """Write a slot, shifting the previous file into the backup chain.

        Raises:
            StorageQuotaExceeded: the filesystem is out of space or quota
            PersistenceError: any other write failure
        """
        payload = _encode(snapshot)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._rotate(key)
            tmp = self._path(key).with_suffix(".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(payload)
            tmp.replace(self._path(key))
        except OSError as e:
            if e.errno in _QUOTA_ERRNOS:
                raise StorageQuotaExceeded(f"No space left to save '{key}'") from e
            raise PersistenceError(f"Failed to save '{key}': {e}") from e
        logger.info("Saved slot '%s' to %s", key, self._path(key))
        return True

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Corrupted save '{key}': {e}") from e
        except OSError as e:
            raise PersistenceError(f"Failed to load '{key}': {e}") from e

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_keys(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))

    def cleanup(self) -> int:
        """Delete every backup file; returns how many were removed."""
        if not self.directory.exists():
            return 0
        removed = 0
        for backup in self.directory.glob("*.bak-*"):
            backup.unlink()
            removed += 1
        if removed:
            logger.info("Removed %d backup file(s) from %s", removed, self.directory)
        return removed


class MemoryStore:
    """In-memory store; ``quota_bytes`` bounds the total encoded size."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._slots: Dict[str, str] = {}
        self._backups: Dict[str, List[str]] = {}

    def used_bytes(self, exclude: Optional[str] = None) -> int:
        total = sum(len(v.encode("utf-8")) for k, v in self._slots.items() if k != exclude)
        total += sum(len(b.encode("utf-8")) for backups in self._backups.values() for b in backups)
        return total

    def save(self, key: str, snapshot: Dict[str, Any]) -> bool:
        payload = _encode(snapshot)
        if self.quota_bytes is not None:
            needed = self.used_bytes(exclude=key) + len(payload.encode("utf-8"))
            if key in self._slots:
                needed += len(self._slots[key].encode("utf-8"))
            if needed > self.quota_bytes:
                raise StorageQuotaExceeded(
                    f"Saving '{key}' needs {needed} bytes, quota is {self.quota_bytes}"
                )
        if key in self._slots:
            self._backups.setdefault(key, []).insert(0, self._slots[key])
        self._slots[key] = payload
        return True

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        payload = self._slots.get(key)
        if payload is None:
            return None
        return json.loads(payload)

    def list_keys(self) -> List[str]:
        return sorted(self._slots)

    def cleanup(self) -> int:
        removed = sum(len(v) for v in self._backups.values())
        self._backups.clear()
        return removed


def save_with_retry(store: PersistenceStore, key: str, snapshot: Dict[str, Any], retries: int = 1) -> bool:
    """Save, and on quota exhaustion clean up backups and try again.

    Raises:
        PersistenceError: still over quota after ``retries`` cleanups
    """
    attempt = 0
    while True:
        try:
            return store.save(key, snapshot)
        except StorageQuotaExceeded as e:
            if attempt >= retries:
                raise PersistenceError(f"Save '{key}' failed after {attempt} cleanup(s): {e}") from e
            attempt += 1
            removed = store.cleanup()
            logger.warning("Storage quota exceeded saving '%s'; removed %d backup(s), retrying", key, removed)


def add_save_metadata(data: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(data)
    data["_save_metadata"] = {
        "version": SAVE_VERSION,
        "timestamp": time.time(),
        "date_saved": datetime.now().isoformat(),
    }
    return data


def validate_session_snapshot(data: Dict[str, Any]) -> Dict[str, Any]:
    """Check version and shape of a session snapshot before trusting it.

    Raises:
        PersistenceError: newer version than supported, or schema mismatch
    """
    metadata = data.get("_save_metadata") or {}
    save_version = metadata.get("version", 0)
    if save_version > SAVE_VERSION:
        raise PersistenceError(
            f"Save file version {save_version} is newer than supported version {SAVE_VERSION}"
        )
    try:
        jsonschema.validate(data, SESSION_SNAPSHOT_SCHEMA)
    except jsonschema.ValidationError as e:
        raise PersistenceError(f"Invalid session snapshot: {e.message}") from e
    return data
