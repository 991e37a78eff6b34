"""Key/value persistence adapters for the serialized roster."""
from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from .errors import StorageError
from .models import UserRecord

logger = logging.getLogger("appointme.storage")

DEFAULT_STORAGE_KEY = "appointme_users"


class StorageAdapter(Protocol):
    """Contract the user service relies on for persistence."""

    def load(self, key: str) -> Optional[str]:
        ...

    def save(self, key: str, value: str) -> None:
        ...


def encode_users(records: Iterable[UserRecord]) -> str:
    """Serialize records to the JSON array stored under the roster key."""

    return json.dumps([record.to_dict() for record in records])


def decode_users(text: str) -> List[UserRecord]:
    try:
        raw = json.loads(text)
    except ValueError as exc:
        raise StorageError(f"Stored roster is not valid JSON: {exc}") from exc

    if not isinstance(raw, list):
        raise StorageError("Stored roster must be a list of user records")

    try:
        return [UserRecord.from_dict(item) for item in raw]
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"Stored roster contains an invalid record: {exc}") from exc


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the roster database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "appointme.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStorage:
    """Process-local storage, the equivalent of a browser's local storage slot."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._slots: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def load(self, key: str) -> Optional[str]:
        with self._lock:
            return self._slots.get(key)

    def save(self, key: str, value: str) -> None:
        with self._lock:
            self._slots[key] = value

    def clear(self, key: str) -> None:
        with self._lock:
            self._slots.pop(key, None)


class SQLiteStorage:
    """Simple wrapper around SQLite holding one serialized value per key."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the slot table if it does not already exist."""

        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS storage_slots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )

    def load(self, key: str) -> Optional[str]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM storage_slots WHERE key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read '{key}' from {self._path}: {exc}") from exc
        if row is None:
            return None
        return row["value"]

    def save(self, key: str, value: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO storage_slots (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, _current_timestamp().isoformat()),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to write '{key}' to {self._path}: {exc}") from exc
        logger.debug("Stored %d bytes under %s in %s", len(value), key, self._path)

    def clear(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM storage_slots WHERE key = ?", (key,))


__all__ = [
    "DEFAULT_STORAGE_KEY",
    "MemoryStorage",
    "SQLiteStorage",
    "StorageAdapter",
    "decode_users",
    "encode_users",
    "resolve_database_path",
]
