"""
Async key-value storage backends.

Values are JSON-serializable objects stored under a (namespace, key) pair.
Every backend stores a serialized copy, so values read back are
independent of the objects that were written.
"""

import asyncio
import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


class StorageBackend(ABC):
    """Interface of the persistence collaborator."""

    @abstractmethod
    async def get(self, namespace: str, key: str) -> Optional[Any]:
        """Get a value, or None if the key does not exist."""

    @abstractmethod
    async def set(self, namespace: str, key: str, value: Any) -> None:
        """Store a value, replacing any previous value."""

    @abstractmethod
    async def delete(self, namespace: str, key: str) -> None:
        """Delete a value. Deleting a missing key is not an error."""

    @abstractmethod
    async def keys(self, namespace: str) -> List[str]:
        """List the keys of a namespace."""


class MemoryStorage(StorageBackend):
    """In-process storage, mostly for tests and one-shot CLI runs."""

    def __init__(self):
        self._data: Dict[Tuple[str, str], str] = {}

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        raw = self._data.get((namespace, key))
        return json.loads(raw) if raw is not None else None

    async def set(self, namespace: str, key: str, value: Any) -> None:
        self._data[(namespace, key)] = json.dumps(value)

    async def delete(self, namespace: str, key: str) -> None:
        self._data.pop((namespace, key), None)

    async def keys(self, namespace: str) -> List[str]:
        return [key for ns, key in self._data if ns == namespace]


class SqliteStorage(StorageBackend):
    """SQLite-backed storage.

    Blocking sqlite3 calls run in a worker thread with one connection per
    call.
    """

    def __init__(self, database_path: str | Path):
        """Initialize storage in a database file.

        Args:
            database_path: Path to the SQLite database (created if missing)
        """
        self.database_path = Path(database_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.database_path))
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY (namespace, key)
            )
        """)
        return conn

    def _get(self, namespace: str, key: str) -> Optional[Any]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE namespace = ? AND key = ?",
                (namespace, key)
            ).fetchone()
        finally:
            conn.close()
        return json.loads(row[0]) if row else None

    def _set(self, namespace: str, key: str, value: Any) -> None:
        payload = json.dumps(value)
        conn = self._connect()
        try:
            conn.execute("""
                INSERT INTO kv_store (namespace, key, value) VALUES (?, ?, ?)
                ON CONFLICT(namespace, key) DO UPDATE SET value = excluded.value
            """, (namespace, key, payload))
            conn.commit()
        finally:
            conn.close()

    def _delete(self, namespace: str, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "DELETE FROM kv_store WHERE namespace = ? AND key = ?",
                (namespace, key)
            )
            conn.commit()
        finally:
            conn.close()

    def _keys(self, namespace: str) -> List[str]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT key FROM kv_store WHERE namespace = ? ORDER BY rowid",
                (namespace,)
            ).fetchall()
        finally:
            conn.close()
        return [row[0] for row in rows]

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._get, namespace, key)

    async def set(self, namespace: str, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set, namespace, key, value)

    async def delete(self, namespace: str, key: str) -> None:
        await asyncio.to_thread(self._delete, namespace, key)

    async def keys(self, namespace: str) -> List[str]:
        return await asyncio.to_thread(self._keys, namespace)
