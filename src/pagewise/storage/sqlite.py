"""SQLite key-value store.

Provides persistent storage across runs in a single SQLite file.
Uses aiosqlite for async access.
"""

import json
from pathlib import Path
from typing import Any

import aiosqlite

from .base import KeyValueStore


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite-backed key-value store.

    One table keyed by ``(namespace, key)``; values are stored as JSON text.
    """

    def __init__(self, path: str | Path = "./pagewise.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database and create the schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY (namespace, key)
            )
        """)
        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _conn(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("Key-value store is not connected. Call connect() first.")
        return self._connection

    async def get(self, namespace: str, key: str) -> Any | None:
        async with self._conn().execute(
            "SELECT value FROM kv WHERE namespace = ? AND key = ?",
            (namespace, key)
        ) as cursor:
            row = await cursor.fetchone()
        return None if row is None else json.loads(row[0])

    async def set(self, namespace: str, key: str, value: Any | None) -> None:
        conn = self._conn()
        if value is None:
            await conn.execute(
                "DELETE FROM kv WHERE namespace = ? AND key = ?",
                (namespace, key)
            )
        else:
            await conn.execute("""
                INSERT INTO kv (namespace, key, value) VALUES (?, ?, ?)
                ON CONFLICT(namespace, key) DO UPDATE SET value = excluded.value
            """, (namespace, key, json.dumps(value)))
        await conn.commit()

    async def keys(self, namespace: str) -> list[str]:
        async with self._conn().execute(
            "SELECT key FROM kv WHERE namespace = ? ORDER BY rowid",
            (namespace,)
        ) as cursor:
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
