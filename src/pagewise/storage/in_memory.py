"""In-memory key-value store.

Dict-based storage for tests and single-run use. Values are copied through
JSON on the way in and out so callers never share mutable state with the
store, matching what a real persistence boundary does.
"""

import json
from typing import Any

from .base import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """In-memory key-value store (data lost when the process exits)."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, str]] = {}

    async def connect(self) -> None:
        """Initialize memory (no-op for in-memory)."""

    async def disconnect(self) -> None:
        """Close memory (no-op for in-memory)."""

    async def get(self, namespace: str, key: str) -> Any | None:
        raw = self._data.get(namespace, {}).get(key)
        return None if raw is None else json.loads(raw)

    async def set(self, namespace: str, key: str, value: Any | None) -> None:
        if value is None:
            self._data.get(namespace, {}).pop(key, None)
            return
        self._data.setdefault(namespace, {})[key] = json.dumps(value)

    async def keys(self, namespace: str) -> list[str]:
        return list(self._data.get(namespace, {}))

    @property
    def backend_type(self) -> str:
        return "memory"
