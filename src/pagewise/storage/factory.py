"""Factory for creating key-value stores."""

from typing import Any

from .base import KeyValueStore


def create_key_value_store(backend: str = "memory", **config: Any) -> KeyValueStore:
    """Create a key-value store.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **config: Backend-specific configuration (e.g. ``path`` for sqlite)

    Returns:
        KeyValueStore instance (call ``connect()`` before use)

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryKeyValueStore
        return InMemoryKeyValueStore(**config)

    elif backend == "sqlite":
        from .sqlite import SQLiteKeyValueStore
        return SQLiteKeyValueStore(**config)

    raise ValueError(
        f"Unsupported storage backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )
