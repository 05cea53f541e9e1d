"""Abstract base class for key-value stores.

This module defines the persistence interface every stateful component
writes through. The abstraction hides:
- Storage medium (process memory, SQLite file)
- Serialization of values
- Connection management
"""

from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    """Abstract key-value store scoped by ``(namespace, key)``.

    Values are JSON-compatible. Setting ``None`` deletes the entry, so a
    stored value is never ``None``.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the store."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store gracefully."""

    @abstractmethod
    async def get(self, namespace: str, key: str) -> Any | None:
        """Return the value for a key, or None if absent."""

    @abstractmethod
    async def set(self, namespace: str, key: str, value: Any | None) -> None:
        """Store a value; ``None`` removes the key.

        Raises:
            TypeError: If the value is not JSON serializable
        """

    @abstractmethod
    async def keys(self, namespace: str) -> list[str]:
        """List keys in a namespace, in insertion order."""

    async def delete(self, namespace: str, key: str) -> None:
        """Remove a key; absent keys are ignored."""
        await self.set(namespace, key, None)

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
