"""Kind-keyed handler registry.

Registration is write-once until an explicit ``unregister``; a second
``register`` for the same kind fails without touching the existing handler,
so a handler can never be silently shadowed.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from .errors import (
    DuplicateHandlerError,
    HandlerExecutionError,
    HandlerNotFoundError,
    RegistryFullError,
)

Handler = Callable[[Any], Any | Awaitable[Any]]


class HandlerRegistry:
    """Bounded map from message kind to handler.

    Hidden design decisions:
    - Sync and async handlers share one calling convention
    - Handler failures are normalised into HandlerExecutionError
    """

    def __init__(self, max_handlers: int = 100):
        """Initialize the registry.

        Args:
            max_handlers: Maximum number of kinds that can be registered

        Raises:
            ValueError: If max_handlers is below 1
        """
        if max_handlers < 1:
            raise ValueError("max_handlers must be at least 1")
        self._max_handlers = max_handlers
        self._handlers: dict[str, Handler] = {}

    @property
    def capacity(self) -> int:
        return self._max_handlers

    def register(self, kind: str, handler: Handler) -> None:
        """Register a handler for a message kind.

        Args:
            kind: Message kind
            handler: Callable taking the payload, sync or async

        Raises:
            RegistryFullError: If the registry is at capacity
            DuplicateHandlerError: If a handler already exists for kind
            TypeError: If handler is not callable
        """
        if kind in self._handlers:
            raise DuplicateHandlerError(kind)
        if len(self._handlers) >= self._max_handlers:
            raise RegistryFullError(self._max_handlers)
        if not callable(handler):
            raise TypeError(f"Handler must be callable, got {type(handler).__name__}")

        self._handlers[kind] = handler

    def unregister(self, kind: str) -> bool:
        """Remove the handler for a kind.

        Returns:
            True if a handler was removed
        """
        return self._handlers.pop(kind, None) is not None

    def has(self, kind: str) -> bool:
        return kind in self._handlers

    def kinds(self) -> list[str]:
        return list(self._handlers)

    def clear(self) -> int:
        """Remove every handler and return how many were removed."""
        count = len(self._handlers)
        self._handlers.clear()
        return count

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, kind: object) -> bool:
        return kind in self._handlers

    async def dispatch(self, kind: str, payload: Any) -> Any:
        """Run the handler registered for kind.

        Args:
            kind: Message kind
            payload: Handler input

        Returns:
            The handler's result

        Raises:
            HandlerNotFoundError: If kind is not registered
            HandlerExecutionError: If the handler raised
        """
        handler = self._handlers.get(kind)
        if handler is None:
            raise HandlerNotFoundError(kind)

        try:
            result = handler(payload)
            if inspect.isawaitable(result):
                result = await result
        except HandlerExecutionError:
            raise
        except Exception as e:
            raise HandlerExecutionError(kind, str(e) or type(e).__name__) from e

        return result
