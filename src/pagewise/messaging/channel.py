"""Host-mediated message channels.

A channel is the only thing two execution contexts share. The in-memory
implementation mimics a browser runtime: messages and replies are copied
through JSON so no object is ever shared, delivery happens on a later loop
iteration, and a request whose reply never comes fails with a timeout.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from ..debug import Debuggable
from .errors import MessageTimeoutError, RouterError

# A listener receives the raw message and a reply future it must resolve.
# It is called synchronously and must not block.
Listener = Callable[[Any, asyncio.Future], None]

DEFAULT_TIMEOUT = 30.0


class MessageChannel(ABC):
    """Abstract boundary between two execution contexts."""

    @abstractmethod
    def add_listener(self, listener: Listener) -> None:
        """Attach a listener that answers inbound messages."""

    @abstractmethod
    def remove_listener(self, listener: Listener) -> None:
        """Detach a listener; unknown listeners are ignored."""

    @abstractmethod
    async def send(self, message: Any, timeout: float = DEFAULT_TIMEOUT) -> Any:
        """Deliver a message and wait for the first reply.

        Args:
            message: JSON-serializable message
            timeout: Seconds to wait for a reply

        Returns:
            The raw reply

        Raises:
            RouterError: If nobody is listening
            MessageTimeoutError: If no reply arrives in time
        """


class InMemoryChannel(MessageChannel, Debuggable):
    """Single-process channel with browser-runtime semantics.

    Each in-flight request owns exactly one pending future; the first
    listener to resolve it wins and later replies are ignored.
    """

    def __init__(self, name: str = "runtime"):
        self._name = name
        self._listeners: list[Listener] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def send(self, message: Any, timeout: float = DEFAULT_TIMEOUT) -> Any:
        if not self._listeners:
            raise RouterError(
                f"Could not establish connection on '{self._name}': "
                f"receiving end does not exist"
            )

        wire = _copy(message)
        loop = asyncio.get_running_loop()
        reply: asyncio.Future = loop.create_future()

        for listener in list(self._listeners):
            loop.call_soon(self._deliver, listener, wire, reply)

        try:
            raw = await asyncio.wait_for(reply, timeout)
        except asyncio.TimeoutError as e:
            kind = wire.get("kind") if isinstance(wire, dict) else None
            self._debug("warning", "Channel", f"{self._name}: no reply for {kind!r} after {timeout}s")
            raise MessageTimeoutError(
                f"No response for message {kind!r} on '{self._name}' within {timeout}s"
            ) from e

        return _copy(raw)

    def _deliver(self, listener: Listener, message: Any, reply: asyncio.Future) -> None:
        """Hand a message to one listener, isolating listener faults."""
        if reply.done():
            return
        try:
            listener(message, reply)
        except Exception as e:
            self._debug("error", "Channel", f"{self._name}: listener raised {e!r}")


def _copy(value: Any) -> Any:
    """Copy a value the way a structured-clone boundary would."""
    return json.loads(json.dumps(value))


class BrowserHost(Debuggable):
    """Owner of the runtime channel, per-tab channels and the active tab.

    The runtime channel reaches the background role; each tab channel
    reaches the content role attached to that tab.
    """

    def __init__(self) -> None:
        self.runtime = InMemoryChannel("runtime")
        self._tabs: dict[str, InMemoryChannel] = {}
        self._active_tab_id: str | None = None
        self._activation_callbacks: list[Callable[[str], None]] = []

    def tab(self, tab_id: str) -> InMemoryChannel:
        """Get or create the channel that reaches a tab's content role."""
        if tab_id not in self._tabs:
            channel = InMemoryChannel(f"tab:{tab_id}")
            channel.set_debug_callback(self._debug_callback)
            self._tabs[tab_id] = channel
        return self._tabs[tab_id]

    def close_tab(self, tab_id: str) -> None:
        self._tabs.pop(tab_id, None)
        if self._active_tab_id == tab_id:
            self._active_tab_id = None

    @property
    def tab_ids(self) -> list[str]:
        return list(self._tabs)

    @property
    def active_tab_id(self) -> str | None:
        return self._active_tab_id

    def activate(self, tab_id: str) -> None:
        """Make a tab active and notify activation callbacks on change."""
        if self._active_tab_id == tab_id:
            return
        self._active_tab_id = tab_id
        self._debug("debug", "Host", f"Tab {tab_id} activated")
        for callback in list(self._activation_callbacks):
            callback(tab_id)

    def on_activated(self, callback: Callable[[str], None]) -> None:
        self._activation_callbacks.append(callback)

    def remove_on_activated(self, callback: Callable[[str], None]) -> None:
        if callback in self._activation_callbacks:
            self._activation_callbacks.remove(callback)

    def set_debug_callback(self, callback) -> None:
        super().set_debug_callback(callback)
        self.runtime.set_debug_callback(callback)
        for channel in self._tabs.values():
            channel.set_debug_callback(callback)
