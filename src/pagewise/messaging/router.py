"""Role-specific message routers.

Both roles share registry-based dispatch and a listener that answers every
inbound message exactly once. They differ in what happens after the local
handler returns:

- BackgroundRouter is the terminal point and answers directly.
- ContentRouter forwards the handler's result to the background role as a
  new message of the same kind and relays whatever comes back.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import PydanticSerializationError, to_jsonable_python

from ..debug import Debuggable
from .channel import Listener, MessageChannel
from .errors import AlreadyActiveError, HandlerExecutionError, InvalidMessageError, RouterError
from .models import (
    ErrorCode,
    Message,
    Response,
    failure,
    parse_response,
    success,
)
from .registry import Handler, HandlerRegistry


class RouterOptions(BaseModel):
    """Router configuration validated at construction."""

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Seconds allowed for one request/response pair"
    )
    debug: bool = Field(default=False, description="Emit per-message debug logs")
    max_handlers: int = Field(default=100, ge=1, description="Registry capacity")


class BaseRouter(ABC, Debuggable):
    """Shared listener lifecycle, validation and dispatch.

    Hidden design decisions:
    - Listener callback never awaits; work runs as a separate task
    - Reply futures are resolved at most once
    - Malformed messages are rejected before any handler runs
    """

    def __init__(self, options: RouterOptions | None = None, **overrides: Any):
        """Initialize the router.

        Args:
            options: Router options (defaults used when omitted)
            **overrides: Individual option overrides (timeout, debug, max_handlers)

        Raises:
            pydantic.ValidationError: If the options are out of range
        """
        if options is None:
            options = RouterOptions(**overrides)
        elif overrides:
            options = RouterOptions(**{**options.model_dump(), **overrides})

        self._options = options
        self._registry = HandlerRegistry(max_handlers=options.max_handlers)
        self._channel: MessageChannel | None = None
        self._listener: Listener | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def options(self) -> RouterOptions:
        return self._options

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def is_listening(self) -> bool:
        return self._listener is not None

    def register_handler(self, kind: str, handler: Handler) -> None:
        """Register a handler for a message kind."""
        self._registry.register(kind, handler)
        self._log(f'Handler registered for kind: "{kind}"')

    def unregister_handler(self, kind: str) -> bool:
        """Unregister a handler; returns True if one was removed."""
        removed = self._registry.unregister(kind)
        if removed:
            self._log(f'Handler unregistered for kind: "{kind}"')
        return removed

    def has_handler(self, kind: str) -> bool:
        return self._registry.has(kind)

    def handler_kinds(self) -> list[str]:
        return self._registry.kinds()

    def start_listener(self, channel: MessageChannel) -> None:
        """Start answering messages that arrive on a channel.

        Raises:
            AlreadyActiveError: If the listener is already active
        """
        if self._listener is not None:
            raise AlreadyActiveError()

        def listener(raw: Any, reply: asyncio.Future) -> None:
            self._accept(raw, reply)

        self._channel = channel
        self._listener = listener
        channel.add_listener(listener)
        self._log("Message listener started")

    def stop_listener(self) -> None:
        """Stop answering messages; a no-op when not listening."""
        if self._listener is None:
            return
        if self._channel is not None:
            self._channel.remove_listener(self._listener)
        self._listener = None
        self._channel = None
        self._log("Message listener stopped")

    def _accept(self, raw: Any, reply: asyncio.Future) -> None:
        """Validate synchronously, then schedule routing without blocking."""
        try:
            message = self._validate(raw)
        except InvalidMessageError as e:
            self._reply(reply, failure(e.code, e.message).model_dump(mode="json"))
            return

        task = asyncio.ensure_future(self._answer(message, reply))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _answer(self, message: Message, reply: asyncio.Future) -> None:
        """Route one message and resolve its reply exactly once."""
        wire: dict[str, Any] | None = None
        try:
            response = await self.handle(message)
            wire = response.model_dump(mode="json")
        except Exception as e:
            self._debug("error", "Router", f'Route error for kind "{message.kind}": {e}')
            wire = failure(
                ErrorCode.ROUTING_ERROR, str(e) or "Unknown error occurred"
            ).model_dump(mode="json")
        finally:
            if wire is None:
                # Cancelled before a response existed
                wire = failure(
                    ErrorCode.ROUTING_ERROR, f'Handling "{message.kind}" was cancelled'
                ).model_dump(mode="json")
            self._reply(reply, wire)

    async def handle(self, message: Message | Mapping[str, Any]) -> Response:
        """Route a message in-process and return its response envelope.

        Never raises for handler or routing failures; they become failure
        envelopes.
        """
        if not isinstance(message, Message):
            try:
                message = self._validate(message)
            except InvalidMessageError as e:
                return failure(e.code, e.message)

        try:
            return await asyncio.wait_for(
                self.route_message(message), self._options.timeout
            )
        except asyncio.TimeoutError:
            return failure(
                ErrorCode.ROUTING_ERROR,
                f'Handling "{message.kind}" timed out after {self._options.timeout}s'
            )
        except RouterError as e:
            return failure(e.code, e.message)

    @abstractmethod
    async def route_message(self, message: Message) -> Response:
        """Route a validated message to its handler."""

    def _validate(self, raw: Any) -> Message:
        if not isinstance(raw, Mapping) or not isinstance(raw.get("kind"), str):
            raise InvalidMessageError("Message must have a string 'kind' property")
        return Message(
            kind=raw["kind"],
            payload=raw.get("payload"),
            **({"correlation": raw["correlation"]} if isinstance(raw.get("correlation"), str) else {})
        )

    def _reply(self, reply: asyncio.Future, wire: dict[str, Any]) -> None:
        if reply.done():
            # Requester gave up (timeout) or another listener answered first
            return
        reply.set_result(wire)

    def _log(self, message: str) -> None:
        if self._options.debug:
            self._debug("debug", type(self).__name__, message)


class BackgroundRouter(BaseRouter):
    """Terminal router living next to long-lived state."""

    async def route_message(self, message: Message) -> Response:
        self._log(f'Processing message kind: "{message.kind}"')
        result = _jsonable(message.kind, await self._registry.dispatch(message.kind, message.payload))
        self._log(f'Message handled successfully for kind: "{message.kind}"')
        return success(result)


class ContentRouter(BaseRouter):
    """Page-attached router that forwards handler output to the background.

    Args:
        forward_channel: Channel reaching the background role
        options: Router options
    """

    def __init__(
        self,
        forward_channel: MessageChannel,
        options: RouterOptions | None = None,
        **overrides: Any
    ):
        super().__init__(options, **overrides)
        self._forward_channel = forward_channel
        self._local_only: set[str] = set()

    def register_handler(self, kind: str, handler: Handler, forward: bool = True) -> None:
        """Register a handler.

        Args:
            kind: Message kind
            handler: Callable taking the payload
            forward: If False, the handler's result is answered directly
                     instead of being forwarded to the background role
        """
        super().register_handler(kind, handler)
        if not forward:
            self._local_only.add(kind)

    def unregister_handler(self, kind: str) -> bool:
        self._local_only.discard(kind)
        return super().unregister_handler(kind)

    async def route_message(self, message: Message) -> Response:
        self._log(f'Processing message kind: "{message.kind}"')
        result = _jsonable(message.kind, await self._registry.dispatch(message.kind, message.payload))

        if message.kind in self._local_only:
            return success(result)

        forwarded = Message(kind=message.kind, payload=result)
        try:
            raw = await self._forward_channel.send(
                forwarded.model_dump(mode="json"), timeout=self._options.timeout
            )
        except RouterError as e:
            self._debug("error", "ContentRouter", f"Failed to send message to background: {e.message}")
            raise RouterError(
                f"Failed to communicate with background: {e.message}",
                code=ErrorCode.ROUTING_ERROR
            ) from e

        self._log(f'Message forwarded to background for kind: "{message.kind}"')
        return parse_response(raw)


def _jsonable(kind: str, result: Any) -> Any:
    """Convert a handler result to plain JSON data.

    Raises:
        HandlerExecutionError: If the result cannot cross the boundary
    """
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    try:
        return to_jsonable_python(result)
    except PydanticSerializationError as e:
        raise HandlerExecutionError(kind, f"Handler result is not JSON-serializable: {e}") from e


async def send_request(
    channel: MessageChannel,
    kind: str,
    payload: Any = None,
    timeout: float = 30.0
) -> Response:
    """Send one request over a channel and parse the reply.

    Transport failures (nobody listening, timeout) are returned as
    ``RoutingError`` failures so callers only ever inspect an envelope.
    """
    message = Message(kind=kind, payload=payload)
    try:
        raw = await channel.send(message.model_dump(mode="json"), timeout=timeout)
    except RouterError as e:
        return failure(e.code, e.message)
    return parse_response(raw)
