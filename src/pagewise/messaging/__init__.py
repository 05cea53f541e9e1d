"""Cross-context messaging: envelopes, handler registry, routers and channels."""

from .channel import BrowserHost, InMemoryChannel, MessageChannel
from .errors import (
    AlreadyActiveError,
    DuplicateHandlerError,
    HandlerExecutionError,
    HandlerNotFoundError,
    InvalidMessageError,
    MessageTimeoutError,
    RegistryFullError,
    RouterError,
)
from .models import (
    ChatRequest,
    ErrorCode,
    ErrorResponse,
    Message,
    MessageKind,
    PageInfo,
    Response,
    SuccessResponse,
    failure,
    parse_response,
    success,
)
from .registry import Handler, HandlerRegistry
from .router import (
    BackgroundRouter,
    BaseRouter,
    ContentRouter,
    RouterOptions,
    send_request,
)

__all__ = [
    "AlreadyActiveError",
    "BackgroundRouter",
    "BaseRouter",
    "BrowserHost",
    "ChatRequest",
    "ContentRouter",
    "DuplicateHandlerError",
    "ErrorCode",
    "ErrorResponse",
    "Handler",
    "HandlerExecutionError",
    "HandlerNotFoundError",
    "HandlerRegistry",
    "InMemoryChannel",
    "InvalidMessageError",
    "Message",
    "MessageChannel",
    "MessageKind",
    "MessageTimeoutError",
    "PageInfo",
    "RegistryFullError",
    "Response",
    "RouterError",
    "RouterOptions",
    "SuccessResponse",
    "failure",
    "parse_response",
    "send_request",
]
