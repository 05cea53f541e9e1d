"""Wire models for cross-context messaging.

Every message is ``{kind, payload, correlation}`` and every response is
either ``{success: true, data}`` or ``{success: false, error: {code, message}}``.
"""

from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    """Error codes carried by failure envelopes."""

    INVALID_MESSAGE = "InvalidMessage"
    HANDLER_NOT_FOUND = "HandlerNotFound"
    HANDLER_EXECUTION_ERROR = "HandlerExecutionError"
    ROUTING_ERROR = "RoutingError"
    ALREADY_ACTIVE = "AlreadyActive"


class MessageKind(str, Enum):
    """Message kinds exchanged between the panel, content and background roles."""

    GET_SESSION = "get-session"
    GET_PAGE_CONTENT = "get-page-content"
    INITIALIZE_CHAT = "initialize-chat"
    CLEAR_SESSION = "clear-session"


class Message(BaseModel):
    """A request crossing a context boundary."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(description="Handler key")
    payload: Any = Field(default=None, description="Handler input")
    correlation: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Identifier pairing this request with its response"
    )


class ErrorDetail(BaseModel):
    """Failure description inside an error envelope."""

    code: str
    message: str


class SuccessResponse(BaseModel):
    """Successful response envelope."""

    success: Literal[True] = True
    data: Any = None


class ErrorResponse(BaseModel):
    """Failed response envelope."""

    success: Literal[False] = False
    error: ErrorDetail


Response = SuccessResponse | ErrorResponse


def success(data: Any) -> SuccessResponse:
    """Create a success response."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return SuccessResponse(data=data)


def failure(code: ErrorCode | str, message: str) -> ErrorResponse:
    """Create an error response."""
    code_value = code.value if isinstance(code, ErrorCode) else code
    return ErrorResponse(error=ErrorDetail(code=code_value, message=message))


def parse_response(raw: Any) -> Response:
    """Parse a raw reply into a response envelope.

    Anything that is not a well-formed envelope is reported as a routing
    failure rather than raised, so callers always get an envelope back.
    """
    if isinstance(raw, dict) and raw.get("success") is True:
        return SuccessResponse(data=raw.get("data"))
    if isinstance(raw, dict) and raw.get("success") is False:
        error = raw.get("error") or {}
        return failure(
            str(error.get("code", ErrorCode.ROUTING_ERROR.value)),
            str(error.get("message", "Unknown error"))
        )
    return failure(ErrorCode.ROUTING_ERROR, f"Malformed response: {raw!r}")


class PageInfo(BaseModel):
    """Page description produced by the content role for one tab."""

    id: str = Field(description="Tab identifier")
    url: str = Field(default="", description="Page URL")
    title: str = Field(default="", description="Document title")
    content: str = Field(default="", description="Visible page text")


class ChatRequest(PageInfo):
    """Payload of ``initialize-chat``: the page plus the user's question."""

    query: str = Field(description="The user's question")
    message_id: str | None = Field(default=None, alias="messageId")
    enable_rag: bool = Field(default=True, alias="enableRag")

    model_config = ConfigDict(populate_by_name=True)
