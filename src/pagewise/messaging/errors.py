"""Error taxonomy for the message router.

Every error carries a machine-readable ``code`` which is what crosses the
context boundary inside a failure envelope.
"""

from .models import ErrorCode


class RouterError(Exception):
    """Base class for routing failures.

    Attributes:
        code: Wire error code
        message: Human readable description
    """

    code: ErrorCode = ErrorCode.ROUTING_ERROR

    def __init__(self, message: str, code: ErrorCode | None = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(message)


class InvalidMessageError(RouterError):
    """Inbound message is not a mapping with a string ``kind``."""

    code = ErrorCode.INVALID_MESSAGE


class HandlerNotFoundError(RouterError):
    """No handler is registered for the requested kind."""

    code = ErrorCode.HANDLER_NOT_FOUND

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f'No handler registered for message kind: "{kind}"')


class HandlerExecutionError(RouterError):
    """A handler raised; wraps the original exception message."""

    code = ErrorCode.HANDLER_EXECUTION_ERROR

    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(message)


class AlreadyActiveError(RouterError):
    """The router listener was started twice."""

    code = ErrorCode.ALREADY_ACTIVE

    def __init__(self) -> None:
        super().__init__("Message listener is already active")


class MessageTimeoutError(RouterError):
    """No reply arrived within the request timeout."""

    code = ErrorCode.ROUTING_ERROR


class DuplicateHandlerError(ValueError):
    """Raised when registering a kind that already has a handler."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(
            f'Handler already registered for kind: "{kind}". '
            f"Use unregister() first."
        )


class RegistryFullError(ValueError):
    """Raised when the registry is at its handler capacity."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(f"Maximum handlers limit ({capacity}) reached")
