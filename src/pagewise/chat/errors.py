"""Errors raised by the chat layer."""


class ChatError(Exception):
    """Base class for chat failures."""


class NotConfiguredError(ChatError):
    """Credentials are missing; the user must configure the extension."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "Extension not configured. Please add your LLM and embedding API credentials."
        )


class NotInitializedError(ChatError):
    """The chat service could not be constructed."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message or "Chat service not initialized. Please configure the extension."
        )


class TurnFailedError(ChatError):
    """A conversation turn failed; the user turn is marked ``error``.

    Attributes:
        tab_id: Tab the turn belongs to
        turn_id: Id of the failed user turn
    """

    def __init__(self, tab_id: str, turn_id: str, message: str):
        self.tab_id = tab_id
        self.turn_id = turn_id
        super().__init__(message)
