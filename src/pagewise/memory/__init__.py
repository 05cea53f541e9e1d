"""Per-tab chat sessions backed by the key-value store."""

from .models import ChatSession, ChatTurn, TurnRole, TurnStatus
from .store import SessionStore

__all__ = [
    "ChatSession",
    "ChatTurn",
    "SessionStore",
    "TurnRole",
    "TurnStatus",
]
