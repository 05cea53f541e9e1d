"""Data models for chat sessions.

These models define the structure of a tab's conversation independent of
where it is persisted.
"""

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

TurnRole = Literal["user", "assistant", "system"]
TurnStatus = Literal["sending", "sent", "error"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatTurn(BaseModel):
    """One message in a conversation.

    Ids are caller-supplied when the panel created the turn, otherwise
    generated. They are not deduplicated.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    role: TurnRole = Field(description="Who produced the text")
    text: str = Field(description="Message text")
    created_at: datetime = Field(default_factory=utcnow)
    status: TurnStatus = Field(default="sent", description="Delivery status")


class ChatSession(BaseModel):
    """Complete conversation for one tab.

    Exactly one session exists per tab id; turns are kept in arrival order.
    """

    tab_id: str
    turns: list[ChatTurn] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def find_turn(self, turn_id: str) -> ChatTurn | None:
        """Return the most recent turn with the given id."""
        for turn in reversed(self.turns):
            if turn.id == turn_id:
                return turn
        return None

    def touch(self) -> None:
        """Advance ``updated_at`` without ever moving it backwards."""
        now = utcnow()
        if now > self.updated_at:
            self.updated_at = now
