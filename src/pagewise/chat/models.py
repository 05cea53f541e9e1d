from datetime import datetime, timezone

from pydantic import BaseModel, Field

from ..search import ContextMode


class ChatReply(BaseModel):
    """Answer to one ``initialize-chat`` request."""

    id: str = Field(description="Id of the persisted assistant turn")
    content: str = Field(description="Assistant text")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    tab_id: str = Field(description="Tab the turn started on")
    message_id: str = Field(description="Id of the user turn this answers")
    model: str = ""
    rounds: int = 0
    context_mode: ContextMode = ContextMode.NONE
    discarded: bool = Field(
        default=False,
        description="The active tab changed while the turn ran"
    )
