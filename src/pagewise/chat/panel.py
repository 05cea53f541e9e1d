"""Client-side logic of the chat panel.

The panel shows the turns of the active tab only. It asks the tab's content
role for the page, sends the question straight to the background role, and
reloads whenever the active tab changes.
"""

import asyncio
from typing import Any

from ..debug import Debuggable
from ..memory import ChatTurn
from ..messaging import BrowserHost, MessageKind, send_request
from ..messaging.channel import DEFAULT_TIMEOUT


class ChatPanel(Debuggable):
    """View state for the chat panel.

    Hidden design decisions:
    - Turns shown are a local copy; the background session is the truth
    - A reply for a tab that is no longer shown is dropped from view; it is
      still persisted and appears when that tab is shown again
    - Retry removes the failed turn and resubmits its text as a new turn

    Args:
        host: Browser host (channels and active tab)
        enable_rag: Send ranked chunks instead of the whole page
        timeout: Seconds to wait for each request
    """

    def __init__(
        self,
        host: BrowserHost,
        enable_rag: bool = True,
        timeout: float = DEFAULT_TIMEOUT
    ):
        self._host = host
        self.enable_rag = enable_rag
        self._timeout = timeout
        self._tab_id: str | None = None
        self._turns: list[ChatTurn] = []
        self._tasks: set[asyncio.Task] = set()
        self.error: str | None = None
        self.is_loading = False
        self.is_initialized = False

    @property
    def tab_id(self) -> str | None:
        return self._tab_id

    @property
    def turns(self) -> list[ChatTurn]:
        return list(self._turns)

    def attach(self) -> None:
        """Reload the view whenever the host activates another tab."""
        self._host.on_activated(self._on_activated)

    def detach(self) -> None:
        self._host.remove_on_activated(self._on_activated)

    def _on_activated(self, tab_id: str) -> None:
        if tab_id == self._tab_id:
            return
        self._tab_id = tab_id
        self._turns = []
        task = asyncio.ensure_future(self.load(tab_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait for pending tab reloads."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def load(self, tab_id: str | None = None) -> bool:
        """Load the session of a tab (the active tab by default).

        Returns:
            True if the session was loaded
        """
        tab_id = tab_id or self._host.active_tab_id
        if tab_id is None:
            self.error = "No active tab found"
            return False

        self._tab_id = tab_id
        response = await send_request(
            self._host.tab(tab_id),
            MessageKind.GET_SESSION.value,
            {"tabId": tab_id},
            timeout=self._timeout
        )
        if self._tab_id != tab_id:
            # Another tab was activated while loading
            return False

        if not response.success:
            self.error = response.error.message
            self._debug("warning", "Panel", f"Failed to load session for tab {tab_id}: {self.error}")
            return False

        self._turns = [ChatTurn.model_validate(turn) for turn in response.data.get("turns", [])]
        self.error = None
        self.is_initialized = True
        return True

    async def send_message(self, text: str) -> ChatTurn | None:
        """Send a question about the active tab's page.

        Returns:
            The assistant turn shown, or None if nothing was added to view
            (empty text, failure, or the reply belonged to another tab)
        """
        if not text.strip():
            return None

        tab_id = self._tab_id or self._host.active_tab_id
        if tab_id is None:
            self.error = "No active tab found"
            return None
        self._tab_id = tab_id

        user_turn = ChatTurn(role="user", text=text, status="sending")
        self._turns.append(user_turn)
        self.is_loading = True
        self.error = None

        try:
            data = await self._ask(tab_id, user_turn)
        except RuntimeError as e:
            self.is_loading = False
            if self._tab_id == tab_id:
                self._set_status(user_turn.id, "error")
                self.error = str(e)
            return None

        self.is_loading = False
        if self._tab_id != tab_id or data.get("discarded"):
            self._debug("info", "Panel", f"Dropping reply for tab {tab_id}; it is no longer shown")
            if self._tab_id == tab_id:
                await self.load(tab_id)
            return None

        self._set_status(user_turn.id, "sent")
        assistant_turn = ChatTurn(
            id=data["id"],
            role="assistant",
            text=data["content"],
            created_at=data["timestamp"]
        )
        self._turns.append(assistant_turn)
        return assistant_turn

    async def retry(self, turn_id: str) -> ChatTurn | None:
        """Resubmit a user turn's text as a new turn."""
        turn = next((t for t in self._turns if t.id == turn_id), None)
        if turn is None or turn.role != "user":
            return None

        self._turns = [t for t in self._turns if t.id != turn_id]
        return await self.send_message(turn.text)

    async def clear(self) -> bool:
        """Clear the shown tab's session and index."""
        tab_id = self._tab_id or self._host.active_tab_id
        if tab_id is None:
            self.error = "No active tab found"
            return False

        response = await send_request(
            self._host.runtime,
            MessageKind.CLEAR_SESSION.value,
            {"id": tab_id},
            timeout=self._timeout
        )
        if not response.success:
            self.error = response.error.message
            return False

        if self._tab_id == tab_id:
            self._turns = []
            self.error = None
        return True

    async def _ask(self, tab_id: str, user_turn: ChatTurn) -> dict[str, Any]:
        page = await send_request(
            self._host.tab(tab_id),
            MessageKind.GET_PAGE_CONTENT.value,
            {"tabId": tab_id},
            timeout=self._timeout
        )
        if not page.success:
            raise RuntimeError(page.error.message)
        if not isinstance(page.data, dict):
            raise RuntimeError("Failed to get page content")

        # Sent straight to the background so a page navigation cannot
        # break the request mid-flight
        reply = await send_request(
            self._host.runtime,
            MessageKind.INITIALIZE_CHAT.value,
            {
                **page.data,
                "tabId": tab_id,
                "query": user_turn.text,
                "messageId": user_turn.id,
                "enableRag": self.enable_rag,
            },
            timeout=self._timeout
        )
        if not reply.success:
            raise RuntimeError(reply.error.message)
        return reply.data

    def _set_status(self, turn_id: str, status: str) -> None:
        for turn in reversed(self._turns):
            if turn.id == turn_id:
                turn.status = status
                return
