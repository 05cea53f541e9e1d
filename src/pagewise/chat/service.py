"""Chat orchestration for one background context.

A turn is: persist the user turn as ``sending``, assemble grounding context,
run the agent loop with the earlier turns as history, persist the assistant
turn, mark the user turn ``sent``. Any failure marks the user turn ``error``
and surfaces as TurnFailedError; the session stays usable.
"""

from collections.abc import AsyncIterator

from ..agent import AgentLoop, BrowserActions, create_browser_tools
from ..debug import Debuggable, truncate
from ..embedding import create_embedding_provider
from ..llm import create_llm_provider
from ..llm.models import ChatMessage
from ..memory import ChatSession, ChatTurn, SessionStore
from ..messaging.models import PageInfo
from ..search import ContextAssembler, GroundingContext, RetrievalError, RetrievalIndex
from ..storage import KeyValueStore
from .config import ExtensionConfig
from .errors import NotConfiguredError, TurnFailedError
from .models import ChatReply


class ChatService(Debuggable):
    """Tab-keyed conversations grounded in each tab's page.

    Hidden design decisions:
    - Replies always land in the session of the tab the turn started on
    - A reply is flagged ``discarded`` when the current tab changed meanwhile
    - Failed turns are excluded from the history sent to the model

    Args:
        sessions: Session store
        index: Retrieval index
        agent: Agent loop used to answer
        assembler: Context assembler (built over ``index`` when omitted)
        history_limit: Maximum earlier turns passed to the model
    """

    def __init__(
        self,
        sessions: SessionStore,
        index: RetrievalIndex,
        agent: AgentLoop,
        assembler: ContextAssembler | None = None,
        history_limit: int = 20
    ):
        self._sessions = sessions
        self._index = index
        self._agent = agent
        self._assembler = assembler or ContextAssembler(index)
        self._history_limit = history_limit
        self._current_tab_id: str | None = None

    @property
    def current_tab_id(self) -> str | None:
        return self._current_tab_id

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    @property
    def index(self) -> RetrievalIndex:
        return self._index

    def set_debug_callback(self, callback) -> None:
        super().set_debug_callback(callback)
        for component in (self._sessions, self._index, self._assembler, self._agent):
            component.set_debug_callback(callback)

    async def set_current_tab(self, tab_id: str) -> ChatSession:
        """Make a tab current and return its (possibly new) session."""
        self._current_tab_id = tab_id
        return await self._sessions.load_or_create(tab_id)

    async def ingest_page(self, page: PageInfo) -> bool:
        """Index a tab's page; a no-op for an unchanged URL.

        A page with no text still replaces whatever an earlier URL left
        behind, so the tab is never answered from another page.

        Retrieval failures are reported and swallowed: the snapshot is still
        stored and the turn proceeds on it.

        Returns:
            True if the index was rebuilt
        """
        try:
            return await self._index.ingest(page.id, page)
        except RetrievalError as e:
            self._debug("warning", "ChatService", str(e))
            return False

    async def send_message(
        self,
        tab_id: str,
        query: str,
        message_id: str | None = None,
        enable_rag: bool = True
    ) -> ChatReply:
        """Run one conversation turn.

        Args:
            tab_id: Tab the turn belongs to
            query: The user's question
            message_id: Id for the user turn (generated when omitted)
            enable_rag: Use ranked chunks instead of the whole page

        Returns:
            ChatReply for the persisted assistant turn

        Raises:
            TurnFailedError: If context assembly or the agent loop failed
        """
        history = await self._history(tab_id)
        user_turn = await self._begin_turn(tab_id, query, message_id)

        try:
            context = await self._assembler.assemble(tab_id, query, enable_rag)
            result = await self._agent.run(query, context=context.text, history=history)
        except Exception as e:
            raise await self._fail_turn(tab_id, user_turn, e) from e

        assistant_turn = await self._finish_turn(tab_id, user_turn, result.content)
        reply = ChatReply(
            id=assistant_turn.id,
            content=assistant_turn.text,
            timestamp=assistant_turn.created_at,
            tab_id=tab_id,
            message_id=user_turn.id,
            model=result.model,
            rounds=result.rounds,
            context_mode=context.mode,
            discarded=self._is_stale(tab_id)
        )
        if reply.discarded:
            self._debug("info", "ChatService", f"Tab {tab_id} is no longer current; reply flagged as discarded")
        return reply

    async def stream_message(
        self,
        tab_id: str,
        query: str,
        message_id: str | None = None,
        enable_rag: bool = True
    ) -> AsyncIterator[str]:
        """Run one turn, yielding answer text as it is generated.

        Streaming answers never call tools. The assistant turn is persisted
        once the stream completes; a stream closed early leaves the user
        turn marked ``error``.

        Raises:
            TurnFailedError: If the turn failed before or during streaming
        """
        history = await self._history(tab_id)
        user_turn = await self._begin_turn(tab_id, query, message_id)

        parts: list[str] = []
        settled = False
        try:
            context: GroundingContext = await self._assembler.assemble(tab_id, query, enable_rag)
            stream = await self._agent.stream(query, context=context.text, history=history)
            async for chunk in stream:
                parts.append(chunk)
                yield chunk
            settled = True
        except Exception as e:
            settled = True
            raise await self._fail_turn(tab_id, user_turn, e) from e
        finally:
            if not settled:
                # The reader closed the stream before the answer was complete
                self._debug("warning", "ChatService", f"Tab {tab_id}: stream closed early")
                await self._sessions.update_status(tab_id, user_turn.id, "error")

        await self._finish_turn(tab_id, user_turn, "".join(parts))

    async def clear_tab(self, tab_id: str) -> None:
        """Drop a tab's session and retrieval index."""
        await self._sessions.clear(tab_id)
        await self._index.clear(tab_id)

    async def close(self) -> None:
        """Close model and embedding clients."""
        await self._agent.close()
        await self._index.close()

    async def _history(self, tab_id: str) -> list[ChatMessage]:
        session = await self._sessions.load_or_create(tab_id)
        turns = [
            turn for turn in session.turns
            if turn.status != "error" and turn.role in ("user", "assistant")
        ]
        return [
            ChatMessage(role=turn.role, content=turn.text)
            for turn in turns[-self._history_limit:]
        ]

    async def _begin_turn(self, tab_id: str, query: str, message_id: str | None) -> ChatTurn:
        turn = ChatTurn(role="user", text=query, status="sending")
        if message_id:
            turn.id = message_id
        self._debug("info", "ChatService", f"Tab {tab_id}: {truncate(query)}")
        return await self._sessions.append(tab_id, turn)

    async def _finish_turn(self, tab_id: str, user_turn: ChatTurn, text: str) -> ChatTurn:
        assistant_turn = await self._sessions.append(
            tab_id, ChatTurn(role="assistant", text=text)
        )
        await self._sessions.update_status(tab_id, user_turn.id, "sent")
        return assistant_turn

    async def _fail_turn(self, tab_id: str, user_turn: ChatTurn, error: Exception) -> TurnFailedError:
        self._debug("error", "ChatService", f"Tab {tab_id}: turn failed: {error}")
        await self._sessions.update_status(tab_id, user_turn.id, "error")
        return TurnFailedError(tab_id, user_turn.id, str(error) or type(error).__name__)

    def _is_stale(self, tab_id: str) -> bool:
        return self._current_tab_id is not None and self._current_tab_id != tab_id


def create_chat_service(
    config: ExtensionConfig,
    store: KeyValueStore,
    browser: BrowserActions | None = None,
    max_rounds: int = 5,
    detect_cycles: bool = False
) -> ChatService:
    """Build a ChatService from configuration.

    Args:
        config: Credentials and model choices
        store: Key-value store for sessions and indices
        browser: Page manipulation primitives; no browser tools without one
        max_rounds: Agent loop round budget
        detect_cycles: Stop the agent loop on repeated tool calls

    Returns:
        A ready ChatService

    Raises:
        NotConfiguredError: If credentials are missing
    """
    if not config.configured:
        raise NotConfiguredError()

    llm = create_llm_provider(config.llm_provider, **config.llm_kwargs())
    embedder = create_embedding_provider(
        config.resolved_embedding_provider, **config.embedding_kwargs()
    )
    tools = create_browser_tools(browser) if browser is not None else []

    return ChatService(
        sessions=SessionStore(store),
        index=RetrievalIndex(embedder, store=store),
        agent=AgentLoop(llm, tools=tools, max_rounds=max_rounds, detect_cycles=detect_cycles)
    )
