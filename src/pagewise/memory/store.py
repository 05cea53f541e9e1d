"""Session store: cache in front of the key-value store.

Hidden design decisions:
- Read path is cache, then persisted copy, then a fresh session
- Every mutation persists the whole session (last write wins)
- Sessions are keyed ``tab_session_<tab_id>`` in the ``session`` namespace
"""

from pydantic import ValidationError

from ..debug import Debuggable
from ..storage import KeyValueStore
from .models import ChatSession, ChatTurn, TurnStatus

SESSION_NAMESPACE = "session"


def session_key(tab_id: str) -> str:
    return f"tab_session_{tab_id}"


class SessionStore(Debuggable):
    """Owns every tab's ChatSession.

    Args:
        store: Key-value store used for persistence
    """

    def __init__(self, store: KeyValueStore):
        self._store = store
        self._cache: dict[str, ChatSession] = {}

    async def load_or_create(self, tab_id: str) -> ChatSession:
        """Return the tab's session, creating and persisting one if needed.

        Idempotent until ``clear``: repeated calls return the same session.
        """
        session = await self.get(tab_id)
        if session is not None:
            return session

        session = ChatSession(tab_id=tab_id)
        await self._save(session)
        self._cache[tab_id] = session
        self._debug("debug", "SessionStore", f"Created session for tab {tab_id}")
        return session

    async def get(self, tab_id: str) -> ChatSession | None:
        """Return the tab's session without creating one."""
        session = self._cache.get(tab_id)
        if session is not None:
            return session

        raw = await self._store.get(SESSION_NAMESPACE, session_key(tab_id))
        if raw is None:
            return None

        try:
            session = ChatSession.model_validate(raw)
        except ValidationError as e:
            self._debug("warning", "SessionStore", f"Discarding corrupt session for tab {tab_id}: {e}")
            return None

        self._cache[tab_id] = session
        self._debug("debug", "SessionStore", f"Loaded session for tab {tab_id} ({len(session.turns)} turns)")
        return session

    async def append(self, tab_id: str, turn: ChatTurn) -> ChatTurn:
        """Append a turn and persist the session.

        Args:
            tab_id: Tab identifier
            turn: Turn to append (id and timestamp default when not given)

        Returns:
            The appended turn
        """
        session = await self.load_or_create(tab_id)
        session.turns.append(turn)
        session.touch()
        await self._save(session)
        return turn

    async def update_status(
        self,
        tab_id: str,
        turn_id: str,
        status: TurnStatus
    ) -> ChatTurn | None:
        """Set the status of the most recent turn with ``turn_id``.

        Returns:
            The updated turn, or None if the tab has no such turn
        """
        session = await self.get(tab_id)
        if session is None:
            return None

        turn = session.find_turn(turn_id)
        if turn is None:
            return None

        turn.status = status
        session.touch()
        await self._save(session)
        return turn

    async def clear(self, tab_id: str) -> None:
        """Drop the cached and the persisted session."""
        self._cache.pop(tab_id, None)
        await self._store.set(SESSION_NAMESPACE, session_key(tab_id), None)
        self._debug("info", "SessionStore", f"Cleared session for tab {tab_id}")

    async def _save(self, session: ChatSession) -> None:
        await self._store.set(
            SESSION_NAMESPACE,
            session_key(session.tab_id),
            session.model_dump(mode="json")
        )
