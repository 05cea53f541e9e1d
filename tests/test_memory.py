"""Unit tests for chat sessions and the session store."""
import asyncio
from datetime import timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from pagewise.memory import ChatSession, ChatTurn, SessionStore
from pagewise.memory.store import SESSION_NAMESPACE, session_key
from pagewise.storage import create_key_value_store


class TestModels:
    """Tests for ChatTurn and ChatSession."""

    def test_turn_defaults(self):
        turn = ChatTurn(role="user", text="hello")

        assert turn.id
        assert turn.status == "sent"
        assert turn.created_at.tzinfo is not None

    def test_turn_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            ChatTurn(role="robot", text="hi")  # type: ignore[arg-type]

    def test_find_turn_returns_most_recent(self):
        session = ChatSession(tab_id="1", turns=[
            ChatTurn(id="a", role="user", text="first"),
            ChatTurn(id="a", role="user", text="second"),
        ])

        assert session.find_turn("a").text == "second"
        assert session.find_turn("b") is None

    def test_touch_never_moves_backwards(self):
        session = ChatSession(tab_id="1")
        future = session.updated_at + timedelta(hours=1)
        session.updated_at = future

        session.touch()

        assert session.updated_at == future


class TestSessionStore:
    """Tests for SessionStore."""

    @pytest.mark.asyncio
    async def test_load_or_create_persists_new_session(self, kv_store):
        sessions = SessionStore(kv_store)

        session = await sessions.load_or_create("7")

        assert session.tab_id == "7"
        assert session.turns == []
        assert await kv_store.get(SESSION_NAMESPACE, session_key("7")) is not None

    @pytest.mark.asyncio
    async def test_load_or_create_is_idempotent(self, kv_store):
        sessions = SessionStore(kv_store)

        first = await sessions.load_or_create("7")
        second = await sessions.load_or_create("7")

        assert first is second
        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at

    @pytest.mark.asyncio
    async def test_loads_persisted_session(self, kv_store):
        writer = SessionStore(kv_store)
        await writer.append("7", ChatTurn(role="user", text="hi"))

        reader = SessionStore(kv_store)
        session = await reader.load_or_create("7")

        assert [turn.text for turn in session.turns] == ["hi"]

    @pytest.mark.asyncio
    async def test_append_preserves_arrival_order(self, kv_store):
        sessions = SessionStore(kv_store)
        before = (await sessions.load_or_create("1")).updated_at

        for text in ["one", "two", "three"]:
            await sessions.append("1", ChatTurn(role="user", text=text))

        session = await sessions.get("1")
        assert [turn.text for turn in session.turns] == ["one", "two", "three"]
        assert session.updated_at >= before

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_appended_twice(self, kv_store):
        sessions = SessionStore(kv_store)
        await sessions.append("1", ChatTurn(id="dup", role="user", text="a"))
        await sessions.append("1", ChatTurn(id="dup", role="user", text="b"))

        updated = await sessions.update_status("1", "dup", "error")

        session = await sessions.get("1")
        assert [turn.text for turn in session.turns] == ["a", "b"]
        assert updated.text == "b"
        assert [turn.status for turn in session.turns] == ["sent", "error"]

    @pytest.mark.asyncio
    async def test_update_status_unknown(self, kv_store):
        sessions = SessionStore(kv_store)

        assert await sessions.update_status("none", "x", "sent") is None
        await sessions.load_or_create("1")
        assert await sessions.update_status("1", "x", "sent") is None

    @pytest.mark.asyncio
    async def test_clear_drops_cache_and_persisted_copy(self, kv_store):
        sessions = SessionStore(kv_store)
        await sessions.append("7", ChatTurn(role="user", text="hi"))

        await sessions.clear("7")

        assert await kv_store.get(SESSION_NAMESPACE, session_key("7")) is None
        assert await sessions.get("7") is None
        assert (await sessions.load_or_create("7")).turns == []

    @pytest.mark.asyncio
    async def test_tabs_are_independent(self, kv_store):
        sessions = SessionStore(kv_store)
        await sessions.append("1", ChatTurn(role="user", text="one"))
        await sessions.append("2", ChatTurn(role="user", text="two"))

        await sessions.clear("1")

        assert (await sessions.get("2")).turns[0].text == "two"

    @pytest.mark.asyncio
    async def test_corrupt_record_is_ignored(self, kv_store):
        logs = []
        sessions = SessionStore(kv_store)
        sessions.set_debug_callback(lambda level, component, message: logs.append(level))
        await kv_store.set(SESSION_NAMESPACE, session_key("1"), {"turns": "nonsense"})

        session = await sessions.load_or_create("1")

        assert session.turns == []
        assert "warning" in logs

    @given(st.lists(st.sampled_from(["a", "b", "c"]), min_size=1, max_size=8))
    @settings(max_examples=25, deadline=None)
    def test_load_or_create_idempotent_property(self, tab_ids: list[str]):
        """Property test: repeated loads return the same session per tab."""
        async def run():
            sessions = SessionStore(create_key_value_store("memory"))
            seen: dict[str, ChatSession] = {}
            for tab_id in tab_ids:
                session = await sessions.load_or_create(tab_id)
                if tab_id in seen:
                    assert session is seen[tab_id]
                    assert session.updated_at >= seen[tab_id].updated_at
                seen[tab_id] = session

        asyncio.run(run())
