"""Unit tests for the handler registry."""
import pytest
from hypothesis import given
from hypothesis import strategies as st

from pagewise.messaging import (
    DuplicateHandlerError,
    HandlerExecutionError,
    HandlerNotFoundError,
    HandlerRegistry,
    RegistryFullError,
)


class TestRegistration:
    """Tests for register/unregister."""

    def test_register_and_has(self):
        registry = HandlerRegistry()
        registry.register("ping", lambda payload: "pong")

        assert registry.has("ping")
        assert "ping" in registry
        assert registry.kinds() == ["ping"]
        assert len(registry) == 1

    def test_duplicate_registration_keeps_original(self):
        """Registering a kind twice fails and leaves the first handler in place."""
        registry = HandlerRegistry()
        first = lambda payload: "first"  # noqa: E731
        registry.register("kind", first)

        with pytest.raises(DuplicateHandlerError, match="already registered"):
            registry.register("kind", lambda payload: "second")

        assert registry._handlers["kind"] is first

    def test_capacity_is_enforced(self):
        registry = HandlerRegistry(max_handlers=2)
        registry.register("a", lambda p: p)
        registry.register("b", lambda p: p)

        with pytest.raises(RegistryFullError, match="2"):
            registry.register("c", lambda p: p)
        assert registry.kinds() == ["a", "b"]

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            HandlerRegistry(max_handlers=0)

    def test_non_callable_rejected(self):
        registry = HandlerRegistry()
        with pytest.raises(TypeError, match="callable"):
            registry.register("kind", "not a function")  # type: ignore[arg-type]

    def test_unregister_allows_reregistration(self):
        registry = HandlerRegistry()
        registry.register("kind", lambda p: 1)

        assert registry.unregister("kind") is True
        assert registry.unregister("kind") is False

        registry.register("kind", lambda p: 2)
        assert registry.has("kind")

    def test_clear(self):
        registry = HandlerRegistry()
        registry.register("a", lambda p: p)
        registry.register("b", lambda p: p)

        assert registry.clear() == 2
        assert len(registry) == 0

    @given(st.lists(st.text(min_size=1, max_size=10), min_size=1, max_size=20))
    def test_second_registration_always_fails(self, kinds: list[str]):
        """Property test: every repeated kind is rejected, nothing is overwritten."""
        registry = HandlerRegistry(max_handlers=100)
        first_seen = {}
        for kind in kinds:
            handler = lambda payload, k=kind: k  # noqa: E731
            if kind in first_seen:
                with pytest.raises(DuplicateHandlerError):
                    registry.register(kind, handler)
            else:
                registry.register(kind, handler)
                first_seen[kind] = handler

        assert registry.kinds() == list(first_seen)
        for kind, handler in first_seen.items():
            assert registry._handlers[kind] is handler


class TestDispatch:
    """Tests for dispatch."""

    @pytest.mark.asyncio
    async def test_sync_handler(self):
        registry = HandlerRegistry()
        registry.register("double", lambda payload: payload * 2)

        assert await registry.dispatch("double", 21) == 42

    @pytest.mark.asyncio
    async def test_async_handler(self):
        registry = HandlerRegistry()

        async def handler(payload):
            return {"echo": payload}

        registry.register("echo", handler)
        assert await registry.dispatch("echo", "hi") == {"echo": "hi"}

    @pytest.mark.asyncio
    async def test_unknown_kind(self):
        registry = HandlerRegistry()

        with pytest.raises(HandlerNotFoundError) as exc_info:
            await registry.dispatch("missing", None)

        assert exc_info.value.code.value == "HandlerNotFound"
        assert "missing" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_sync_failure_wrapped(self):
        registry = HandlerRegistry()

        def handler(payload):
            raise KeyError("boom")

        registry.register("bad", handler)
        with pytest.raises(HandlerExecutionError) as exc_info:
            await registry.dispatch("bad", None)

        assert exc_info.value.kind == "bad"
        assert "boom" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_async_failure_wrapped(self):
        registry = HandlerRegistry()

        async def handler(payload):
            raise RuntimeError("async boom")

        registry.register("bad", handler)
        with pytest.raises(HandlerExecutionError, match="async boom"):
            await registry.dispatch("bad", None)

    @pytest.mark.asyncio
    async def test_failure_without_message_uses_type_name(self):
        registry = HandlerRegistry()

        def handler(payload):
            raise ValueError()

        registry.register("bad", handler)
        with pytest.raises(HandlerExecutionError, match="ValueError"):
            await registry.dispatch("bad", None)
