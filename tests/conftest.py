"""Pytest configuration and shared fixtures."""
import asyncio
from typing import Any

import pytest

from pagewise.agent import AgentLoop
from pagewise.chat import ChatService
from pagewise.embedding import HashingEmbeddingProvider
from pagewise.llm import LLMProvider
from pagewise.llm.models import ChatMessage, LLMResponse, StreamingResponse, ToolCall, ToolDefinition
from pagewise.memory import SessionStore
from pagewise.search import RetrievalIndex
from pagewise.storage import create_key_value_store

SYSTEM_TEMPLATE = "Tools:\n{tools_description}\n\nContext:\n{context}"


class ScriptedLLM(LLMProvider):
    """LLM provider that replays scripted responses.

    Each scripted item is a string (final answer), a list of ToolCalls
    (a tool request), an LLMResponse, or an exception to raise. When the
    script runs out the last item repeats.
    """

    def __init__(
        self,
        script: list[Any] | None = None,
        model: str = "scripted-model",
        stream_parts: list[str] | None = None,
        gate: asyncio.Event | None = None
    ):
        self._script = list(script or ["ok"])
        self._model = model
        self.stream_parts = stream_parts or ["Hello", ", ", "world"]
        self.gate = gate
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    @property
    def model(self) -> str:
        return self._model

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDefinition] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        self.calls.append({"messages": list(messages), "tools": tools})
        if self.gate is not None:
            await self.gate.wait()

        item = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, LLMResponse):
            return item
        if isinstance(item, list):
            return LLMResponse(
                content="",
                model=self._model,
                usage={"prompt_tokens": 10, "completion_tokens": 2},
                tool_calls=item
            )
        return LLMResponse(
            content=item,
            model=self._model,
            usage={"prompt_tokens": 10, "completion_tokens": 5}
        )

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        self.calls.append({"messages": list(messages), "tools": None})

        async def generate():
            for part in self.stream_parts:
                yield part

        return StreamingResponse(generate())

    async def close(self) -> None:
        self.closed = True


def tool_call(name: str, **arguments: Any) -> ToolCall:
    return ToolCall(name=name, arguments=arguments)


@pytest.fixture
def kv_store():
    """Return an in-memory key-value store."""
    return create_key_value_store("memory")


@pytest.fixture
def embedder():
    """Return the offline hashing embedder."""
    return HashingEmbeddingProvider(dimension=256)


@pytest.fixture
def llm():
    """Return a scripted LLM that always answers 'ok'."""
    return ScriptedLLM()


@pytest.fixture
def index(embedder, kv_store):
    return RetrievalIndex(embedder, store=kv_store)


@pytest.fixture
def make_service(kv_store, embedder):
    """Build a ChatService around a scripted LLM."""
    def _make(llm: LLMProvider, tools=None, max_rounds: int = 5) -> ChatService:
        return ChatService(
            sessions=SessionStore(kv_store),
            index=RetrievalIndex(embedder, store=kv_store),
            agent=AgentLoop(llm, tools=tools, max_rounds=max_rounds, system_prompt=SYSTEM_TEMPLATE)
        )
    return _make


@pytest.fixture
def acme_text():
    return "Acme Corp develops routers for factories."
