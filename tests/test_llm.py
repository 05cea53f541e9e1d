"""Unit tests for LLM providers (no network)."""
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from pagewise.llm import LLMProvider, create_llm_provider
from pagewise.llm.models import ChatMessage, ToolCall, ToolDefinition
from pagewise.llm.providers import GeminiProvider, OpenAIProvider
from pagewise.llm.providers.openai import _parse_arguments, _to_openai_message

SEARCH_TOOL = ToolDefinition(
    name="search_page",
    description="Search the page",
    parameters={"type": "object", "properties": {"query": {"type": "string"}}}
)


class TestLLMProviderInterface:
    """Tests for the abstract LLMProvider interface."""

    def test_provider_is_abstract(self):
        with pytest.raises(TypeError):
            LLMProvider()  # type: ignore


class TestOpenAIConversion:
    """Tests for Chat Completions message conversion."""

    def test_plain_message(self):
        assert _to_openai_message(ChatMessage(role="user", content="hi")) == {"role": "user", "content": "hi"}

    def test_assistant_tool_calls(self):
        message = ChatMessage(
            role="assistant",
            tool_calls=[ToolCall(id="call_1", name="search_page", arguments={"query": "price"})]
        )

        converted = _to_openai_message(message)

        assert converted["content"] is None
        assert converted["tool_calls"] == [{
            "id": "call_1",
            "type": "function",
            "function": {"name": "search_page", "arguments": json.dumps({"query": "price"})}
        }]

    def test_tool_result(self):
        message = ChatMessage(role="tool", content="42", tool_call_id="call_1", name="search_page")

        assert _to_openai_message(message) == {"role": "tool", "tool_call_id": "call_1", "content": "42"}

    @pytest.mark.parametrize("raw,expected", [
        ('{"query": "price"}', {"query": "price"}),
        ("", {}),
        (None, {}),
        ("{not json", {}),
        ("[1, 2]", {}),
    ])
    def test_parse_arguments(self, raw, expected):
        assert _parse_arguments(raw) == expected


class TestOpenAIProvider:
    """Tests for OpenAIProvider with a mocked client."""

    @pytest.mark.asyncio
    async def test_chat_completion_parses_tool_calls(self):
        provider = OpenAIProvider(api_key="fake-key")
        completion = SimpleNamespace(
            model="gpt-4o-2024",
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3, total_tokens=15),
            choices=[SimpleNamespace(message=SimpleNamespace(
                content=None,
                tool_calls=[SimpleNamespace(
                    id="call_9",
                    function=SimpleNamespace(name="search_page", arguments='{"query": "price"}')
                )]
            ))]
        )
        create = AsyncMock(return_value=completion)
        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        response = await provider.chat_completion(
            [ChatMessage(role="user", content="price?")], tools=[SEARCH_TOOL], max_tokens=50
        )

        assert response.content == ""
        assert response.requests_tools
        assert response.tool_calls[0] == ToolCall(id="call_9", name="search_page", arguments={"query": "price"})
        assert response.usage == {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15}

        params = create.await_args.kwargs
        assert params["model"] == "gpt-4o"
        assert params["max_tokens"] == 50
        assert params["tools"][0]["function"]["name"] == "search_page"

    @pytest.mark.asyncio
    async def test_chat_completion_without_tools(self):
        provider = OpenAIProvider(api_key="fake-key", model="gpt-4o-mini")
        completion = SimpleNamespace(
            model="gpt-4o-mini",
            usage=None,
            choices=[SimpleNamespace(message=SimpleNamespace(content="Hello", tool_calls=None))]
        )
        create = AsyncMock(return_value=completion)
        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        response = await provider.chat_completion([ChatMessage(role="user", content="hi")])

        assert response.content == "Hello"
        assert response.tool_calls == []
        assert "tools" not in create.await_args.kwargs

    @pytest.mark.asyncio
    async def test_concurrent_streams_keep_their_own_usage(self):
        def chunk(text=None, usage=None):
            choices = [SimpleNamespace(delta=SimpleNamespace(content=text))] if text else []
            return SimpleNamespace(choices=choices, usage=usage)

        def stream_of(*chunks):
            async def generate():
                for item in chunks:
                    yield item
            return generate()

        def usage(prompt, completion):
            return SimpleNamespace(prompt_tokens=prompt, completion_tokens=completion, total_tokens=prompt + completion)

        provider = OpenAIProvider(api_key="fake-key")
        create = AsyncMock(side_effect=[
            stream_of(chunk("first"), chunk(usage=usage(1, 1))),
            stream_of(chunk("second"), chunk(usage=usage(5, 5))),
        ])
        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        first = await provider.chat_completion_stream([ChatMessage(role="user", content="a")])
        second = await provider.chat_completion_stream([ChatMessage(role="user", content="b")])

        assert [part async for part in first] == ["first"]
        assert first.usage == {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}
        assert second.usage is None

        assert [part async for part in second] == ["second"]
        assert second.usage == {"prompt_tokens": 5, "completion_tokens": 5, "total_tokens": 10}


class TestGeminiConversion:
    """Tests for Gemini message and config conversion."""

    @pytest.fixture
    def provider(self):
        return GeminiProvider(api_key="fake-key", max_retries=1)

    def test_system_messages_become_instruction(self, provider):
        system, contents = provider._convert_messages([
            ChatMessage(role="system", content="Be brief."),
            ChatMessage(role="system", content="Use the page."),
            ChatMessage(role="user", content="hi"),
        ])

        assert system == "Be brief.\n\nUse the page."
        assert [c.role for c in contents] == ["user"]

    def test_tool_results_are_grouped(self, provider):
        _, contents = provider._convert_messages([
            ChatMessage(role="user", content="compare"),
            ChatMessage(role="assistant", tool_calls=[
                ToolCall(id="a", name="search_page", arguments={"query": "x"}),
                ToolCall(id="b", name="search_page", arguments={"query": "y"}),
            ]),
            ChatMessage(role="tool", content="X", tool_call_id="a", name="search_page"),
            ChatMessage(role="tool", content="Y", tool_call_id="b", name="search_page"),
        ])

        assert [c.role for c in contents] == ["user", "model", "user"]
        assert len(contents[1].parts) == 2
        responses = [part.function_response for part in contents[2].parts]
        assert [r.id for r in responses] == ["a", "b"]
        assert responses[1].response == {"result": "Y"}

    def test_function_calling_mode(self, provider):
        with_tools = provider._build_config(None, [SEARCH_TOOL], 0.7, None)
        without_tools = provider._build_config("sys", None, 0.7, 100)

        assert with_tools.tool_config.function_calling_config.mode == "AUTO"
        assert with_tools.tools[0].function_declarations[0].name == "search_page"
        assert without_tools.tool_config.function_calling_config.mode == "NONE"
        assert without_tools.tools is None
        assert without_tools.max_output_tokens == 100

    @pytest.mark.asyncio
    async def test_chat_completion_extracts_function_calls(self, provider):
        response = SimpleNamespace(
            usage_metadata=SimpleNamespace(prompt_token_count=7, candidates_token_count=2, total_token_count=9),
            candidates=[SimpleNamespace(content=SimpleNamespace(parts=[
                SimpleNamespace(text=None, function_call=SimpleNamespace(
                    id=None, name="search_page", args={"query": "price"}
                )),
            ]))]
        )
        generate = AsyncMock(return_value=response)
        provider._client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate)))

        result = await provider.chat_completion([ChatMessage(role="user", content="price?")], tools=[SEARCH_TOOL])

        assert result.content == ""
        assert result.tool_calls[0].name == "search_page"
        assert result.tool_calls[0].arguments == {"query": "price"}
        assert result.tool_calls[0].id.startswith("call_")
        assert result.usage == {"prompt_tokens": 7, "completion_tokens": 2, "total_tokens": 9}


class TestLLMFactory:
    """Tests for create_llm_provider."""

    def test_create_openai(self):
        assert isinstance(create_llm_provider("openai", api_key="fake-key"), OpenAIProvider)

    def test_create_gemini(self):
        provider = create_llm_provider("Gemini", api_key="fake-key", model="gemini-2.5-pro")
        assert isinstance(provider, GeminiProvider)
        assert provider.model == "gemini-2.5-pro"

    def test_missing_api_key(self):
        with pytest.raises(TypeError, match="api_key"):
            create_llm_provider("gemini")

    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            create_llm_provider("anthropic")
