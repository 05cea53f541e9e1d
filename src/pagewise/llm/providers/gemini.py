"""Google Gemini LLM provider implementation.

Uses the official Google GenAI SDK for async chat completions with native
function calling.

Note: Gemini can return empty responses due to safety filtering or service
issues. This implementation retries empty answers and relaxes safety
settings so ordinary web page text is not blocked.
"""

import asyncio
import uuid
from collections.abc import AsyncIterator, Callable
from typing import Any

from google import genai
from google.genai import types

from ..base import LLMProvider
from ..models import ChatMessage, LLMResponse, StreamingResponse, ToolCall, ToolDefinition

DEFAULT_SAFETY_SETTINGS = [
    types.SafetySetting(category="HARM_CATEGORY_HARASSMENT", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_HATE_SPEECH", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_SEXUALLY_EXPLICIT", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_DANGEROUS_CONTENT", threshold="BLOCK_ONLY_HIGH"),
]


class GeminiProvider(LLMProvider):
    """Google Gemini LLM provider implementation.

    Hidden design decisions:
    - Google GenAI client initialization
    - Message format conversion; consecutive tool results are grouped into
      one user turn of function responses
    - Function calling is AUTO when tools are offered and NONE otherwise
    - Retry logic for empty responses (known Gemini issue)
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        max_retries: int = 3,
        **client_kwargs: Any
    ):
        """Initialize Gemini provider.

        Args:
            api_key: Google AI API key
            model: Default model (gemini-2.5-flash, gemini-2.5-pro, ...)
            max_retries: Max retries for empty responses (default 3)
            **client_kwargs: Additional kwargs for Client
        """
        self._model = model
        self._max_retries = max_retries
        self._client = genai.Client(api_key=api_key, **client_kwargs)

    @property
    def model(self) -> str:
        return self._model

    def _convert_messages(self, messages: list[ChatMessage]) -> tuple[str | None, list[types.Content]]:
        """Convert ChatMessage list to Gemini format.

        Returns:
            Tuple of (system_instruction, contents)
        """
        system_parts: list[str] = []
        contents: list[types.Content] = []

        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.content)
            elif msg.role == "user":
                contents.append(types.Content(role="user", parts=[types.Part(text=msg.content)]))
            elif msg.role == "assistant":
                parts = [types.Part(text=msg.content)] if msg.content else []
                parts.extend(
                    types.Part(function_call=types.FunctionCall(
                        id=call.id, name=call.name, args=call.arguments
                    ))
                    for call in msg.tool_calls
                )
                contents.append(types.Content(role="model", parts=parts))
            elif msg.role == "tool":
                part = types.Part(function_response=types.FunctionResponse(
                    id=msg.tool_call_id,
                    name=msg.name or "",
                    response={"result": msg.content}
                ))
                previous = contents[-1] if contents else None
                if previous is not None and previous.role == "user" and previous.parts and all(
                    p.function_response is not None for p in previous.parts
                ):
                    previous.parts.append(part)
                else:
                    contents.append(types.Content(role="user", parts=[part]))

        system_instruction = "\n\n".join(system_parts) if system_parts else None
        return system_instruction, contents

    def _build_config(
        self,
        system_instruction: str | None,
        tools: list[ToolDefinition] | None,
        temperature: float,
        max_tokens: int | None,
        **kwargs: Any
    ) -> types.GenerateContentConfig:
        # Without tools, mode=NONE stops Gemini from emitting
        # UNEXPECTED_TOOL_CALL on prompts that look like function syntax
        config = types.GenerateContentConfig(
            temperature=temperature,
            system_instruction=system_instruction,
            safety_settings=DEFAULT_SAFETY_SETTINGS,
            tool_config=types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(
                    mode="AUTO" if tools else "NONE"
                )
            ),
            **kwargs
        )
        if tools:
            config.tools = [types.Tool(function_declarations=[
                types.FunctionDeclaration(
                    name=tool.name,
                    description=tool.description,
                    parameters_json_schema=tool.parameters
                )
                for tool in tools
            ])]
            config.automatic_function_calling = types.AutomaticFunctionCallingConfig(disable=True)
        if max_tokens is not None:
            config.max_output_tokens = max_tokens
        return config

    def _extract_content(self, response) -> str:
        """Extract text content from a Gemini response, tolerating empty ones."""
        if response.candidates:
            candidate = response.candidates[0]
            if candidate.content and candidate.content.parts:
                texts = [part.text for part in candidate.content.parts if getattr(part, "text", None)]
                if texts:
                    return "".join(texts)
        return ""

    def _extract_tool_calls(self, response) -> list[ToolCall]:
        if not response.candidates:
            return []
        candidate = response.candidates[0]
        if not candidate.content or not candidate.content.parts:
            return []

        calls = []
        for part in candidate.content.parts:
            call = getattr(part, "function_call", None)
            if call is None or not call.name:
                continue
            calls.append(ToolCall(
                id=call.id or f"call_{uuid.uuid4().hex[:24]}",
                name=call.name,
                arguments=dict(call.args or {})
            ))
        return calls

    @staticmethod
    def _usage(metadata) -> dict[str, int] | None:
        if not metadata:
            return None
        return {
            "prompt_tokens": metadata.prompt_token_count or 0,
            "completion_tokens": metadata.candidates_token_count or 0,
            "total_tokens": metadata.total_token_count or 0
        }

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDefinition] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a chat completion using Google Gemini.

        Retries when the model returns neither text nor tool calls.
        """
        model_to_use = model or self._model
        system_instruction, contents = self._convert_messages(messages)
        config = self._build_config(system_instruction, tools, temperature, max_tokens, **kwargs)

        content = ""
        tool_calls: list[ToolCall] = []
        usage = None

        for attempt in range(self._max_retries):
            response = await self._client.aio.models.generate_content(
                model=model_to_use,
                contents=contents,
                config=config
            )

            usage = self._usage(response.usage_metadata) or usage
            content = self._extract_content(response)
            tool_calls = self._extract_tool_calls(response)

            if content or tool_calls:
                break

            if attempt < self._max_retries - 1:
                await asyncio.sleep(0.5 * (attempt + 1))

        return LLMResponse(
            content=content,
            model=model_to_use,
            usage=usage,
            tool_calls=tool_calls
        )

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        model_to_use = model or self._model
        system_instruction, contents = self._convert_messages(messages)
        config = self._build_config(system_instruction, None, temperature, max_tokens, **kwargs)

        response = StreamingResponse(self._stream_generator(
            lambda usage: response.set_usage(usage), model_to_use, contents, config
        ))
        return response

    async def _stream_generator(
        self,
        on_usage: Callable[[dict[str, Any]], None],
        model: str,
        contents: list[types.Content],
        config: types.GenerateContentConfig,
    ) -> AsyncIterator[str]:
        """Internal generator that yields text and captures usage from chunks."""
        usage = None

        stream = await self._client.aio.models.generate_content_stream(
            model=model, contents=contents, config=config
        )
        async for chunk in stream:
            usage = self._usage(chunk.usage_metadata) or usage
            text = self._extract_content(chunk)
            if text:
                yield text

        if usage:
            on_usage(usage)

    async def close(self) -> None:
        """Close the Gemini client.

        The GenAI client doesn't require explicit closing; implemented for
        interface consistency.
        """
