"""Bounded tool-calling loop.

Hidden design decisions:
- The round budget counts model invocations, not tool executions
- A tool failure is returned to the model as error text and never raised
- Prior conversation turns are passed as plain user/assistant messages
"""

import json

from ..debug import Debuggable, truncate
from ..llm import LLMProvider
from ..llm.models import ChatMessage, LLMResponse, StreamingResponse, ToolCall, ToolDefinition
from ..prompts import get_system_prompt
from .data_structures import AgentResult, StopReason, ToolCallResult, UsageSummary
from .tools import BaseTool

NO_CONTEXT = "(No page content is available for this tab.)"


class AgentLoop(Debuggable):
    """Ask the model, run the tools it requests, repeat.

    Args:
        llm: LLM provider used for every round
        tools: Tools offered to the model
        max_rounds: Maximum model invocations per run
        detect_cycles: Stop early when the model repeats the previous
                       round's exact tool calls
        system_prompt: Template with {tools_description} and {context};
                       loaded from prompts/system.txt when omitted
        temperature: Sampling temperature

    Raises:
        ValueError: If max_rounds is below 1 or tool names collide
    """

    def __init__(
        self,
        llm: LLMProvider,
        tools: list[BaseTool] | None = None,
        max_rounds: int = 5,
        detect_cycles: bool = False,
        system_prompt: str | None = None,
        temperature: float = 0.7
    ):
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")

        self._llm = llm
        self._tools_registry: dict[str, BaseTool] = {}
        self._max_rounds = max_rounds
        self._detect_cycles = detect_cycles
        self._system_template = system_prompt
        self._temperature = temperature

        for tool in tools or []:
            self.add_tool(tool)

    @property
    def max_rounds(self) -> int:
        return self._max_rounds

    @property
    def tools(self) -> list[BaseTool]:
        return list(self._tools_registry.values())

    def add_tool(self, tool: BaseTool) -> "AgentLoop":
        """Add a tool to the loop.

        Returns:
            Self for method chaining

        Raises:
            ValueError: If a tool with the same name is registered
        """
        if tool.name in self._tools_registry:
            raise ValueError(f"Tool {tool.name} already registered")

        self._tools_registry[tool.name] = tool
        tool.set_debug_callback(self._debug_callback)
        return self

    def set_debug_callback(self, callback) -> None:
        super().set_debug_callback(callback)
        for tool in self._tools_registry.values():
            tool.set_debug_callback(callback)

    def tool_definitions(self) -> list[ToolDefinition]:
        return [tool.to_definition() for tool in self._tools_registry.values()]

    def build_system_prompt(self, context: str) -> str:
        """Render the system instruction for a grounding context."""
        template = self._system_template if self._system_template is not None else get_system_prompt()
        tools_desc = "\n".join(
            f"- {tool.name}: {tool.description}" for tool in self._tools_registry.values()
        )
        return template.format(
            tools_description=tools_desc or "None",
            context=context or NO_CONTEXT
        )

    async def run(
        self,
        query: str,
        context: str = "",
        history: list[ChatMessage] | None = None
    ) -> AgentResult:
        """Answer a query, calling tools until the model stops asking.

        Args:
            query: The user's question
            context: Grounding text placed in the system instruction
            history: Earlier turns of the conversation

        Returns:
            AgentResult carrying the last model response

        Raises:
            Exception: Provider errors propagate unchanged
        """
        messages = [
            ChatMessage(role="system", content=self.build_system_prompt(context)),
            *(history or []),
            ChatMessage(role="user", content=query),
        ]
        definitions = self.tool_definitions() or None
        usage = UsageSummary()
        tool_results: list[ToolCallResult] = []

        response = await self._invoke(messages, definitions, usage)
        rounds = 1
        previous_calls: list[tuple[str, str]] | None = None
        stop_reason: StopReason = "completed"

        while response.requests_tools:
            if rounds >= self._max_rounds:
                stop_reason = "max_rounds"
                self._debug("warning", "AgentLoop", f"Round budget of {self._max_rounds} spent")
                break

            signature = _signature(response.tool_calls)
            if self._detect_cycles and signature == previous_calls:
                stop_reason = "cycle"
                self._debug("warning", "AgentLoop", "Model repeated its previous tool calls; stopping")
                break
            previous_calls = signature

            messages.append(ChatMessage(
                role="assistant",
                content=response.content,
                tool_calls=response.tool_calls
            ))
            for call in response.tool_calls:
                result = await self._execute_tool(call)
                tool_results.append(result)
                messages.append(ChatMessage(
                    role="tool",
                    content=result.content,
                    tool_call_id=call.id,
                    name=call.name
                ))

            response = await self._invoke(messages, definitions, usage)
            rounds += 1

        self._debug(
            "info", "AgentLoop",
            f"Finished after {rounds} round(s) ({stop_reason}), {len(tool_results)} tool call(s)"
        )
        return AgentResult(
            content=response.content,
            model=response.model,
            rounds=rounds,
            stop_reason=stop_reason,
            tool_results=tool_results,
            usage=usage
        )

    async def stream(
        self,
        query: str,
        context: str = "",
        history: list[ChatMessage] | None = None
    ) -> StreamingResponse:
        """Stream a tool-free answer for the same prompt layout as `run`."""
        messages = [
            ChatMessage(role="system", content=self.build_system_prompt(context)),
            *(history or []),
            ChatMessage(role="user", content=query),
        ]
        return await self._llm.chat_completion_stream(messages, temperature=self._temperature)

    async def close(self) -> None:
        """Close resources."""
        await self._llm.close()

    async def _invoke(
        self,
        messages: list[ChatMessage],
        definitions: list[ToolDefinition] | None,
        usage: UsageSummary
    ) -> LLMResponse:
        self._debug("debug", "AgentLoop", f"Invoking model with {len(messages)} messages")
        response = await self._llm.chat_completion(
            messages, tools=definitions, temperature=self._temperature
        )

        if response.usage:
            usage.add_usage(
                model=response.model,
                input_tokens=response.usage.get("prompt_tokens", 0),
                output_tokens=response.usage.get("completion_tokens", 0)
            )
        else:
            usage.add_usage(model=response.model, input_tokens=0, output_tokens=0)

        if response.requests_tools:
            names = ", ".join(call.name for call in response.tool_calls)
            self._debug("debug", "AgentLoop", f"Model requested tools: {names}")
        else:
            self._debug("debug", "AgentLoop", f"Model answered: {truncate(response.content)}")
        return response

    async def _execute_tool(self, tool_call: ToolCall) -> ToolCallResult:
        """Execute a tool call; failures become error results."""
        tool = self._tools_registry.get(tool_call.name)

        if not tool:
            return ToolCallResult(
                tool_call_id=tool_call.id,
                name=tool_call.name,
                content=f"Error: Tool '{tool_call.name}' not found",
                error=True
            )

        try:
            return await tool.execute(tool_call)
        except Exception as e:
            self._debug("error", "AgentLoop", f"Tool {tool_call.name} raised: {e}")
            return ToolCallResult(
                tool_call_id=tool_call.id,
                name=tool_call.name,
                content=f"Error executing tool: {e}",
                error=True
            )


def _signature(calls: list[ToolCall]) -> list[tuple[str, str]]:
    return [(call.name, json.dumps(call.arguments, sort_keys=True)) for call in calls]
