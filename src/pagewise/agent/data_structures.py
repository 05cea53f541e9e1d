"""Data structures for the tool-calling agent loop."""

from typing import Literal

from pydantic import BaseModel, Field


class ToolCallResult(BaseModel):
    """Result of executing a tool call.

    Attributes:
        tool_call_id: ID of the tool call that was executed
        name: Tool name the model asked for
        content: Result text handed back to the model
        error: Whether an error occurred
    """

    tool_call_id: str
    name: str
    content: str
    error: bool = False


class UsageSummary(BaseModel):
    """Summary of LLM token usage across all calls.

    Attributes:
        total_calls: Total number of LLM API calls
        total_input_tokens: Total input tokens across all calls
        total_output_tokens: Total output tokens across all calls
        model_breakdown: Token usage broken down by model name
    """

    total_calls: int = Field(default=0, description="Total API calls")
    total_input_tokens: int = Field(default=0, description="Total input tokens")
    total_output_tokens: int = Field(default=0, description="Total output tokens")
    model_breakdown: dict[str, dict[str, int]] = Field(
        default_factory=dict,
        description="Usage breakdown by model"
    )

    def add_usage(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int
    ) -> None:
        """Add usage statistics for a model call."""
        self.total_calls += 1
        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens

        entry = self.model_breakdown.setdefault(
            model, {"calls": 0, "input_tokens": 0, "output_tokens": 0}
        )
        entry["calls"] += 1
        entry["input_tokens"] += input_tokens
        entry["output_tokens"] += output_tokens


StopReason = Literal["completed", "max_rounds", "cycle"]


class AgentResult(BaseModel):
    """Outcome of one agent run.

    Attributes:
        content: Text of the last model response
        model: Model that produced it
        rounds: Number of model invocations made
        stop_reason: Why the loop ended
        tool_results: Every tool execution, in order
        usage: Token usage for this run
    """

    content: str
    model: str
    rounds: int
    stop_reason: StopReason = "completed"
    tool_results: list[ToolCallResult] = Field(default_factory=list)
    usage: UsageSummary = Field(default_factory=UsageSummary)

    def __str__(self) -> str:
        return self.content
