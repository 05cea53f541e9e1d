"""Tool infrastructure for the agent loop.

Browser tools are thin bindings: each one validates its arguments, calls
exactly one method of a BrowserActions implementation and turns the outcome
into result text for the model.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from ..debug import Debuggable, truncate
from ..llm.models import ToolCall, ToolDefinition
from .data_structures import ToolCallResult


class BaseTool(ABC, Debuggable):
    """Abstract base class for tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool name."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Get the tool description for the LLM."""

    @property
    @abstractmethod
    def parameters_schema(self) -> dict[str, Any]:
        """Get the JSON schema for tool parameters."""

    @abstractmethod
    async def execute(self, tool_call: ToolCall) -> ToolCallResult:
        """Execute the tool call.

        Args:
            tool_call: The tool call to execute

        Returns:
            ToolCallResult with the execution result
        """

    def to_definition(self) -> ToolDefinition:
        """Describe the tool for the LLM."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters_schema
        )


class BrowserActions(ABC):
    """Page manipulation primitives for the active tab.

    Implementations raise on failure (element missing, navigation timeout);
    the tool layer turns exceptions into error results.
    """

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Load a URL in the active tab and wait for it to finish."""

    @abstractmethod
    async def get_content(self) -> str:
        """Return the page markup with scripts, styles and comments removed."""

    @abstractmethod
    async def click(self, selector: str) -> None:
        """Click the first element matching a CSS selector."""

    @abstractmethod
    async def type_text(self, selector: str, text: str) -> None:
        """Set an input's value and fire input/change events."""

    @abstractmethod
    async def execute_script(self, script: str) -> Any:
        """Run JavaScript in the page and return its JSON-compatible result."""

    @abstractmethod
    async def go_back(self) -> None:
        """Navigate back in history."""

    @abstractmethod
    async def go_forward(self) -> None:
        """Navigate forward in history."""

    @abstractmethod
    async def get_url(self) -> str:
        """Return the active tab's URL."""

    @abstractmethod
    async def get_title(self) -> str:
        """Return the active tab's title."""

    @abstractmethod
    async def element_text(self, selector: str) -> str | None:
        """Return an element's text, or None if no element matches."""


ToolAction = Callable[[dict[str, Any]], Awaitable[str]]


class BrowserTool(BaseTool):
    """A tool bound to one browser action.

    Args:
        name: Tool name
        description: Description for the LLM
        parameters: JSON schema of the arguments
        action: Coroutine taking the arguments and returning result text
    """

    def __init__(
        self,
        name: str,
        description: str,
        parameters: dict[str, Any],
        action: ToolAction
    ):
        self._name = name
        self._description = description
        self._parameters = parameters
        self._action = action

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return self._parameters

    async def execute(self, tool_call: ToolCall) -> ToolCallResult:
        missing = [
            key for key in self._parameters.get("required", [])
            if not isinstance(tool_call.arguments.get(key), str)
        ]
        if missing:
            return ToolCallResult(
                tool_call_id=tool_call.id,
                name=self._name,
                content=f"Error: missing required argument(s): {', '.join(missing)}",
                error=True
            )

        self._debug("debug", "BrowserTool", f"{self._name}({truncate(json.dumps(tool_call.arguments))})")
        try:
            content = await self._action(tool_call.arguments)
        except Exception as e:
            self._debug("warning", "BrowserTool", f"{self._name} failed: {e}")
            return ToolCallResult(
                tool_call_id=tool_call.id,
                name=self._name,
                content=f"Error: {e}",
                error=True
            )

        return ToolCallResult(tool_call_id=tool_call.id, name=self._name, content=content)


def _schema(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = required
    return schema


def _string(description: str, **extra: Any) -> dict[str, Any]:
    return {"type": "string", "description": description, **extra}


VALIDATION_CHECKS = ("url", "title", "element_exists", "element_text")


async def _validate(actions: BrowserActions, args: dict[str, Any]) -> str:
    check = args.get("check")
    expected = args.get("expected")
    selector = args.get("selector")

    if check not in VALIDATION_CHECKS:
        raise ValueError(f"Unknown check '{check}'. Expected one of: {', '.join(VALIDATION_CHECKS)}")
    if check in ("element_exists", "element_text") and not selector:
        raise ValueError(f"'{check}' requires a selector")
    if check != "element_exists" and expected is None:
        raise ValueError(f"'{check}' requires an expected value")

    if check == "url":
        actual = await actions.get_url()
        passed = expected in actual
    elif check == "title":
        actual = await actions.get_title()
        passed = expected in actual
    else:
        text = await actions.element_text(selector)
        if check == "element_exists":
            actual = "present" if text is not None else "absent"
            passed = text is not None
        else:
            actual = text if text is not None else "<no element>"
            passed = text is not None and expected in text

    verdict = "passed" if passed else "failed"
    return json.dumps({"check": check, "passed": passed, "actual": actual, "message": f"Validation {verdict}"})


def create_browser_tools(actions: BrowserActions) -> list[BrowserTool]:
    """Create the browser tool set bound to one BrowserActions implementation.

    Returns:
        Tools: navigate, get_content, click, type, execute_script, go_back,
        go_forward, validate
    """

    async def navigate(args: dict[str, Any]) -> str:
        await actions.navigate(args["url"])
        return f"Navigated to {args['url']}"

    async def get_content(args: dict[str, Any]) -> str:
        return await actions.get_content()

    async def click(args: dict[str, Any]) -> str:
        await actions.click(args["selector"])
        return f"Clicked element {args['selector']}"

    async def type_(args: dict[str, Any]) -> str:
        await actions.type_text(args["selector"], args["text"])
        return f'Typed "{args["text"]}" into {args["selector"]}'

    async def execute_script(args: dict[str, Any]) -> str:
        return json.dumps(await actions.execute_script(args["script"]))

    async def go_back(args: dict[str, Any]) -> str:
        await actions.go_back()
        return "Navigated back"

    async def go_forward(args: dict[str, Any]) -> str:
        await actions.go_forward()
        return "Navigated forward"

    async def validate(args: dict[str, Any]) -> str:
        return await _validate(actions, args)

    return [
        BrowserTool(
            "navigate", "Navigate the active tab to a specific URL",
            _schema({"url": _string("The URL to navigate to")}, ["url"]),
            navigate
        ),
        BrowserTool(
            "get_content", "Get the text content of the active tab",
            _schema(),
            get_content
        ),
        BrowserTool(
            "click", "Click an element on the page using a CSS selector",
            _schema({"selector": _string("CSS selector of the element to click")}, ["selector"]),
            click
        ),
        BrowserTool(
            "type", "Type text into an input element",
            _schema({
                "selector": _string("CSS selector of the input element"),
                "text": _string("The text to type"),
            }, ["selector", "text"]),
            type_
        ),
        BrowserTool(
            "execute_script", "Execute custom JavaScript on the page",
            _schema({"script": _string("The JavaScript code to execute")}, ["script"]),
            execute_script
        ),
        BrowserTool(
            "go_back", "Navigate back in the browser history",
            _schema(),
            go_back
        ),
        BrowserTool(
            "go_forward", "Navigate forward in the browser history",
            _schema(),
            go_forward
        ),
        BrowserTool(
            "validate", "Validate the state of the page (URL, title, or element existence)",
            _schema({
                "check": _string("The type of validation to perform", enum=list(VALIDATION_CHECKS)),
                "expected": _string("The expected value (for url, title, or element_text)"),
                "selector": _string("CSS selector (required for element_exists and element_text)"),
            }, ["check"]),
            validate
        ),
    ]
