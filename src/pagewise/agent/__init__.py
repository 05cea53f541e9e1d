"""Tool-calling agent loop and browser tools."""

from .browser import StaticPageBrowser
from .data_structures import AgentResult, ToolCallResult, UsageSummary
from .loop import AgentLoop
from .tools import BaseTool, BrowserActions, BrowserTool, create_browser_tools

__all__ = [
    "AgentLoop",
    "AgentResult",
    "BaseTool",
    "BrowserActions",
    "BrowserTool",
    "StaticPageBrowser",
    "ToolCallResult",
    "UsageSummary",
    "create_browser_tools",
]
