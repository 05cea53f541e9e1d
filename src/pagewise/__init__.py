"""
Pagewise: chat with the page open in a browser tab, grounded in its content.

Three roles exchange messages over host-mediated channels: a background
role that owns sessions and the retrieval index, a content role attached to
each tab, and a chat panel. Each module hides one design decision.
"""

__version__ = "0.1.0"

from .chat import BackgroundApp, ChatPanel, ChatService, create_chat_service
from .messaging import BackgroundRouter, ContentRouter, HandlerRegistry, RouterOptions

__all__ = [
    "BackgroundApp",
    "BackgroundRouter",
    "ChatPanel",
    "ChatService",
    "ContentRouter",
    "HandlerRegistry",
    "RouterOptions",
    "create_chat_service",
]
