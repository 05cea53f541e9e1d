"""Chat orchestration and the background, content and panel roles."""

from .background import BackgroundApp, tab_id_from
from .config import (
    ChainedConfigProvider,
    ConfigProvider,
    EnvConfigProvider,
    ExtensionConfig,
    StoredConfigProvider,
)
from .content import CallablePageSource, PageSource, StaticPageSource, create_content_router
from .errors import ChatError, NotConfiguredError, NotInitializedError, TurnFailedError
from .models import ChatReply
from .panel import ChatPanel
from .service import ChatService, create_chat_service

__all__ = [
    "BackgroundApp",
    "CallablePageSource",
    "ChainedConfigProvider",
    "ChatError",
    "ChatPanel",
    "ChatReply",
    "ChatService",
    "ConfigProvider",
    "EnvConfigProvider",
    "ExtensionConfig",
    "NotConfiguredError",
    "NotInitializedError",
    "PageSource",
    "StaticPageSource",
    "StoredConfigProvider",
    "TurnFailedError",
    "create_chat_service",
    "create_content_router",
    "tab_id_from",
]
