"""Background role: the BackgroundRouter wired to a lazily built ChatService."""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from ..debug import Debuggable
from ..messaging import BackgroundRouter, MessageChannel, MessageKind, RouterOptions
from ..messaging.models import ChatRequest
from .config import ConfigProvider, ExtensionConfig
from .errors import NotConfiguredError, NotInitializedError
from .service import ChatService

ServiceFactory = Callable[[ExtensionConfig], ChatService | Awaitable[ChatService]]


def tab_id_from(payload: Any) -> str:
    """Extract the tab id from a message payload (``id`` or ``tabId``).

    Raises:
        ValueError: If the payload carries no tab id
    """
    if isinstance(payload, dict):
        for key in ("id", "tabId"):
            value = payload.get(key)
            if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
                return str(value)
    raise ValueError("Payload must include a tab id")


class BackgroundApp(Debuggable):
    """Owns the background router and the chat service.

    Hidden design decisions:
    - The service is built on the first request that needs it, one attempt
      per request, so fixing the configuration needs no restart
    - Missing credentials are reported as NotConfiguredError; any other
      construction failure as NotInitializedError

    Args:
        config_provider: Where credentials come from
        service_factory: Builds the ChatService from a configuration
        router_options: Router options (defaults when omitted)
    """

    def __init__(
        self,
        config_provider: ConfigProvider,
        service_factory: ServiceFactory,
        router_options: RouterOptions | None = None
    ):
        self._config_provider = config_provider
        self._service_factory = service_factory
        self._service: ChatService | None = None
        self._router = BackgroundRouter(router_options)

        self._router.register_handler(MessageKind.GET_SESSION.value, self._get_session)
        self._router.register_handler(MessageKind.INITIALIZE_CHAT.value, self._initialize_chat)
        self._router.register_handler(MessageKind.CLEAR_SESSION.value, self._clear_session)

    @property
    def router(self) -> BackgroundRouter:
        return self._router

    @property
    def service(self) -> ChatService | None:
        return self._service

    def set_debug_callback(self, callback) -> None:
        super().set_debug_callback(callback)
        self._router.set_debug_callback(callback)
        if self._service is not None:
            self._service.set_debug_callback(callback)

    def start(self, channel: MessageChannel) -> None:
        """Answer messages arriving on the runtime channel."""
        self._router.start_listener(channel)

    async def stop(self) -> None:
        """Stop listening and release the chat service."""
        self._router.stop_listener()
        if self._service is not None:
            await self._service.close()
            self._service = None

    async def ensure_service(self) -> ChatService:
        """Return the chat service, building it if needed.

        Raises:
            NotConfiguredError: If credentials are missing
            NotInitializedError: If the service could not be built
        """
        if self._service is not None:
            return self._service

        config = await self._config_provider.load()
        if config is None or not config.configured:
            self._debug("warning", "Background", "Extension not configured")
            raise NotConfiguredError()

        try:
            service = self._service_factory(config)
            if inspect.isawaitable(service):
                service = await service
        except NotConfiguredError:
            raise
        except Exception as e:
            self._debug("error", "Background", f"Failed to initialize chat service: {e}")
            raise NotInitializedError() from e

        service.set_debug_callback(self._debug_callback)
        self._service = service
        self._debug("info", "Background", "Chat service initialized")
        return service

    async def _get_session(self, payload: Any) -> dict[str, Any]:
        service = await self.ensure_service()
        session = await service.set_current_tab(tab_id_from(payload))
        return session.model_dump(mode="json")

    async def _initialize_chat(self, payload: Any) -> dict[str, Any]:
        service = await self.ensure_service()
        request = ChatRequest.model_validate(payload)

        await service.set_current_tab(request.id)
        await service.ingest_page(request)
        reply = await service.send_message(
            request.id,
            request.query,
            message_id=request.message_id,
            enable_rag=request.enable_rag
        )
        return reply.model_dump(mode="json")

    async def _clear_session(self, payload: Any) -> dict[str, Any]:
        service = await self.ensure_service()
        tab_id = tab_id_from(payload)
        await service.clear_tab(tab_id)
        return {"cleared": tab_id}
