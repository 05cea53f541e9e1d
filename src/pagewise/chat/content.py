"""Content role: reads the page attached to one tab."""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from ..messaging import ContentRouter, MessageChannel, MessageKind, RouterOptions
from ..messaging.models import PageInfo


class PageSource(ABC):
    """Provider of the page currently loaded in a tab."""

    @abstractmethod
    async def read(self) -> PageInfo:
        """Return the page's URL, title and visible text."""


class StaticPageSource(PageSource):
    """Page source over a fixed page that can be swapped (navigation)."""

    def __init__(self, page: PageInfo):
        self._page = page

    @property
    def page(self) -> PageInfo:
        return self._page

    def update(self, page: PageInfo) -> None:
        self._page = page

    async def read(self) -> PageInfo:
        return self._page


class CallablePageSource(PageSource):
    """Page source backed by a sync or async callable."""

    def __init__(self, reader: Callable[[], PageInfo | Awaitable[PageInfo]]):
        self._reader = reader

    async def read(self) -> PageInfo:
        page = self._reader()
        if inspect.isawaitable(page):
            page = await page
        return page


def create_content_router(
    tab_id: str,
    source: PageSource,
    runtime: MessageChannel,
    options: RouterOptions | None = None
) -> ContentRouter:
    """Create the content router for one tab.

    Handlers:
        get-page-content: answered locally with the tab's PageInfo
        get-session: forwards the tab's PageInfo so the background role
                     loads the session for this tab

    The caller starts it with ``router.start_listener(host.tab(tab_id))``.
    """
    router = ContentRouter(runtime, options)

    async def page_info(payload: Any) -> dict[str, Any]:
        page = await source.read()
        return page.model_copy(update={"id": tab_id}).model_dump(mode="json")

    router.register_handler(MessageKind.GET_PAGE_CONTENT.value, page_info, forward=False)
    router.register_handler(MessageKind.GET_SESSION.value, page_info)
    return router
