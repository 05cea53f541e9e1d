"""BrowserActions over a static page snapshot.

Used where no live browser exists (the CLI, tests). The page is plain text
plus an optional map of CSS selector to element text; there is no DOM, so
scripts cannot run and navigation only records history.
"""

from typing import Any

from ..messaging.models import PageInfo
from .tools import BrowserActions


class StaticPageBrowser(BrowserActions):
    """Simulated tab backed by a PageInfo.

    Args:
        page: Initial page
        elements: Selector to element text for click/type/validate
    """

    def __init__(self, page: PageInfo, elements: dict[str, str] | None = None):
        self._history: list[PageInfo] = [page]
        self._position = 0
        self._elements = dict(elements or {})
        self.actions: list[tuple[str, Any]] = []

    @property
    def page(self) -> PageInfo:
        return self._history[self._position]

    async def navigate(self, url: str) -> None:
        del self._history[self._position + 1:]
        self._history.append(PageInfo(id=self.page.id, url=url))
        self._position += 1
        self._elements.clear()
        self.actions.append(("navigate", url))

    async def get_content(self) -> str:
        return self.page.content

    async def click(self, selector: str) -> None:
        self._require(selector)
        self.actions.append(("click", selector))

    async def type_text(self, selector: str, text: str) -> None:
        self._require(selector)
        self._elements[selector] = text
        self.actions.append(("type", (selector, text)))

    async def execute_script(self, script: str) -> Any:
        raise RuntimeError("Script execution failed: static pages cannot run JavaScript")

    async def go_back(self) -> None:
        if self._position == 0:
            raise RuntimeError("No previous page in history")
        self._position -= 1
        self.actions.append(("go_back", None))

    async def go_forward(self) -> None:
        if self._position >= len(self._history) - 1:
            raise RuntimeError("No next page in history")
        self._position += 1
        self.actions.append(("go_forward", None))

    async def get_url(self) -> str:
        return self.page.url

    async def get_title(self) -> str:
        return self.page.title

    async def element_text(self, selector: str) -> str | None:
        return self._elements.get(selector)

    def _require(self, selector: str) -> None:
        if selector not in self._elements:
            raise LookupError(f"Element not found: {selector}")
