"""Page registry: id allocation, lookup, default page selection.

Ids start at 1, only ever increase, and are never handed out twice by the
same registry, even across reconnects.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from ..errors import NotConnected, PageNotFound

log = logging.getLogger(__name__)


@dataclass
class PageState:
    """Per-page scratch state owned by the registry.

    ``marked_elements`` holds the element boxes produced by the last page
    annotation pass.
    """
    marked_elements: list[dict] = field(default_factory=list)


@dataclass
class PageInfo:
    id: int
    url: str
    title: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "url": self.url, "title": self.title}


class PageRegistry:
    """Tracks the pages of the active browser context."""

    def __init__(self):
        self._context: Any = None
        self._pages: dict[int, Any] = {}
        self._states: dict[int, PageState] = {}
        self._next_id = 1
        self._track_listeners: list[Callable[[int, Any], None]] = []
        self._untrack_listeners: list[Callable[[int, Any], None]] = []

    # ── Wiring ──────────────────────────────────────────────────────────

    def on_track(self, listener: Callable[[int, Any], None]) -> None:
        self._track_listeners.append(listener)

    def on_untrack(self, listener: Callable[[int, Any], None]) -> None:
        self._untrack_listeners.append(listener)

    def bind(self, context: Any) -> None:
        """Adopt *context*: track its existing pages and every future one."""
        self._context = context
        for page in list(context.pages):
            self.track(page)
        context.on("page", self.track)

    def reset(self) -> None:
        """Forget every page. The id counter keeps running."""
        for page_id in list(self._pages):
            self._untrack(page_id)
        self._context = None

    @property
    def context(self) -> Any:
        if self._context is None:
            raise NotConnected()
        return self._context

    def track(self, page: Any) -> int:
        for page_id, known in self._pages.items():
            if known is page:
                return page_id
        page_id = self._next_id
        self._next_id += 1
        self._pages[page_id] = page
        self._states[page_id] = PageState()
        page.on("close", lambda _page: self._untrack(page_id))
        for listener in self._track_listeners:
            listener(page_id, page)
        log.debug(f"Tracking page {page_id}")
        return page_id

    def _untrack(self, page_id: int) -> None:
        page = self._pages.pop(page_id, None)
        self._states.pop(page_id, None)
        if page is None:
            return
        for listener in self._untrack_listeners:
            try:
                listener(page_id, page)
            except Exception as e:
                log.debug(f"untrack listener failed for page {page_id}: {e}")

    # ── Lookup ──────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, page_id: int) -> bool:
        return page_id in self._pages

    def get(self, page_id: int) -> Any:
        page = self._pages.get(page_id)
        if page is None:
            raise PageNotFound(page_id)
        return page

    def state(self, page_id: int) -> PageState:
        if page_id not in self._states:
            raise PageNotFound(page_id)
        return self._states[page_id]

    def id_of(self, page: Any) -> int | None:
        for page_id, known in self._pages.items():
            if known is page:
                return page_id
        return None

    # ── Operations ──────────────────────────────────────────────────────

    async def new_page(self, url: str | None = None) -> tuple[int, Any]:
        page = await self.context.new_page()
        # The context "page" event may already have tracked it.
        page_id = self.track(page)
        if url:
            await page.goto(url, wait_until="domcontentloaded")
        return page_id, page

    async def get_or_create_page(self, page_id: int | None = None) -> tuple[int, Any]:
        """Explicit id must exist; otherwise the newest page, or a new one."""
        if page_id is not None:
            return page_id, self.get(page_id)
        if self._pages:
            last_id = max(self._pages)
            return last_id, self._pages[last_id]
        return await self.new_page()

    async def close_page(self, page_id: int) -> None:
        page = self.get(page_id)
        try:
            await page.close()
        finally:
            self._untrack(page_id)

    async def focus_page(self, page_id: int) -> None:
        await self.get(page_id).bring_to_front()

    def list_pages(self) -> list[PageInfo]:
        """Id and URL of each live page. Broken handles are purged."""
        result = []
        for page_id, page in list(self._pages.items()):
            try:
                if page.is_closed():
                    raise RuntimeError("page closed")
                result.append(PageInfo(page_id, page.url))
            except Exception:
                self._untrack(page_id)
        return result

    async def list_pages_with_titles(self) -> list[PageInfo]:
        result = []
        for page_id, page in list(self._pages.items()):
            try:
                if page.is_closed():
                    raise RuntimeError("page closed")
                title = await page.title()
                result.append(PageInfo(page_id, page.url, title))
            except Exception:
                self._untrack(page_id)
        return result
