"""Command boundary between an external dispatcher and the browser session.

Every public coroutine returns a ``CommandResult``; no exception escapes,
so one failed command never takes the host process down.
"""
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable

from .browser.session import BrowserSession
from .errors import BrowserConnectionError, BrowserKitError
from .human.behavior import HumanInput
from .telemetry.logger import CommandEventLogger

log = logging.getLogger(__name__)


@dataclass
class CommandResult:
    ok: bool
    value: Any = None
    error: str = ""
    kind: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def _error_kind(exc: BaseException) -> str:
    if isinstance(exc, BrowserConnectionError):
        return exc.kind.value
    if isinstance(exc, BrowserKitError):
        return exc.code
    return "internal"


class BrowserCommands:
    """Wraps a ``BrowserSession`` and ``HumanInput`` as fault-isolated commands."""

    def __init__(self, session: BrowserSession, human: HumanInput | None = None,
                 event_logger: CommandEventLogger | None = None):
        self.session = session
        self.human = human or HumanInput()
        self.events = event_logger
        self._started = time.monotonic()
        session.registry.on_untrack(lambda _page_id, page: self.human.forget(page))

    async def _run(self, name: str, fn: Callable[[], Awaitable[Any]],
                   page_id: int | None = None) -> CommandResult:
        t0 = time.monotonic()
        try:
            value = await fn()
        except Exception as e:
            kind = _error_kind(e)
            if kind == "internal":
                log.exception(f"{name} failed unexpectedly")
            else:
                log.warning(f"{name} failed ({kind}): {e}")
            result = CommandResult(ok=False, error=str(e), kind=kind)
        else:
            result = CommandResult(ok=True, value=value)
        if self.events is not None and name != "connect":
            self.events.log_command(name, result.ok, time.monotonic() - t0,
                                    page_id=page_id, error=result.error, error_kind=result.kind)
        return result

    # ── Connection ──────────────────────────────────────────────────────

    async def connect(self, **overrides) -> CommandResult:
        t0 = time.monotonic()
        result = await self._run("connect", lambda: self._connect(**overrides))
        if self.events is not None:
            self.events.log_connect(
                result.ok, self.session.strategy,
                result.value["message"] if result.ok else result.error,
                time.monotonic() - t0, error_kind=result.kind,
            )
        return result

    async def _connect(self, **overrides) -> dict:
        message = await self.session.connect(**overrides)
        pages = await self.session.list_pages_with_titles()
        return {"message": message, "pages": pages}

    async def close(self) -> CommandResult:
        pages_open = len(self.session.registry)
        result = await self._run("close", self.session.close)
        if self.events is not None:
            self.events.log_session_end(pages_open, time.monotonic() - self._started)
        return result

    async def browser_info(self) -> CommandResult:
        async def info():
            return self.session.browser_info()
        return await self._run("browser_info", info)

    # ── Pages ───────────────────────────────────────────────────────────

    async def navigate(self, url: str, page_id: int | None = None, *,
                       wait_until: str = "domcontentloaded",
                       timeout: float = 30_000) -> CommandResult:
        async def go():
            await self.human.before_action()
            pid, title = await self.session.navigate(url, page_id, wait_until=wait_until,
                                                     timeout=timeout)
            await self.human.delay(200, 500)
            return {"id": pid, "url": url, "title": title}
        return await self._run("navigate", go, page_id)

    async def new_page(self, url: str | None = None) -> CommandResult:
        async def create():
            pid, page = await self.session.new_page(url)
            return {"id": pid, "url": page.url}
        return await self._run("new_page", create)

    async def close_page(self, page_id: int) -> CommandResult:
        return await self._run("close_page", lambda: self.session.close_page(page_id), page_id)

    async def focus_page(self, page_id: int) -> CommandResult:
        return await self._run("focus_page", lambda: self.session.focus_page(page_id), page_id)

    async def list_pages(self, with_titles: bool = True) -> CommandResult:
        async def listing():
            if with_titles:
                return await self.session.list_pages_with_titles()
            return self.session.list_pages()
        return await self._run("list_pages", listing)

    async def evaluate(self, script: str, page_id: int | None = None, arg: Any = None) -> CommandResult:
        return await self._run("evaluate", lambda: self.session.evaluate(script, page_id, arg), page_id)

    async def wait_for_response(self, url_pattern: str, page_id: int | None = None, *,
                                timeout: float = 30_000) -> CommandResult:
        return await self._run(
            "wait_for_response",
            lambda: self.session.wait_for_response(url_pattern, page_id, timeout=timeout),
            page_id,
        )

    # ── Human interaction ───────────────────────────────────────────────

    async def click(self, x: float, y: float, page_id: int | None = None, *,
                    button: str = "left", click_count: int = 1) -> CommandResult:
        async def do():
            pid, page = await self.session.get_or_create_page(page_id)
            point = await self.human.click(page, x, y, button=button, click_count=click_count)
            return {"id": pid, "x": point.x, "y": point.y}
        return await self._run("click", do, page_id)

    async def type_text(self, text: str, page_id: int | None = None) -> CommandResult:
        async def do():
            pid, page = await self.session.get_or_create_page(page_id)
            await self.human.type(page, text)
            return {"id": pid, "chars": len(text)}
        return await self._run("type_text", do, page_id)

    async def scroll(self, delta_y: float, delta_x: float = 0,
                     page_id: int | None = None) -> CommandResult:
        async def do():
            pid, page = await self.session.get_or_create_page(page_id)
            steps = await self.human.scroll(page, delta_y, delta_x)
            return {"id": pid, "steps": steps}
        return await self._run("scroll", do, page_id)

    async def hover(self, x: float, y: float, page_id: int | None = None) -> CommandResult:
        async def do():
            pid, page = await self.session.get_or_create_page(page_id)
            point = await self.human.hover(page, x, y)
            return {"id": pid, "x": point.x, "y": point.y}
        return await self._run("hover", do, page_id)

    # ── Telemetry ───────────────────────────────────────────────────────

    async def console_logs(self, page_id: int | None = None) -> CommandResult:
        async def read():
            pid, _ = await self.session.get_or_create_page(page_id)
            return self.session.console_logs(pid)
        return await self._run("console_logs", read, page_id)

    async def clear_console_logs(self, page_id: int | None = None) -> CommandResult:
        async def clear():
            pid, _ = await self.session.get_or_create_page(page_id)
            self.session.clear_console_logs(pid)
        return await self._run("clear_console_logs", clear, page_id)

    async def network_logs(self, page_id: int | None = None) -> CommandResult:
        async def read():
            pid, _ = await self.session.get_or_create_page(page_id)
            return self.session.network_logs(pid)
        return await self._run("network_logs", read, page_id)

    async def clear_network_logs(self, page_id: int | None = None) -> CommandResult:
        async def clear():
            pid, _ = await self.session.get_or_create_page(page_id)
            self.session.clear_network_logs(pid)
        return await self._run("clear_network_logs", clear, page_id)

    # ── Routes, headers, storage, context settings ──────────────────────

    async def block_pattern(self, pattern: str) -> CommandResult:
        async def block():
            self.session.add_blocked_pattern(pattern)
            if self.session.connected:
                await self.session.apply_route_blocking()
            return self.session.blocked_patterns()
        return await self._run("block_pattern", block)

    async def clear_blocked_patterns(self) -> CommandResult:
        async def clear():
            self.session.clear_blocked_patterns()
            if self.session.connected:
                await self.session.apply_route_blocking()
        return await self._run("clear_blocked_patterns", clear)

    async def set_extra_headers(self, headers: dict[str, str]) -> CommandResult:
        return await self._run("set_extra_headers", lambda: self.session.set_extra_http_headers(headers))

    async def save_storage_state(self, path: str) -> CommandResult:
        async def save():
            state = await self.session.save_storage_state(path)
            return {"path": path, "cookies": len(state.get("cookies", []))}
        return await self._run("save_storage_state", save)

    async def load_storage_state(self, path: str) -> CommandResult:
        return await self._run("load_storage_state", lambda: self.session.load_storage_state(path))

    async def set_geolocation(self, latitude: float, longitude: float,
                              accuracy: float | None = None) -> CommandResult:
        return await self._run(
            "set_geolocation",
            lambda: self.session.set_geolocation(latitude, longitude, accuracy),
        )

    async def grant_permissions(self, permissions: list[str], origin: str | None = None) -> CommandResult:
        return await self._run(
            "grant_permissions",
            lambda: self.session.grant_permissions(permissions, origin),
        )

    async def clear_permissions(self) -> CommandResult:
        return await self._run("clear_permissions", self.session.clear_permissions)
