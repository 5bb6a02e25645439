"""Browser session lifecycle: connect, page access, telemetry, cleanup.

``BrowserSession`` ties the connection resolver, page registry, telemetry
collector and route mediator to one live browser. ``open_session`` wraps it
in an async context manager that always closes the browser (and any
spawned recovery process) on exit.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import SessionConfig
from ..errors import EvaluationError, NavigationTimeout, NetworkWaitTimeout, NotConnected
from ..telemetry.collector import TelemetryCollector
from .chrome import spawn_debug_browser, wait_for_debug_endpoint
from .connection import Connected, ConnectionResolver, ConnectionState
from .driver import PlaywrightDriver
from .registry import PageRegistry
from .routes import RouteMediator
from .storage import load_storage_state, save_storage_state

log = logging.getLogger(__name__)


class BrowserSession:
    """One browser connection plus its pages and configuration.

    At most one live connection exists per instance; calling
    :meth:`connect` again closes the previous one first.
    """

    def __init__(self, config: SessionConfig | None = None, driver: Any = None, *,
                 spawner=spawn_debug_browser, probe=wait_for_debug_endpoint):
        self.config = config or SessionConfig()
        self.driver = driver or PlaywrightDriver()
        self.registry = PageRegistry()
        self.telemetry = TelemetryCollector()
        self.routes = RouteMediator()
        self.state = ConnectionState.DISCONNECTED
        self._spawner = spawner
        self._probe = probe
        self._connection: Connected | None = None
        self.last_message = ""
        self.registry.on_track(self.telemetry.attach)
        self.registry.on_untrack(lambda page_id, _page: self.telemetry.discard(page_id))

    # ── Connection ──────────────────────────────────────────────────────

    @property
    def connected(self) -> bool:
        return self._connection is not None

    @property
    def context(self) -> Any:
        if self._connection is None:
            raise NotConnected()
        return self._connection.context

    @property
    def browser(self) -> Any:
        return self._connection.browser if self._connection else None

    @property
    def strategy(self) -> str:
        return self._connection.strategy if self._connection else ""

    async def connect(self, **overrides) -> str:
        """Establish a session, replacing any existing one. Returns a status line."""
        if overrides:
            self.config = self.config.merged(**overrides)
        if self._connection is not None:
            log.info("Replacing existing browser session")
            await self.close()

        await self.driver.start()
        resolver = ConnectionResolver(self.driver, self.config,
                                      spawner=self._spawner, probe=self._probe)
        self.state = ConnectionState.DISCONNECTED
        try:
            connection = await resolver.resolve()
        finally:
            self.state = resolver.state

        self._connection = connection
        self.last_message = connection.message
        context = connection.context
        try:
            context.set_default_timeout(self.config.default_timeout)
        except Exception as e:
            log.debug(f"set_default_timeout failed: {e}")
        self.registry.bind(context)

        if self.routes.blocked_patterns:
            await self.routes.apply_route_blocking(context)
        if self.config.storage_state and connection.strategy != "ephemeral":
            try:
                await load_storage_state(context, self.config.storage_state)
            except Exception as e:
                log.warning(f"Could not load storage state {self.config.storage_state}: {e}")
        return connection.message

    async def close(self) -> None:
        """Close the context/browser and stop any spawned process. Never raises."""
        connection = self._connection
        self._connection = None
        if connection is not None:
            if connection.owns_context:
                try:
                    await connection.context.close()
                except Exception as e:
                    log.warning(f"Failed to close browser context cleanly: {e}")
            if connection.browser is not None:
                try:
                    await connection.browser.close()
                except Exception as e:
                    log.debug(f"Browser close failed: {e}")
            if connection.spawned is not None:
                await asyncio.to_thread(connection.spawned.terminate)
        self.registry.reset()
        self.telemetry.reset()
        self.routes.forget_context()
        try:
            await self.driver.stop()
        except Exception as e:
            log.debug(f"Driver stop failed: {e}")
        self.state = ConnectionState.CLOSED

    # ── Pages ───────────────────────────────────────────────────────────

    async def get_or_create_page(self, page_id: int | None = None) -> tuple[int, Any]:
        return await self.registry.get_or_create_page(page_id)

    async def new_page(self, url: str | None = None) -> tuple[int, Any]:
        return await self.registry.new_page(url)

    async def close_page(self, page_id: int) -> None:
        await self.registry.close_page(page_id)

    async def focus_page(self, page_id: int) -> None:
        await self.registry.focus_page(page_id)

    def list_pages(self) -> list[dict]:
        return [p.to_dict() for p in self.registry.list_pages()]

    async def list_pages_with_titles(self) -> list[dict]:
        return [p.to_dict() for p in await self.registry.list_pages_with_titles()]

    async def navigate(self, url: str, page_id: int | None = None, *,
                       wait_until: str = "domcontentloaded",
                       timeout: float = 30_000) -> tuple[int, str]:
        """Load *url*; returns ``(page_id, title)``."""
        page_id, page = await self.get_or_create_page(page_id)
        try:
            await page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"Navigation to {url} timed out after {timeout:g}ms") from e
        return page_id, await page.title()

    async def wait_for_response(self, url_pattern: str, page_id: int | None = None, *,
                                timeout: float = 30_000) -> dict:
        """Wait for a response whose URL matches *url_pattern* (glob or substring)."""
        _, page = await self.get_or_create_page(page_id)

        if any(c in url_pattern for c in "*?"):
            predicate = url_pattern
        else:
            def predicate(response) -> bool:
                return url_pattern in response.url
        try:
            response = await page.wait_for_response(predicate, timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise NetworkWaitTimeout(
                f"No response matching {url_pattern!r} within {timeout:g}ms"
            ) from e
        return {"url": response.url, "status": response.status}

    async def evaluate(self, script: str, page_id: int | None = None, arg: Any = None) -> Any:
        _, page = await self.get_or_create_page(page_id)
        try:
            if arg is None:
                return await page.evaluate(script)
            return await page.evaluate(script, arg)
        except PlaywrightError as e:
            raise EvaluationError(str(e)) from e

    # ── Telemetry ───────────────────────────────────────────────────────

    def console_logs(self, page_id: int) -> list[dict]:
        return [e.to_dict() for e in self.telemetry.console_logs(page_id)]

    def network_logs(self, page_id: int) -> list[dict]:
        return [e.to_dict() for e in self.telemetry.network_logs(page_id)]

    def clear_console_logs(self, page_id: int) -> None:
        self.telemetry.clear_console_logs(page_id)

    def clear_network_logs(self, page_id: int) -> None:
        self.telemetry.clear_network_logs(page_id)

    # ── Routes, headers, storage ────────────────────────────────────────

    def add_blocked_pattern(self, pattern: str) -> bool:
        return self.routes.add_blocked_pattern(pattern)

    def clear_blocked_patterns(self) -> None:
        self.routes.clear_blocked_patterns()

    def blocked_patterns(self) -> list[str]:
        return self.routes.blocked_patterns

    async def apply_route_blocking(self) -> int:
        return await self.routes.apply_route_blocking(self.context)

    async def set_extra_http_headers(self, headers: dict[str, str]) -> None:
        await self.routes.set_extra_http_headers(self.context, headers)

    async def save_storage_state(self, path: str) -> dict:
        return await save_storage_state(self.context, path)

    async def load_storage_state(self, path: str) -> dict:
        return await load_storage_state(self.context, path)

    # ── Geolocation & permissions ───────────────────────────────────────

    async def set_geolocation(self, latitude: float, longitude: float,
                              accuracy: float | None = None) -> None:
        await self.context.set_geolocation({
            "latitude": latitude,
            "longitude": longitude,
            "accuracy": accuracy or 100,
        })

    async def grant_permissions(self, permissions: list[str], origin: str | None = None) -> None:
        if origin:
            await self.context.grant_permissions(permissions, origin=origin)
        else:
            await self.context.grant_permissions(permissions)

    async def clear_permissions(self) -> None:
        await self.context.clear_permissions()

    # ── Info ────────────────────────────────────────────────────────────

    def browser_info(self) -> dict:
        cfg = self.config
        return {
            "engine": cfg.engine,
            "channel": cfg.channel or None,
            "headless": cfg.headless,
            "device": cfg.device or None,
            "proxy": cfg.proxy_server or None,
            "viewport": f"{cfg.viewport_width}x{cfg.viewport_height}" if cfg.viewport else "auto",
            "pages": len(self.registry),
            "recording_video": cfg.record_video and self.connected,
            "blocked_patterns": len(self.routes.blocked_patterns),
            "connected": self.connected,
            "state": self.state.value,
            "strategy": self.strategy or None,
        }


@asynccontextmanager
async def open_session(config: SessionConfig | None = None, **kwargs):
    """Connect a ``BrowserSession`` and close it on exit.

    Yields the connected session; the status message is on
    ``session.last_message``.
    """
    session = BrowserSession(config, **kwargs)
    try:
        await session.connect()
        yield session
    finally:
        await session.close()
