"""Thin driver over Playwright's async API.

Owns the Playwright instance and turns launch/attach failures into
``BrowserConnectionError`` kinds. Message inspection happens here and
nowhere else: the resolver only ever looks at ``err.kind``.
"""
import logging
from typing import Any

from playwright.async_api import async_playwright

from ..errors import BrowserConnectionError, ConnectFailure

log = logging.getLogger(__name__)

# Checked in order: recovery markers win over lock markers.
_NEEDS_RECOVERY_MARKERS = ("non-default data directory", "remote debugging")
_PROFILE_LOCK_MARKERS = (
    "singletonlock",
    "processsingleton",
    "profile is already in use",
    "already running",
)


def classify_launch_error(exc: BaseException) -> ConnectFailure:
    """Map a persistent-launch exception to a ConnectFailure kind."""
    if isinstance(exc, BrowserConnectionError):
        return exc.kind
    message = str(exc).lower()
    if any(marker in message for marker in _NEEDS_RECOVERY_MARKERS):
        return ConnectFailure.NEEDS_RECOVERY
    if any(marker in message for marker in _PROFILE_LOCK_MARKERS):
        return ConnectFailure.PROFILE_LOCKED
    return ConnectFailure.LAUNCH_FAILED


class PlaywrightDriver:
    """Starts Playwright lazily and exposes the connection primitives."""

    def __init__(self, playwright: Any = None):
        self._playwright = playwright
        self._manager = None

    async def start(self) -> None:
        if self._playwright is None:
            self._manager = async_playwright()
            self._playwright = await self._manager.start()

    async def stop(self) -> None:
        if self._manager is not None and self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                log.debug(f"Playwright stop failed: {e}")
            self._playwright = None
            self._manager = None

    @property
    def playwright(self) -> Any:
        if self._playwright is None:
            raise RuntimeError("PlaywrightDriver.start() has not been awaited")
        return self._playwright

    def browser_type(self, engine: str) -> Any:
        return getattr(self.playwright, engine, None) or self.playwright.chromium

    def device_preset(self, name: str) -> dict | None:
        if not name:
            return None
        preset = self.playwright.devices.get(name)
        if preset is None:
            log.warning(f"Unknown device preset {name!r}; using default viewport")
        return preset

    async def attach(self, endpoint: str) -> Any:
        """Connect to a running Chromium over CDP. Returns the Browser."""
        try:
            return await self.playwright.chromium.connect_over_cdp(endpoint)
        except Exception as e:
            raise BrowserConnectionError(
                ConnectFailure.ATTACH_FAILED,
                f"Could not attach to {endpoint}: {e}",
            ) from e

    async def launch_persistent(self, engine: str, user_data_dir: str, **options) -> Any:
        """Launch bound to *user_data_dir*. Returns the BrowserContext."""
        try:
            return await self.browser_type(engine).launch_persistent_context(user_data_dir, **options)
        except Exception as e:
            kind = classify_launch_error(e)
            raise BrowserConnectionError(kind, str(e)) from e

    async def launch_ephemeral(self, engine: str, launch_options: dict,
                               context_options: dict) -> tuple[Any, Any]:
        """Launch a throwaway browser and a fresh context."""
        try:
            browser = await self.browser_type(engine).launch(**launch_options)
        except Exception as e:
            raise BrowserConnectionError(ConnectFailure.LAUNCH_FAILED, str(e)) from e
        try:
            context = await browser.new_context(**context_options)
        except Exception as e:
            try:
                await browser.close()
            except Exception:
                pass
            raise BrowserConnectionError(ConnectFailure.LAUNCH_FAILED, str(e)) from e
        return browser, context
