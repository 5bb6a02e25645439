"""Connection strategy resolver.

Runs the fallback chain that turns a ``SessionConfig`` into a live
browser context:

1. explicit CDP URL -> attach (fatal on failure)
2. profile directory -> persistent launch, with spawn-and-attach recovery
   when the browser refuses the profile (fatal on lock or timeout)
3. default local CDP endpoint -> attach (falls through on failure)
4. disposable launch

Each strategy returns a ``Connected``, ``NeedsFallback`` or ``Failed``
record; only ``NeedsFallback`` moves on to the next strategy.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from ..config import SessionConfig
from ..errors import BrowserConnectionError, ConnectFailure
from .chrome import SpawnedBrowser, resolve_executable, spawn_debug_browser, wait_for_debug_endpoint
from .stealth import STEALTH_ARGS, inject_stealth

log = logging.getLogger(__name__)

PROFILE_LOCKED_HELP = (
    "Browser profile is locked; close ALL windows using this profile, then retry.\n"
    "Or attach instead: start the browser with --remote-debugging-port=9222 "
    "and connect with cdp_url=http://localhost:9222"
)


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    ATTACHING = "attaching"
    LAUNCHING = "launching"
    RECOVERING = "recovering"
    CONNECTED = "connected"
    CLOSED = "closed"


@dataclass
class Connected:
    browser: Any
    context: Any
    message: str
    strategy: str
    owns_context: bool = True
    spawned: SpawnedBrowser | None = None


@dataclass
class NeedsFallback:
    reason: str


@dataclass
class Failed:
    error: BrowserConnectionError


AttemptResult = Connected | NeedsFallback | Failed


class ConnectionResolver:
    """Executes the strategy chain for one ``connect`` call.

    *spawner* and *probe* default to the real process spawn and HTTP poll;
    tests replace them.
    """

    def __init__(self, driver: Any, config: SessionConfig, *,
                 spawner: Callable[..., SpawnedBrowser] = spawn_debug_browser,
                 probe: Callable[..., Awaitable[bool]] = wait_for_debug_endpoint):
        self._driver = driver
        self._config = config
        self._spawner = spawner
        self._probe = probe
        self.state = ConnectionState.DISCONNECTED
        self.attempts: list[str] = []

    def _strategies(self) -> list[Callable[[], Awaitable[AttemptResult]]]:
        cfg = self._config
        if cfg.cdp_url:
            return [self._attach_configured]
        if cfg.user_data_dir:
            return [self._launch_persistent]
        return [self._attach_default, self._launch_ephemeral]

    async def resolve(self) -> Connected:
        """Return the first successful connection or raise BrowserConnectionError."""
        for strategy in self._strategies():
            result = await strategy()
            if isinstance(result, Connected):
                self.state = ConnectionState.CONNECTED
                log.info(result.message)
                return result
            if isinstance(result, Failed):
                self.state = ConnectionState.DISCONNECTED
                log.warning(f"Connection failed ({result.error.kind.value}): {result.error}")
                raise result.error
            log.info(f"Falling through to next connection strategy: {result.reason}")
        self.state = ConnectionState.DISCONNECTED
        raise BrowserConnectionError(ConnectFailure.LAUNCH_FAILED, "No connection strategy succeeded")

    # ── Strategies ──────────────────────────────────────────────────────

    async def _attach(self, url: str, strategy: str) -> AttemptResult:
        self.state = ConnectionState.ATTACHING
        self.attempts.append(strategy)
        try:
            browser = await self._driver.attach(url)
        except BrowserConnectionError as e:
            return Failed(e)
        contexts = browser.contexts
        if contexts:
            # Existing context keeps the instance's cookies and logins.
            return Connected(browser, contexts[0], f"Connected via CDP to {url}",
                             strategy, owns_context=False)
        try:
            context = await browser.new_context()
        except Exception as e:
            return Failed(BrowserConnectionError(ConnectFailure.ATTACH_FAILED, str(e)))
        return Connected(browser, context, f"Connected via CDP to {url}", strategy)

    async def _attach_configured(self) -> AttemptResult:
        return await self._attach(self._config.cdp_url, "attach")

    async def _attach_default(self) -> AttemptResult:
        result = await self._attach(self._config.default_attach_url, "default_attach")
        if isinstance(result, Failed):
            return NeedsFallback(str(result.error))
        return result

    async def _launch_persistent(self) -> AttemptResult:
        cfg = self._config
        self.state = ConnectionState.LAUNCHING
        self.attempts.append("persistent")
        options = cfg.persistent_options(STEALTH_ARGS, self._driver.device_preset(cfg.device))
        try:
            context = await self._driver.launch_persistent(cfg.engine, cfg.user_data_dir, **options)
        except BrowserConnectionError as e:
            if e.kind is ConnectFailure.NEEDS_RECOVERY:
                log.info(f"Persistent launch rejected ({e}); spawning browser with a debug port")
                return await self._spawn_and_attach()
            if e.kind is ConnectFailure.PROFILE_LOCKED:
                return Failed(BrowserConnectionError(
                    ConnectFailure.PROFILE_LOCKED,
                    f"{PROFILE_LOCKED_HELP}\nOriginal error: {e}",
                ))
            return Failed(e)
        await inject_stealth(context)
        return Connected(
            None, context,
            f"Launched persistent {cfg.engine} with profile: {cfg.user_data_dir}",
            "persistent",
        )

    async def _spawn_and_attach(self) -> AttemptResult:
        cfg = self._config
        self.state = ConnectionState.RECOVERING
        self.attempts.append("recovery")
        executable = resolve_executable(cfg.channel, cfg.executable_path)
        try:
            spawned = self._spawner(
                executable, cfg.debug_port, cfg.user_data_dir,
                headless=cfg.headless, extra_args=STEALTH_ARGS,
            )
        except OSError as e:
            return Failed(BrowserConnectionError(
                ConnectFailure.LAUNCH_FAILED, f"Could not start {executable}: {e}",
            ))

        url = f"http://localhost:{cfg.debug_port}"
        ready = await self._probe(url, timeout=cfg.recovery_timeout,
                                  interval=cfg.recovery_poll_interval, process=spawned)
        if not ready and not spawned.running:
            return Failed(BrowserConnectionError(
                ConnectFailure.LAUNCH_FAILED,
                f"{executable} exited before opening port {cfg.debug_port}. "
                "It may have handed the profile to an instance that is already running.",
            ))
        if not ready:
            await asyncio.to_thread(spawned.terminate)
            return Failed(BrowserConnectionError(
                ConnectFailure.RECOVERY_TIMEOUT,
                f"Browser did not start within {cfg.recovery_timeout:g}s. "
                "Ensure no other instances are running and try again.",
            ))

        result = await self._attach(url, "recovery_attach")
        if not isinstance(result, Connected):
            await asyncio.to_thread(spawned.terminate)
            return result
        result.spawned = spawned
        result.strategy = "recovery"
        result.message = (
            f"Launched real {cfg.channel or 'chrome'} with your profile "
            f"and connected via CDP at {url}"
        )
        return result

    async def _launch_ephemeral(self) -> AttemptResult:
        cfg = self._config
        self.state = ConnectionState.LAUNCHING
        self.attempts.append("ephemeral")
        preset = self._driver.device_preset(cfg.device)
        try:
            browser, context = await self._driver.launch_ephemeral(
                cfg.engine,
                cfg.launch_options(STEALTH_ARGS),
                cfg.ephemeral_context_options(preset),
            )
        except BrowserConnectionError as e:
            return Failed(e)
        await inject_stealth(context)
        message = f"Launched {cfg.engine}"
        if cfg.channel:
            message += f" (channel: {cfg.channel})"
        if cfg.device:
            message += f" (device: {cfg.device})"
        if cfg.proxy_server:
            message += f" (proxy: {cfg.proxy_server})"
        return Connected(browser, context, message, "ephemeral")
