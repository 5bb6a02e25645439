"""browser-kit — remotely drivable browser sessions with human-like input.

Provides a Playwright connection manager with attach/profile/recovery/
disposable fallbacks, a page registry with bounded console and network
telemetry, route/storage mediation, and a human input engine that moves
the pointer along eased Bezier paths and types with a natural rhythm.
"""
from .config import SessionConfig  # noqa: F401
from .errors import (  # noqa: F401
    BrowserKitError,
    BrowserConnectionError,
    ConnectFailure,
    PageNotFound,
    NavigationTimeout,
    NetworkWaitTimeout,
    EvaluationError,
    StorageStateFileMissing,
    NotConnected,
)
from .browser.session import BrowserSession, open_session  # noqa: F401
from .human import HumanInput, MotionEngine  # noqa: F401
from .commands import BrowserCommands, CommandResult  # noqa: F401
