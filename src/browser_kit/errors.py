"""Normalized error types for browser sessions.

The driver maps Playwright launch/attach failures into a ``ConnectFailure``
kind so the connection resolver dispatches on an explicit kind, never on
message text. Per-operation failures (navigation, evaluation, lookup) get
their own exception classes so the command boundary can report them.
"""
from enum import Enum


class ConnectFailure(Enum):
    """Kinds of connection failure produced by the driver and resolver."""
    ATTACH_FAILED = "attach_failed"         # CDP endpoint unreachable/refused
    LAUNCH_FAILED = "launch_failed"         # browser could not be started
    PROFILE_LOCKED = "profile_locked"       # profile dir in use by another instance
    NEEDS_RECOVERY = "needs_recovery"       # profile needs a real debugging port
    RECOVERY_TIMEOUT = "recovery_timeout"   # spawned browser never opened its port


class BrowserKitError(Exception):
    """Base class for all browser-kit failures."""
    code = "error"


class BrowserConnectionError(BrowserKitError):
    """Exception carrying a ConnectFailure kind."""
    code = "connection"

    def __init__(self, kind: ConnectFailure, message: str = ""):
        self.kind = kind
        super().__init__(message or kind.value)


class NotConnected(BrowserKitError):
    code = "not_connected"

    def __init__(self, message: str = ""):
        super().__init__(message or "Browser not connected. Call connect first.")


class PageNotFound(BrowserKitError):
    code = "page_not_found"

    def __init__(self, page_id: int):
        self.page_id = page_id
        super().__init__(f"Page {page_id} not found. Use list_pages to see available pages.")


class NavigationTimeout(BrowserKitError):
    code = "navigation_timeout"


class NetworkWaitTimeout(BrowserKitError):
    code = "network_wait_timeout"


class EvaluationError(BrowserKitError):
    code = "evaluation_error"


class StorageStateFileMissing(BrowserKitError):
    code = "storage_state_missing"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")
