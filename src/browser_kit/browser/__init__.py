"""browser — Playwright connection, page registry and context mediation."""
from .chrome import SpawnedBrowser, resolve_executable, spawn_debug_browser, wait_for_debug_endpoint  # noqa: F401
from .connection import ConnectionResolver, ConnectionState, Connected, NeedsFallback, Failed  # noqa: F401
from .driver import PlaywrightDriver, classify_launch_error  # noqa: F401
from .registry import PageRegistry, PageState, PageInfo  # noqa: F401
from .routes import RouteMediator  # noqa: F401
from .session import BrowserSession, open_session  # noqa: F401
from .stealth import STEALTH_ARGS, STEALTH_SCRIPT, inject_stealth  # noqa: F401
from .storage import save_storage_state, load_storage_state  # noqa: F401
