"""Session configuration and Playwright option builders."""
import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any

ENGINES = ("chromium", "firefox", "webkit")
COLOR_SCHEMES = ("light", "dark", "no-preference")
DEFAULT_ATTACH_URL = "http://localhost:9222"


@dataclass
class SessionConfig:
    """Everything needed to establish a browser session.

    Empty strings / zero mean "not set". Defaults mirror a visible
    Chromium with a 30s action timeout.
    """
    cdp_url: str = ""
    user_data_dir: str = ""
    executable_path: str = ""
    engine: str = "chromium"
    channel: str = ""
    headless: bool = False
    default_timeout: int = 30_000
    proxy_server: str = ""
    proxy_bypass: str = ""
    viewport_width: int = 0
    viewport_height: int = 0
    device: str = ""
    record_video: bool = False
    video_dir: str = "./videos"
    geolocation: dict | None = None
    permissions: list[str] = field(default_factory=list)
    user_agent: str = ""
    extra_http_headers: dict[str, str] = field(default_factory=dict)
    locale: str = ""
    timezone_id: str = ""
    color_scheme: str = ""
    storage_state: str = ""
    ignore_https_errors: bool = False
    block_service_workers: bool = False
    default_attach_url: str = DEFAULT_ATTACH_URL
    debug_port: int = 9222
    recovery_timeout: float = 15.0
    recovery_poll_interval: float = 0.5

    def __post_init__(self):
        if self.engine not in ENGINES:
            raise ValueError(f"Unknown browser engine {self.engine!r}; expected one of {ENGINES}")
        if self.color_scheme and self.color_scheme not in COLOR_SCHEMES:
            raise ValueError(f"Unknown color scheme {self.color_scheme!r}")

    def merged(self, **overrides) -> "SessionConfig":
        """Return a copy with *overrides* applied. ``None`` values are ignored."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    @property
    def proxy(self) -> dict | None:
        if not self.proxy_server:
            return None
        proxy = {"server": self.proxy_server}
        if self.proxy_bypass:
            proxy["bypass"] = self.proxy_bypass
        return proxy

    @property
    def viewport(self) -> dict | None:
        if self.viewport_width and self.viewport_height:
            return {"width": self.viewport_width, "height": self.viewport_height}
        return None

    def context_options(self, device_preset: dict | None = None) -> dict[str, Any]:
        """Build ``new_context`` keyword arguments.

        *device_preset* is an entry from ``playwright.devices``; when given
        it supplies viewport, user agent, scale factor and touch flags.
        The user agent is only present when explicitly configured or
        implied by a device preset.
        """
        opts: dict[str, Any] = {}
        if device_preset:
            for key in ("viewport", "user_agent", "device_scale_factor", "is_mobile", "has_touch"):
                if key in device_preset:
                    opts[key] = device_preset[key]
        elif self.viewport:
            opts["viewport"] = self.viewport
        else:
            opts["no_viewport"] = True

        if self.user_agent:
            opts["user_agent"] = self.user_agent
        if self.proxy:
            opts["proxy"] = self.proxy
        if self.geolocation:
            opts["geolocation"] = self.geolocation
        if self.permissions:
            opts["permissions"] = list(self.permissions)
        if self.locale:
            opts["locale"] = self.locale
        if self.timezone_id:
            opts["timezone_id"] = self.timezone_id
        if self.color_scheme:
            opts["color_scheme"] = self.color_scheme
        if self.extra_http_headers:
            opts["extra_http_headers"] = dict(self.extra_http_headers)
        if self.ignore_https_errors:
            opts["ignore_https_errors"] = True
        if self.record_video:
            size = opts.get("viewport") or {"width": 1280, "height": 720}
            opts["record_video_dir"] = self.video_dir or "./videos"
            opts["record_video_size"] = {"width": size["width"], "height": size["height"]}
        if self.block_service_workers:
            opts["service_workers"] = "block"
        return opts

    def ephemeral_context_options(self, device_preset: dict | None = None) -> dict[str, Any]:
        """Context options for a disposable launch (proxy lives on the launch)."""
        opts = self.context_options(device_preset)
        opts.pop("proxy", None)
        if self.storage_state and os.path.isfile(self.storage_state):
            opts["storage_state"] = self.storage_state
        return opts

    def launch_options(self, args: list[str]) -> dict[str, Any]:
        """Build ``browser_type.launch`` keyword arguments."""
        opts: dict[str, Any] = {"headless": self.headless, "args": list(args)}
        if self.executable_path:
            opts["executable_path"] = self.executable_path
        if self.channel:
            opts["channel"] = self.channel
        if self.proxy:
            opts["proxy"] = self.proxy
        return opts

    def persistent_options(self, args: list[str], device_preset: dict | None = None) -> dict[str, Any]:
        """Build ``launch_persistent_context`` keyword arguments.

        Never overrides the user agent of a real profile unless asked to:
        changing it invalidates existing logins on many sites.
        """
        opts = self.context_options(device_preset)
        if not self.user_agent and not self.device:
            opts.pop("user_agent", None)
        opts.update(self.launch_options(args))
        opts["ignore_default_args"] = ["--enable-automation"]
        return opts
