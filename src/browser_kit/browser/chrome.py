"""Chrome/Edge discovery, detached debug-port spawn, and endpoint polling.

Used by the spawn-and-attach recovery path when a browser refuses a
persistent launch against its own default profile directory.
"""
import asyncio
import logging
import os
import platform
import subprocess
import time
import urllib.request

log = logging.getLogger(__name__)

_LOCALAPPDATA = os.environ.get("LOCALAPPDATA", "")

# Per-platform, per-channel install locations. First existing path wins.
_CANDIDATES: dict[str, dict[str, list[str]]] = {
    "Windows": {
        "chrome": [
            r"C:\Program Files\Google\Chrome\Application\chrome.exe",
            r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
            os.path.join(_LOCALAPPDATA, r"Google\Chrome\Application\chrome.exe") if _LOCALAPPDATA else "",
        ],
        "chrome-beta": [
            r"C:\Program Files\Google\Chrome Beta\Application\chrome.exe",
            r"C:\Program Files (x86)\Google\Chrome Beta\Application\chrome.exe",
        ],
        "msedge": [
            r"C:\Program Files (x86)\Microsoft\Edge\Application\msedge.exe",
            r"C:\Program Files\Microsoft\Edge\Application\msedge.exe",
        ],
        "msedge-dev": [
            r"C:\Program Files (x86)\Microsoft\Edge Dev\Application\msedge.exe",
        ],
    },
    "Darwin": {
        "chrome": ["/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"],
        "chrome-beta": ["/Applications/Google Chrome Beta.app/Contents/MacOS/Google Chrome Beta"],
        "msedge": ["/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge"],
        "msedge-dev": ["/Applications/Microsoft Edge Dev.app/Contents/MacOS/Microsoft Edge Dev"],
    },
    "Linux": {
        "chrome": ["/opt/google/chrome/chrome", "/usr/bin/google-chrome", "/usr/bin/google-chrome-stable"],
        "chrome-beta": ["/opt/google/chrome-beta/chrome", "/usr/bin/google-chrome-beta"],
        "msedge": ["/opt/microsoft/msedge/msedge", "/usr/bin/microsoft-edge", "/usr/bin/microsoft-edge-stable"],
        "msedge-dev": ["/opt/microsoft/msedge-dev/msedge", "/usr/bin/microsoft-edge-dev"],
    },
}

# Bare names assumed to be on PATH when no candidate exists.
_FALLBACK_NAMES: dict[str, dict[str, str]] = {
    "Windows": {"msedge": "msedge.exe", "msedge-dev": "msedge.exe"},
    "Darwin": {},
    "Linux": {"msedge": "microsoft-edge", "msedge-dev": "microsoft-edge-dev",
              "chrome-beta": "google-chrome-beta"},
}
_DEFAULT_FALLBACK = {"Windows": "chrome.exe", "Darwin": "google-chrome", "Linux": "google-chrome"}


def resolve_executable(channel: str = "", executable_path: str = "",
                       system: str | None = None) -> str:
    """Pick the browser executable for *channel*.

    An explicit *executable_path* always wins. Unknown channels use the
    ``chrome`` candidates.
    """
    if executable_path:
        return executable_path
    system = system or platform.system()
    channel = channel or "chrome"
    table = _CANDIDATES.get(system, {})
    candidates = table.get(channel) or table.get("chrome", [])
    for candidate in candidates:
        if candidate and os.path.isfile(candidate):
            return candidate
    return _FALLBACK_NAMES.get(system, {}).get(channel) or _DEFAULT_FALLBACK.get(system, "chrome")


def build_debug_args(port: int, user_data_dir: str, *, headless: bool = False,
                     extra_args: list[str] | None = None) -> list[str]:
    args = [
        f"--remote-debugging-port={port}",
        f"--user-data-dir={user_data_dir}",
    ]
    if extra_args:
        args.extend(extra_args)
    if headless:
        args.append("--headless=new")
    return args


class SpawnedBrowser:
    """Handle on a detached browser process started for recovery.

    The process is not a child we wait on: if the host process dies
    without calling :meth:`terminate`, the browser keeps running.
    """

    def __init__(self, proc: subprocess.Popen, executable: str, port: int):
        self.proc = proc
        self.executable = executable
        self.port = port

    @property
    def pid(self) -> int:
        return self.proc.pid

    @property
    def running(self) -> bool:
        return self.proc.poll() is None

    def terminate(self, timeout: float = 5) -> None:
        """Best-effort termination. Never raises."""
        try:
            if self.proc.poll() is not None:
                return
            self.proc.terminate()
            try:
                self.proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                self.proc.kill()
                self.proc.wait(timeout=timeout)
        except Exception as e:
            log.warning(f"Failed to terminate spawned browser (pid {self.proc.pid}): {e}")


def spawn_debug_browser(executable: str, port: int, user_data_dir: str, *,
                        headless: bool = False,
                        extra_args: list[str] | None = None) -> SpawnedBrowser:
    """Start *executable* detached with a remote debugging port."""
    args = [executable] + build_debug_args(
        port, user_data_dir, headless=headless, extra_args=extra_args,
    )
    kwargs: dict = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
    }
    if platform.system() == "Windows":
        kwargs["creationflags"] = (
            getattr(subprocess, "DETACHED_PROCESS", 0)
            | getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
        )
    else:
        kwargs["start_new_session"] = True

    log.info(f"Spawning {os.path.basename(executable)} with remote debugging on port {port}")
    proc = subprocess.Popen(args, **kwargs)
    return SpawnedBrowser(proc, executable, port)


def _endpoint_ready(url: str) -> bool:
    try:
        with urllib.request.urlopen(f"{url}/json/version", timeout=1) as resp:
            return resp.status == 200
    except Exception:
        return False


async def wait_for_debug_endpoint(url: str, *, timeout: float = 15.0,
                                  interval: float = 0.5,
                                  process: SpawnedBrowser | None = None) -> bool:
    """Poll ``<url>/json/version`` until it answers or *timeout* elapses.

    Gives up early once *process* has exited.
    """
    deadline = time.monotonic() + timeout
    while True:
        if await asyncio.to_thread(_endpoint_ready, url):
            return True
        if process is not None and not process.running:
            log.warning(f"Spawned browser (pid {process.pid}) exited before {url} answered")
            return False
        if time.monotonic() + interval > deadline:
            return False
        await asyncio.sleep(interval)
