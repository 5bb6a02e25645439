"""Per-page console and network capture.

Listens to Playwright page events and keeps two bounded buffers per page.
Handlers are plain appends to fixed-size deques: events interleave with
in-flight commands on the same loop, and once a buffer is full the oldest
entry is dropped silently.
"""
import collections
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any

log = logging.getLogger(__name__)

MAX_LOG_ENTRIES = 500
DEFAULT_METHOD = "GET"
DEFAULT_RESOURCE_TYPE = "other"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ConsoleLogEntry:
    level: str
    text: str
    source_url: str
    timestamp: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class NetworkLogEntry:
    url: str
    method: str
    resource_type: str
    timestamp: int
    status: int | None = None
    duration: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class _PendingRequest:
    url: str
    method: str
    resource_type: str
    timestamp: int


class PageTelemetry:
    """Console/network buffers and in-flight requests for one page."""

    def __init__(self, capacity: int = MAX_LOG_ENTRIES):
        self._capacity = capacity
        self.console: collections.deque[ConsoleLogEntry] = collections.deque(maxlen=capacity)
        self.network: collections.deque[NetworkLogEntry] = collections.deque(maxlen=capacity)
        # Keyed by the request object, so concurrent requests to one URL
        # keep their own timings.
        self.pending: dict[Any, _PendingRequest] = {}

    def on_console(self, msg) -> None:
        try:
            location = msg.location or {}
            self.console.append(ConsoleLogEntry(
                level=msg.type,
                text=msg.text,
                source_url=location.get("url", "") if isinstance(location, dict) else "",
                timestamp=_now_ms(),
            ))
        except Exception as e:
            log.debug(f"console listener error: {e}")

    def on_request(self, request) -> None:
        try:
            if len(self.pending) >= self._capacity:
                # Oldest in-flight request is evicted; its response logs with defaults.
                self.pending.pop(next(iter(self.pending)))
            self.pending[request] = _PendingRequest(
                url=request.url,
                method=request.method,
                resource_type=request.resource_type,
                timestamp=_now_ms(),
            )
        except Exception as e:
            log.debug(f"request listener error: {e}")

    def on_request_failed(self, request) -> None:
        """Failed and aborted requests never get a response."""
        try:
            self.pending.pop(request, None)
        except Exception as e:
            log.debug(f"requestfailed listener error: {e}")

    def on_response(self, response) -> None:
        try:
            now = _now_ms()
            info = self.pending.pop(response.request, None)
            self.network.append(NetworkLogEntry(
                url=response.url,
                method=info.method if info else DEFAULT_METHOD,
                resource_type=info.resource_type if info else DEFAULT_RESOURCE_TYPE,
                timestamp=now,
                status=response.status,
                duration=now - info.timestamp if info else None,
            ))
        except Exception as e:
            log.debug(f"response listener error: {e}")


class TelemetryCollector:
    """Owns the telemetry of every tracked page, keyed by page id."""

    def __init__(self, capacity: int = MAX_LOG_ENTRIES):
        self._capacity = capacity
        self._pages: dict[int, PageTelemetry] = {}

    def attach(self, page_id: int, page: Any) -> PageTelemetry:
        """Subscribe to *page* events. Re-attaching an id starts fresh."""
        telemetry = PageTelemetry(self._capacity)
        self._pages[page_id] = telemetry
        page.on("console", telemetry.on_console)
        page.on("request", telemetry.on_request)
        page.on("response", telemetry.on_response)
        page.on("requestfailed", telemetry.on_request_failed)
        page.on("close", lambda _page: self.discard(page_id))
        return telemetry

    def discard(self, page_id: int) -> None:
        self._pages.pop(page_id, None)

    def reset(self) -> None:
        self._pages.clear()

    def tracked(self, page_id: int) -> bool:
        return page_id in self._pages

    def console_logs(self, page_id: int) -> list[ConsoleLogEntry]:
        telemetry = self._pages.get(page_id)
        return list(telemetry.console) if telemetry else []

    def network_logs(self, page_id: int) -> list[NetworkLogEntry]:
        telemetry = self._pages.get(page_id)
        return list(telemetry.network) if telemetry else []

    def clear_console_logs(self, page_id: int) -> None:
        telemetry = self._pages.get(page_id)
        if telemetry:
            telemetry.console.clear()

    def clear_network_logs(self, page_id: int) -> None:
        telemetry = self._pages.get(page_id)
        if telemetry:
            telemetry.network.clear()
