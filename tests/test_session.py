"""Tests for BrowserSession lifecycle with a scripted driver."""
import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from browser_kit.browser.connection import ConnectionState
from browser_kit.browser.session import BrowserSession, open_session
from browser_kit.config import SessionConfig
from browser_kit.errors import (
    BrowserConnectionError,
    ConnectFailure,
    EvaluationError,
    NavigationTimeout,
    NotConnected,
)

from fakes import FakeBrowser, FakeContext, FakeDriver, FakePage

UNREACHABLE = "http://127.0.0.1:1"


def _session(driver=None, **config):
    config.setdefault("default_attach_url", UNREACHABLE)
    return BrowserSession(SessionConfig(**config), driver or FakeDriver())


def test_connect_returns_status_and_sets_state():
    session = _session(engine="webkit")
    message = asyncio.run(session.connect())
    assert message == "Launched webkit"
    assert session.connected
    assert session.state is ConnectionState.CONNECTED
    assert session.strategy == "ephemeral"
    assert session.context.default_timeout == 30_000


def test_connect_overrides_merge_into_config():
    session = _session()
    asyncio.run(session.connect(engine="firefox", headless=True, channel=None))
    assert session.config.engine == "firefox"
    assert session.config.headless is True
    assert session.config.channel == ""


def test_second_connect_closes_first():
    session = _session()
    asyncio.run(session.connect())
    first_context, first_browser = session.context, session.browser
    asyncio.run(session.connect())
    assert first_context.closed
    assert first_browser.closed
    assert session.context is not first_context


def test_failed_connect_leaves_session_disconnected():
    session = BrowserSession(SessionConfig(cdp_url="http://h:1"), FakeDriver())
    with pytest.raises(BrowserConnectionError):
        asyncio.run(session.connect())
    assert not session.connected
    assert session.state is ConnectionState.DISCONNECTED
    with pytest.raises(NotConnected):
        session.context


def test_close_does_not_close_borrowed_context():
    existing = FakeContext(pages=[FakePage("https://mail.test/")])
    browser = FakeBrowser(contexts=[existing])
    session = BrowserSession(SessionConfig(cdp_url="http://h:1"),
                             FakeDriver(listening={"http://h:1": browser}))
    asyncio.run(session.connect())
    assert session.list_pages() == [{"id": 1, "url": "https://mail.test/", "title": ""}]
    asyncio.run(session.close())
    assert not existing.closed
    assert browser.closed
    assert session.state is ConnectionState.CLOSED
    assert len(session.registry) == 0


def test_close_terminates_spawned_recovery_browser():
    spawned = MagicMock()
    driver = FakeDriver(
        persistent_error=BrowserConnectionError(ConnectFailure.NEEDS_RECOVERY, "x"),
        listening={"http://localhost:9222": FakeBrowser(contexts=[FakeContext()])},
    )

    async def probe(url, *, timeout, interval, process=None):
        return True

    session = BrowserSession(SessionConfig(user_data_dir="/p"), driver,
                             spawner=lambda *a, **k: spawned, probe=probe)
    asyncio.run(session.connect())
    assert session.strategy == "recovery"
    threads = []
    spawned.terminate.side_effect = lambda: threads.append(threading.get_ident())
    asyncio.run(session.close())
    spawned.terminate.assert_called_once()
    assert threads[0] != threading.get_ident()


def test_close_without_connect_is_safe():
    session = _session()
    asyncio.run(session.close())
    assert session.state is ConnectionState.CLOSED


def test_page_ids_continue_across_reconnect():
    session = _session()
    asyncio.run(session.connect())
    first_id, _ = asyncio.run(session.new_page())
    asyncio.run(session.connect())
    second_id, _ = asyncio.run(session.new_page())
    assert second_id > first_id


def test_navigate_returns_id_and_title():
    session = _session()
    asyncio.run(session.connect())
    page_id, title = asyncio.run(session.navigate("https://example.com/"))
    assert page_id == 1
    assert title == ""
    assert session.list_pages()[0]["url"] == "https://example.com/"


def test_navigate_timeout_maps_to_navigation_timeout():
    session = _session()
    asyncio.run(session.connect())
    _, page = asyncio.run(session.new_page())
    page.goto = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 10ms exceeded"))
    with pytest.raises(NavigationTimeout):
        asyncio.run(session.navigate("https://slow.test/", timeout=10))


def test_evaluate_error_maps_to_evaluation_error():
    session = _session()
    asyncio.run(session.connect())
    _, page = asyncio.run(session.new_page())
    page.evaluate = AsyncMock(side_effect=PlaywrightError("ReferenceError: nope is not defined"))
    with pytest.raises(EvaluationError) as exc:
        asyncio.run(session.evaluate("nope()"))
    assert "ReferenceError" in str(exc.value)


def test_evaluate_passes_argument():
    session = _session()
    asyncio.run(session.connect())
    _, page = asyncio.run(session.new_page())
    page.evaluate = AsyncMock(return_value=3)
    assert asyncio.run(session.evaluate("(a) => a + 1", arg=2)) == 3
    page.evaluate.assert_awaited_once_with("(a) => a + 1", 2)


def test_blocked_patterns_reapplied_on_connect():
    session = _session()
    session.add_blocked_pattern("**/*.png")
    asyncio.run(session.connect())
    session.context.route.assert_awaited_once()
    assert session.context.route.await_args.args[0] == "**/*.png"


def test_telemetry_follows_pages():
    session = _session()
    asyncio.run(session.connect())
    page_id, page = asyncio.run(session.new_page())
    msg = MagicMock(type="error", text="boom", location={"url": "https://a.test/"})
    page.emit("console", msg)
    assert session.console_logs(page_id)[0]["text"] == "boom"
    asyncio.run(session.close_page(page_id))
    assert session.console_logs(page_id) == []


def test_geolocation_defaults_accuracy():
    session = _session()
    asyncio.run(session.connect())
    asyncio.run(session.set_geolocation(51.5, -0.12))
    session.context.set_geolocation.assert_awaited_once_with(
        {"latitude": 51.5, "longitude": -0.12, "accuracy": 100},
    )


def test_grant_permissions_with_origin():
    session = _session()
    asyncio.run(session.connect())
    asyncio.run(session.grant_permissions(["geolocation"], origin="https://maps.test"))
    session.context.grant_permissions.assert_awaited_once_with(
        ["geolocation"], origin="https://maps.test",
    )


def test_browser_info_reports_config():
    session = _session(engine="firefox", viewport_width=1024, viewport_height=768,
                       proxy_server="http://proxy:1")
    info = session.browser_info()
    assert info["engine"] == "firefox"
    assert info["viewport"] == "1024x768"
    assert info["connected"] is False
    asyncio.run(session.connect())
    info = session.browser_info()
    assert info["connected"] is True
    assert info["strategy"] == "ephemeral"
    assert info["proxy"] == "http://proxy:1"
    assert info["state"] == "connected"


def test_open_session_closes_on_exit():
    driver = FakeDriver()

    async def run():
        async with open_session(SessionConfig(default_attach_url=UNREACHABLE), driver=driver) as session:
            assert session.last_message == "Launched chromium"
            return session

    session = asyncio.run(run())
    assert session.state is ConnectionState.CLOSED
    assert not driver.started
