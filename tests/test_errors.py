"""Tests for ConnectFailure and the browser-kit error classes."""
from browser_kit.errors import (
    BrowserConnectionError,
    BrowserKitError,
    ConnectFailure,
    NotConnected,
    PageNotFound,
    StorageStateFileMissing,
)


def test_failure_values():
    assert ConnectFailure.ATTACH_FAILED.value == "attach_failed"
    assert ConnectFailure.LAUNCH_FAILED.value == "launch_failed"
    assert ConnectFailure.PROFILE_LOCKED.value == "profile_locked"
    assert ConnectFailure.NEEDS_RECOVERY.value == "needs_recovery"
    assert ConnectFailure.RECOVERY_TIMEOUT.value == "recovery_timeout"


def test_connection_error_with_message():
    err = BrowserConnectionError(ConnectFailure.PROFILE_LOCKED, "in use")
    assert err.kind == ConnectFailure.PROFILE_LOCKED
    assert str(err) == "in use"


def test_connection_error_default_message():
    err = BrowserConnectionError(ConnectFailure.ATTACH_FAILED)
    assert str(err) == "attach_failed"


def test_page_not_found_message():
    err = PageNotFound(7)
    assert err.page_id == 7
    assert str(err) == "Page 7 not found. Use list_pages to see available pages."


def test_not_connected_message():
    assert str(NotConnected()) == "Browser not connected. Call connect first."


def test_storage_state_missing_message():
    assert str(StorageStateFileMissing("/x.json")) == "File not found: /x.json"


def test_all_errors_share_base():
    try:
        raise PageNotFound(1)
    except BrowserKitError as e:
        assert e.code == "page_not_found"
    except Exception:
        raise AssertionError("PageNotFound should be catchable as BrowserKitError")
