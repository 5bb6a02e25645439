"""Structured JSONL event logging for browser command runs."""
import json
import logging
import os
import time

log = logging.getLogger(__name__)


class CommandEventLogger:
    """Writes one JSON line per connect/command/close event.

    All logging is best-effort — methods never raise exceptions.
    Supports context-manager protocol for automatic close.
    """

    def __init__(self, run_id: str, log_dir: str = "data/logs/browser_events"):
        self._run_id = run_id
        self._f = None
        self._commands = 0
        self._failures = 0
        try:
            os.makedirs(log_dir, exist_ok=True)
            safe_run_id = run_id.replace("/", "_").replace("\\", "_")
            path = os.path.join(log_dir, f"{safe_run_id}.jsonl")
            self._f = open(path, "a", encoding="utf-8")
        except Exception as e:
            log.warning(f"CommandEventLogger: failed to open log file: {e}")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _write(self, event: dict):
        if self._f is None:
            return
        try:
            event["ts"] = time.time()
            event["run_id"] = self._run_id
            self._f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")
            self._f.flush()
        except Exception as e:
            log.warning(f"CommandEventLogger: write failed: {e}")

    def log_connect(self, ok: bool, strategy: str, message: str, duration: float,
                    attempts: list[str] | None = None, error_kind: str = ""):
        self._write({
            "event": "connect",
            "ok": ok,
            "strategy": strategy,
            "attempts": attempts or [],
            "message": message,
            "error_kind": error_kind,
            "duration": duration,
        })

    def log_command(self, name: str, ok: bool, duration: float,
                    page_id: int | None = None, error: str = "", error_kind: str = ""):
        self._commands += 1
        if not ok:
            self._failures += 1
        event = {
            "event": "command",
            "name": name,
            "ok": ok,
            "duration": duration,
        }
        if page_id is not None:
            event["page_id"] = page_id
        if not ok:
            event["error"] = error
            event["error_kind"] = error_kind
        self._write(event)

    def log_session_end(self, pages_open: int, duration: float, status: str = "ok"):
        self._write({
            "event": "session_end",
            "commands": self._commands,
            "failures": self._failures,
            "pages_open": pages_open,
            "duration": duration,
            "status": status,
        })

    def close(self):
        if self._f is not None:
            try:
                self._f.flush()
                self._f.close()
            except Exception:
                pass
            self._f = None
