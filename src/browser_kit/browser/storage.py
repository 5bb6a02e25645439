"""Save and restore cookies and localStorage as Playwright storage-state JSON.

Cookies are restored unconditionally. localStorage can only be written
from inside a page, so each origin's entries are replayed only into open
pages currently on that origin; other origins are skipped.
"""
import json
import logging
import os
from typing import Any
from urllib.parse import urlparse

from ..errors import StorageStateFileMissing

log = logging.getLogger(__name__)

_SET_LOCAL_STORAGE = """
({ entries, originUrl }) => {
    if (window.location.origin !== originUrl) return 0;
    for (const { name, value } of entries) {
        localStorage.setItem(name, value);
    }
    return entries.length;
}
"""


def origin_of(url: str) -> str:
    try:
        parsed = urlparse(url)
    except Exception:
        return ""
    if not parsed.scheme or not parsed.netloc:
        return ""
    return f"{parsed.scheme}://{parsed.netloc}"


async def save_storage_state(context: Any, path: str) -> dict:
    """Write the context's cookies and localStorage to *path*. Returns the state."""
    state = await context.storage_state()
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(state, f, ensure_ascii=False, indent=2)
    log.info(f"Saved storage state ({len(state.get('cookies', []))} cookies) to {path}")
    return state


async def load_storage_state(context: Any, path: str) -> dict:
    """Restore a snapshot written by :func:`save_storage_state`.

    Returns ``{"cookies": n, "origins_restored": n, "origins_skipped": n}``.
    """
    if not os.path.isfile(path):
        raise StorageStateFileMissing(path)
    with open(path, "r", encoding="utf-8") as f:
        state = json.load(f)

    cookies = state.get("cookies") or []
    if cookies:
        await context.add_cookies(cookies)

    restored = 0
    skipped = 0
    for origin in state.get("origins") or []:
        origin_url = origin.get("origin", "")
        entries = origin.get("localStorage") or []
        targets = [p for p in context.pages if origin_of(p.url) == origin_url]
        if not targets:
            skipped += 1
            log.debug(f"No open page on {origin_url}; skipping its localStorage")
            continue
        for page in targets:
            await page.evaluate(_SET_LOCAL_STORAGE, {"entries": entries, "originUrl": origin_url})
        restored += 1

    return {"cookies": len(cookies), "origins_restored": restored, "origins_skipped": skipped}
