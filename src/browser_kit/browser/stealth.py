"""Minimal automation-flag hiding for launched browsers.

Only the webdriver flag is touched; every other browser property stays
real. Attached (CDP) sessions are left alone entirely.
"""
import logging
from typing import Any

log = logging.getLogger(__name__)

STEALTH_ARGS = [
    "--disable-blink-features=AutomationControlled",
]

STEALTH_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', { get: () => false });
    delete navigator.__proto__.webdriver;
"""


async def inject_stealth(context: Any) -> bool:
    """Register the init script on *context*. Returns False if it failed."""
    try:
        await context.add_init_script(STEALTH_SCRIPT)
        return True
    except Exception as e:
        log.warning(f"Failed to inject stealth init script: {e}")
        return False
