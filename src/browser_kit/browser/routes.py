"""Request blocking and extra headers for the active context."""
import logging
from typing import Any

log = logging.getLogger(__name__)


async def _abort(route) -> None:
    await route.abort()


class RouteMediator:
    """Holds the authoritative blocked-pattern list.

    Patterns survive reconnects; :meth:`apply_route_blocking` installs them
    on whatever context is current and can be called any number of times.
    """

    def __init__(self):
        self._patterns: list[str] = []
        self._installed: list[str] = []
        self._context: Any = None

    def add_blocked_pattern(self, pattern: str) -> bool:
        """Add *pattern*. Returns False if it was already present."""
        if pattern in self._patterns:
            return False
        self._patterns.append(pattern)
        return True

    def clear_blocked_patterns(self) -> None:
        self._patterns = []

    @property
    def blocked_patterns(self) -> list[str]:
        return list(self._patterns)

    async def apply_route_blocking(self, context: Any) -> int:
        """(Re)install one abort rule per pattern on *context*.

        Rules this mediator installed earlier on the same context are
        removed first, so repeated calls never stack handlers. Returns the
        number of active rules.
        """
        if context is not self._context:
            self._context = context
            self._installed = []
        for pattern in self._installed:
            try:
                await context.unroute(pattern, _abort)
            except Exception as e:
                log.debug(f"unroute {pattern!r} failed: {e}")
        self._installed = []
        for pattern in self._patterns:
            await context.route(pattern, _abort)
            self._installed.append(pattern)
        if self._installed:
            log.info(f"Blocking {len(self._installed)} URL pattern(s)")
        return len(self._installed)

    def forget_context(self) -> None:
        self._context = None
        self._installed = []

    @staticmethod
    async def set_extra_http_headers(context: Any, headers: dict[str, str]) -> None:
        await context.set_extra_http_headers(dict(headers))
