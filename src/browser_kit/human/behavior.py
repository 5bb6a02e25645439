"""Human-like click, type, scroll and hover on a Playwright page.

Replaces instant, pixel-exact automation with curved pointer paths, reaction
pauses and per-character typing rhythm. The only state kept is the last
pointer position of each page; calls on one page must not overlap.
"""
import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable

from .motion import MotionEngine, MotionPath, Point

log = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1280, "height": 720}

CLICK_JITTER = 3
HOVER_JITTER = 2
REACTION_MS = (30, 120)
CLICK_DWELL_MS = (40, 120)
HOVER_PAUSE_MS = (150, 400)
THINKING_MS = (200, 600)
BEFORE_ACTION_MS = (80, 250)

SENTENCE_TERMINATORS = ".\n"
SYMBOLS = "!@#$%^&*()"
TYPING_PAUSE_CHANCE = 0.05
TYPING_PAUSE_MS = (200, 500)

SCROLL_PIXELS_PER_STEP = 80
SCROLL_STEPS = (3, 12)
SCROLL_JITTER_Y = 10
SCROLL_JITTER_X = 5
SCROLL_STEP_MS = (20, 80)
SCROLL_SETTLE_MS = (100, 300)


class HumanInput:
    """Drives a page's mouse and keyboard like a person would.

    *rng* supplies every random choice; *sleep* is awaited with seconds for
    every pause. Both are injectable so runs can be replayed exactly.
    """

    def __init__(self, rng: random.Random | None = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.rng = rng or random.Random()
        self.motion = MotionEngine(self.rng)
        self._sleep = sleep
        self._positions: dict[Any, Point] = {}

    # ── Timing ──────────────────────────────────────────────────────────

    async def delay(self, low_ms: int, high_ms: int) -> int:
        """Pause for a random whole number of ms in [low_ms, high_ms]."""
        ms = self.rng.randint(low_ms, high_ms)
        await self._sleep(ms / 1000)
        return ms

    async def micro_delay(self) -> int:
        return await self.delay(*REACTION_MS)

    async def thinking_pause(self) -> int:
        return await self.delay(*THINKING_MS)

    async def before_action(self) -> int:
        return await self.delay(*BEFORE_ACTION_MS)

    # ── Pointer ─────────────────────────────────────────────────────────

    def position(self, page: Any) -> Point | None:
        return self._positions.get(page)

    def forget(self, page: Any) -> None:
        self._positions.pop(page, None)

    def _start_point(self, page: Any) -> Point:
        known = self._positions.get(page)
        if known is not None:
            return known
        viewport = getattr(page, "viewport_size", None)
        if not isinstance(viewport, dict):
            viewport = DEFAULT_VIEWPORT
        return Point(
            self.rng.randint(0, int(viewport.get("width", DEFAULT_VIEWPORT["width"]))),
            self.rng.randint(0, int(viewport.get("height", DEFAULT_VIEWPORT["height"]))),
        )

    async def move(self, page: Any, x: float, y: float) -> MotionPath:
        """Move along a generated path from the last known position to (x, y)."""
        path = self.motion.generate_path(self._start_point(page), Point(x, y))
        for sample in path:
            await page.mouse.move(sample.x, sample.y)
            await self._sleep(sample.delay_ms / 1000)
        self._positions[page] = Point(x, y)
        return path

    async def click(self, page: Any, x: float, y: float, *,
                    button: str = "left", click_count: int = 1) -> Point:
        """Move to a point near (x, y) and click it. Returns the clicked point."""
        t0 = time.monotonic()
        target = Point(
            x + self.rng.randint(-CLICK_JITTER, CLICK_JITTER),
            y + self.rng.randint(-CLICK_JITTER, CLICK_JITTER),
        )
        await self.move(page, target.x, target.y)
        await self.micro_delay()
        await page.mouse.click(
            target.x, target.y,
            button=button,
            click_count=click_count,
            delay=self.rng.randint(*CLICK_DWELL_MS),
        )
        await self.micro_delay()
        elapsed = time.monotonic() - t0
        log.debug(f"    click ({target.x:.0f},{target.y:.0f}) {button}x{click_count} [{elapsed:.2f}s]")
        return target

    async def hover(self, page: Any, x: float, y: float) -> Point:
        target = Point(
            x + self.rng.randint(-HOVER_JITTER, HOVER_JITTER),
            y + self.rng.randint(-HOVER_JITTER, HOVER_JITTER),
        )
        await self.move(page, target.x, target.y)
        await self.delay(*HOVER_PAUSE_MS)
        return target

    # ── Keyboard ────────────────────────────────────────────────────────

    def char_delay(self, char: str) -> int:
        """Base inter-key delay in ms for *char*, by character class."""
        if char == " ":
            return self.rng.randint(30, 80)
        if char in SENTENCE_TERMINATORS:
            return self.rng.randint(100, 250)
        if "A" <= char <= "Z":
            return self.rng.randint(60, 130)
        if "0" <= char <= "9":
            return self.rng.randint(70, 140)
        if char in SYMBOLS:
            return self.rng.randint(80, 160)
        return self.rng.randint(30, 100)

    def keystroke_delay(self, char: str) -> int:
        """Base delay plus the occasional re-reading pause."""
        delay = self.char_delay(char)
        if self.rng.random() < TYPING_PAUSE_CHANCE:
            delay += self.rng.randint(*TYPING_PAUSE_MS)
        return delay

    async def type(self, page: Any, text: str) -> int:
        """Type *text* one character at a time. Returns total delay in ms."""
        total = 0
        for char in text:
            await page.keyboard.type(char, delay=0)
            delay = self.keystroke_delay(char)
            total += delay
            await self._sleep(delay / 1000)
        log.debug(f"    typed {len(text)} chars [{total / 1000:.2f}s]")
        return total

    # ── Wheel ───────────────────────────────────────────────────────────

    async def scroll(self, page: Any, delta_y: float, delta_x: float = 0) -> int:
        """Scroll in several uneven wheel steps. Returns the step count."""
        low, high = SCROLL_STEPS
        steps = max(low, min(high, int(abs(delta_y) / SCROLL_PIXELS_PER_STEP)))
        step_y = delta_y / steps
        step_x = delta_x / steps
        for _ in range(steps):
            await page.mouse.wheel(
                step_x + self.rng.uniform(-SCROLL_JITTER_X, SCROLL_JITTER_X),
                step_y + self.rng.uniform(-SCROLL_JITTER_Y, SCROLL_JITTER_Y),
            )
            await self.delay(*SCROLL_STEP_MS)
        await self.delay(*SCROLL_SETTLE_MS)
        log.debug(f"    scroll ({delta_x:.0f},{delta_y:.0f}) in {steps} steps")
        return steps
