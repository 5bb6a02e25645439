"""Cubic Bezier pointer paths with eased timing and per-sample jitter.

All randomness comes from the ``random.Random`` handed to the engine, so a
seeded generator reproduces a path exactly.
"""
import math
import random
from dataclasses import dataclass, field

MIN_SAMPLES = 5
MAX_SAMPLES = 25
PIXELS_PER_SAMPLE = 30
SAMPLE_JITTER = 1.0
SAMPLE_DELAY_MS = (2, 12)


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class MotionSample:
    x: float
    y: float
    delay_ms: int


@dataclass
class MotionPath:
    start: Point
    end: Point
    samples: list[MotionSample] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self):
        return iter(self.samples)

    @property
    def total_delay_ms(self) -> int:
        return sum(s.delay_ms for s in self.samples)


def _cubic_bezier(t: float, p0: float, p1: float, p2: float, p3: float) -> float:
    """Evaluate cubic Bezier at parameter t in [0, 1]."""
    u = 1 - t
    return u * u * u * p0 + 3 * u * u * t * p1 + 3 * u * t * t * p2 + t * t * t * p3


def ease_in_out(t: float) -> float:
    """Quadratic ease: slow start, fast middle, slow end."""
    if t < 0.5:
        return 2 * t * t
    return 1 - 2 * (1 - t) * (1 - t)


def sample_count(distance: float) -> int:
    return max(MIN_SAMPLES, min(MAX_SAMPLES, int(distance / PIXELS_PER_SAMPLE)))


class MotionEngine:
    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def generate_path(self, start, end) -> MotionPath:
        """Build a jittered, eased curve from *start* to *end*.

        *start* and *end* are ``Point``s or ``(x, y)`` pairs. The first and
        last samples land within ``SAMPLE_JITTER`` px of the endpoints.
        """
        start = start if isinstance(start, Point) else Point(*start)
        end = end if isinstance(end, Point) else Point(*end)
        rng = self.rng
        dx = end.x - start.x
        dy = end.y - start.y

        # Control points bow the path off the straight line.
        cp1 = Point(
            start.x + dx * rng.uniform(0.2, 0.4) + rng.uniform(-30, 30),
            start.y + dy * rng.uniform(0.1, 0.3) + rng.uniform(-30, 30),
        )
        cp2 = Point(
            start.x + dx * rng.uniform(0.6, 0.8) + rng.uniform(-20, 20),
            start.y + dy * rng.uniform(0.7, 0.9) + rng.uniform(-20, 20),
        )

        n = sample_count(math.hypot(dx, dy))
        samples = []
        for i in range(n):
            t = ease_in_out(i / (n - 1))
            x = _cubic_bezier(t, start.x, cp1.x, cp2.x, end.x)
            y = _cubic_bezier(t, start.y, cp1.y, cp2.y, end.y)
            samples.append(MotionSample(
                x=x + rng.uniform(-SAMPLE_JITTER, SAMPLE_JITTER),
                y=y + rng.uniform(-SAMPLE_JITTER, SAMPLE_JITTER),
                delay_ms=rng.randint(*SAMPLE_DELAY_MS),
            ))
        return MotionPath(start=start, end=end, samples=samples)
