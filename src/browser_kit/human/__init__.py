"""human — human-like pointer motion and input timing."""
from .motion import MotionEngine, MotionPath, MotionSample, Point  # noqa: F401
from .behavior import HumanInput  # noqa: F401
