"""Window motion: direct seeking while dragged, momentum after a fling.

Two ways to move a window:

- seek: while a hand drives the window, the position jumps straight to
  ``position + delta * scale`` and velocity stays zero.
- fling: after a release, velocity points at a goal at a fixed speed and
  is then integrated every tick. Each tick bleeds off speed in fixed
  steps per axis (a bounded number of steps, not exponential damping)
  and bounces off the work-area edges by flipping the velocity component.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import numpy as np

logger = logging.getLogger("posecontrol.motion")

# Screen-space normalization: a full arm swing spans about one screen
SEEK_DIVISOR = 500.0

# Release gate: displacement/arm length above this flings the window
RELEASE_THRESHOLD = 10.0
# |dx| / total above this is a horizontal release
HORIZONTAL_RATIO = 0.5


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


class ReleaseAction(Enum):
    NONE = "none"
    SNAP_LEFT = "snap_left"
    SNAP_RIGHT = "snap_right"
    MAXIMIZE = "maximize"
    MINIMIZE = "minimize"


def seek_scale(
    screen_width: float,
    screen_height: float,
    arm_length: float,
    divisor: float = SEEK_DIVISOR,
) -> float:
    """Multiplier from hand pixels to screen pixels, normalized by arm length."""
    if not arm_length > 0:
        return 0.0
    return max(screen_height / arm_length, screen_width / arm_length) / divisor


def classify_release(
    dx: float,
    dy: float,
    arm_length: float,
    threshold: float = RELEASE_THRESHOLD,
    horizontal_ratio: float = HORIZONTAL_RATIO,
) -> ReleaseAction:
    """Decide what a drag release does from the hand's exit displacement.

    Large releases are split by direction: mostly horizontal snaps the
    window to a screen half, mostly vertical maximizes (upward, dy < 0)
    or minimizes (downward).
    """
    if not arm_length > 0:
        return ReleaseAction.NONE
    total = math.hypot(dx, dy)
    if not total / arm_length > threshold:
        return ReleaseAction.NONE
    if abs(dx / total) > horizontal_ratio:
        return ReleaseAction.SNAP_RIGHT if dx > 0 else ReleaseAction.SNAP_LEFT
    return ReleaseAction.MAXIMIZE if dy < 0 else ReleaseAction.MINIMIZE


@dataclass
class MotionState:
    """Position, velocity and extent of one controlled window."""
    handle: Any
    position: np.ndarray
    width: float
    height: float
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(2))

    @classmethod
    def from_rect(cls, handle: Any, rect: Rect) -> MotionState:
        return cls(
            handle=handle,
            position=np.array([rect.x, rect.y], dtype=np.float64),
            width=rect.width,
            height=rect.height,
        )


class MotionController:
    """Integrates one window's motion each tick.

    Args:
        work_area: Usable screen rectangle windows bounce inside.
        max_speed: Fling speed in pixels per tick; also the per-tick cap
            on decay steps.
        decay_step: Speed removed per decay step, per axis.
        max_decay_steps: Cap on decay steps per tick (defaults to max_speed).
        min_fling_distance: Goals closer than this produce no fling.
    """

    def __init__(
        self,
        work_area: Rect,
        max_speed: float = 30.0,
        decay_step: float = 0.01,
        max_decay_steps: Optional[int] = None,
        min_fling_distance: float = 5.0,
    ):
        self.work_area = work_area
        self.max_speed = max_speed
        self.decay_step = decay_step
        self.max_decay_steps = int(max_speed) if max_decay_steps is None else max_decay_steps
        self.min_fling_distance = min_fling_distance
        self.state: Optional[MotionState] = None

    def attach(self, state: MotionState):
        """Start controlling a window, replacing any previous one."""
        self.state = state
        logger.debug("Controlling window %r at %s", state.handle, state.position)

    def release(self):
        self.state = None

    @property
    def is_moving(self) -> bool:
        """True until decay has bled every axis down to the step size."""
        if self.state is None:
            return False
        return bool(np.any(np.abs(self.state.velocity) > self.decay_step))

    def seek(self, dx: float, dy: float, scale: float = 1.0) -> np.ndarray:
        """Move directly by a scaled hand delta; no inertia."""
        state = self._require()
        state.position = state.position + np.array([dx, dy]) * scale
        state.velocity = np.zeros(2)
        return state.position

    def set_point(self, x: float, y: float):
        state = self._require()
        state.position = np.array([x, y], dtype=np.float64)
        state.velocity = np.zeros(2)

    def fling(self, goal: tuple[float, float]):
        """Launch the window toward ``goal`` at ``max_speed``."""
        state = self._require()
        velocity = np.asarray(goal, dtype=np.float64) - state.position
        length = float(np.linalg.norm(velocity))
        if length > self.min_fling_distance:
            velocity = velocity / length
        else:
            velocity = np.zeros(2)
        state.velocity = velocity * self.max_speed
        logger.debug("Fling %r toward %s, velocity %s", state.handle, goal, state.velocity)

    def update(self) -> np.ndarray:
        """Advance one tick: move, decay, then reflect off the work area."""
        state = self._require()
        state.position = state.position + state.velocity

        state.velocity = np.array([self._decay(v) for v in state.velocity])

        area = self.work_area
        x, y = state.position
        if x + state.width > area.right or x < area.x:
            state.velocity[0] *= -1
        if y + state.height > area.bottom or y < area.y:
            state.velocity[1] *= -1
        return state.position

    def _decay(self, v: float) -> float:
        steps = 0
        while steps < self.max_decay_steps and abs(v) > self.decay_step:
            v -= math.copysign(self.decay_step, v)
            steps += 1
        return v

    def _require(self) -> MotionState:
        if self.state is None:
            raise RuntimeError("No window attached to the motion controller")
        return self.state
