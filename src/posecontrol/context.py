"""Session-wide interaction state shared across gesture types."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from posecontrol.frame import Side


@dataclass
class SharedInteractionContext:
    """State that outlives any single gesture matcher.

    Written by completion handling and the per-frame control step,
    read by segments and the motion step.
    """

    signal_hand: Side = Side.RIGHT  # hand watched by knock/slap/poke
    active_hand: Side = Side.RIGHT  # hand driving drag / cursor / fling
    last_point: Optional[np.ndarray] = None
    last_depth: float = 0.0
    reset_last_point: bool = False
    check_for_fling: bool = False
    repeat_counter: int = 0

    def track_point(self, point: np.ndarray, depth: float = 0.0) -> tuple[float, float, float]:
        """Record the driving hand's point and return (dx, dy, dz) since the last tick.

        Honors the one-shot reset flag so the first tick in a new mode
        produces a zero delta. An untracked point gives NaN deltas and is
        not recorded.
        """
        if not (np.all(np.isfinite(point)) and math.isfinite(depth)):
            return math.nan, math.nan, math.nan
        if self.reset_last_point or self.last_point is None:
            self.last_point = np.array(point, dtype=np.float64)
            self.last_depth = depth
            self.reset_last_point = False

        dx = float(point[0] - self.last_point[0])
        dy = float(point[1] - self.last_point[1])
        dz = float(depth - self.last_depth)
        self.last_point = np.array(point, dtype=np.float64)
        self.last_depth = depth
        return dx, dy, dz

    def enter_mode(self):
        """Arm the one-shot flags for a freshly entered continuous mode."""
        self.reset_last_point = True
        self.repeat_counter = 0

    def reset(self):
        self.active_hand = Side.RIGHT
        self.last_point = None
        self.last_depth = 0.0
        self.reset_last_point = False
        self.check_for_fling = False
        self.repeat_counter = 0
