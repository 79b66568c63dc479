"""Exclusive interaction mode, driven by gesture completions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from posecontrol import library
from posecontrol.context import SharedInteractionContext
from posecontrol.frame import Side
from posecontrol.matcher import GestureEvent

logger = logging.getLogger("posecontrol.modes")


class Mode(Enum):
    IDLE = "idle"
    CURSOR_CONTROL = "cursor_control"
    WINDOW_DRAG = "window_drag"
    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"
    VOLUME_UP = "volume_up"
    VOLUME_DOWN = "volume_down"

    @property
    def is_scroll(self) -> bool:
        return self in (Mode.SCROLL_UP, Mode.SCROLL_DOWN)

    @property
    def is_volume(self) -> bool:
        return self in (Mode.VOLUME_UP, Mode.VOLUME_DOWN)


# gesture name -> mode it starts
_STARTS = {
    library.WINDOW_DRAG: Mode.WINDOW_DRAG,
    library.CURSOR_MOVE: Mode.CURSOR_CONTROL,
    library.SCROLL_UP: Mode.SCROLL_UP,
    library.SCROLL_DOWN: Mode.SCROLL_DOWN,
    library.VOLUME_UP: Mode.VOLUME_UP,
    library.VOLUME_DOWN: Mode.VOLUME_DOWN,
}

# modes that ignore start gestures until they end
_HELD = (Mode.WINDOW_DRAG, Mode.CURSOR_CONTROL)

# gesture name -> modes it is allowed to end
_ENDS = {
    library.WINDOW_DRAG_END: (Mode.WINDOW_DRAG,),
    library.CURSOR_END: (Mode.CURSOR_CONTROL,),
    library.SCROLL_END: (Mode.SCROLL_UP, Mode.SCROLL_DOWN),
    library.VOLUME_END: (Mode.VOLUME_UP, Mode.VOLUME_DOWN),
}


@dataclass
class ModeChange:
    """A mode transition caused by a gesture (or an external command)."""
    previous: Mode
    current: Mode
    trigger: str


class ModeController:
    """Holds the single active mode and applies completion signals to it."""

    def __init__(self, context: SharedInteractionContext):
        self.context = context
        self.mode = Mode.IDLE

    def is_mode_gesture(self, name: str) -> bool:
        return name in _STARTS or name in _ENDS

    def handle(self, event: GestureEvent) -> Optional[ModeChange]:
        """Apply one completion signal.

        Returns:
            The resulting ModeChange, or None if the event does not affect
            the mode (discrete gesture, the mode already active, a start
            during a drag or cursor grab, or an end signal for another mode).
        """
        target = _STARTS.get(event.name)
        if target is not None:
            # Single-segment starts fire every tick the pose is held
            if target is self.mode:
                return None
            # A grab ends only through its own end gesture
            if self.mode in _HELD:
                return None
            if event.hand is not None and target in _HELD:
                self.context.active_hand = event.hand
            return self._enter(target, event.name)

        allowed = _ENDS.get(event.name)
        if allowed is not None and self.mode in allowed:
            if self.mode is Mode.WINDOW_DRAG:
                self.context.check_for_fling = True
            return self._enter(Mode.IDLE, event.name)

        return None

    def force(self, mode: Mode, trigger: str = "command", hand: Optional[Side] = None) -> ModeChange:
        """Set the mode from outside the gesture stream (e.g. voice)."""
        if hand is not None:
            self.context.active_hand = hand
        return self._enter(mode, trigger)

    def _enter(self, mode: Mode, trigger: str) -> ModeChange:
        previous = self.mode
        self.mode = mode
        if mode is not Mode.IDLE:
            self.context.enter_mode()
        if previous is not mode:
            logger.info("Mode %s -> %s (%s)", previous.value, mode.value, trigger)
        return ModeChange(previous=previous, current=mode, trigger=trigger)

    def reset(self):
        self.mode = Mode.IDLE


class RepeatThrottle:
    """Counter-based repeat rate for scroll and volume commands.

    ``delay = floor((1 - nd) * K) + 1``; the command fires on ticks where
    ``counter % delay == 0``. A hand near the reference pose (nd close to 0)
    repeats slowly; a hand far from it repeats every tick.
    """

    def __init__(self, k: int):
        self.k = k

    def delay(self, normalized_distance: float) -> int:
        nd = min(1.0, max(0.0, normalized_distance))
        return math.floor((1.0 - nd) * self.k) + 1

    def should_fire(self, counter: int, normalized_distance: float) -> bool:
        return counter % self.delay(normalized_distance) == 0
