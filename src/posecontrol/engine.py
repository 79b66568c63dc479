"""Frame-synchronous interaction engine.

One call to ``process_frame`` is one tick:

1. every gesture matcher sees the frame;
2. completions drive the mode controller (mode gestures) or the action
   mapper (discrete gestures);
3. the continuous-control step for the current mode turns the active
   hand's motion into desktop commands.

``apply_command`` is the asynchronous channel (voice, REST). Both take the
same lock, so a command never lands in the middle of a tick.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from posecontrol.actions import ActionMapper
from posecontrol.config import EngineConfig, parse_side
from posecontrol.context import SharedInteractionContext
from posecontrol.desktop import Desktop
from posecontrol.frame import Y, Z, PoseFrame, Side
from posecontrol.matcher import GestureEvent, GestureRecognizer
from posecontrol.modes import Mode, ModeChange, ModeController, RepeatThrottle
from posecontrol.motion import (
    MotionController,
    MotionState,
    ReleaseAction,
    classify_release,
    seek_scale,
)
from posecontrol.profiler import PipelineProfiler

logger = logging.getLogger("posecontrol.engine")

VOLUME_UP_KEY = "XF86AudioRaiseVolume"
VOLUME_DOWN_KEY = "XF86AudioLowerVolume"


@dataclass
class TickResult:
    """Everything one tick produced."""
    events: list[GestureEvent] = field(default_factory=list)
    mode_changes: list[ModeChange] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)  # desktop calls issued
    mode: Mode = Mode.IDLE
    release: Optional[ReleaseAction] = None
    latency_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "type": "tick",
            "mode": self.mode.value,
            "events": [
                {"gesture": e.name, "hand": e.hand.value if e.hand else None, "timestamp": e.timestamp}
                for e in self.events
            ],
            "mode_changes": [
                {"from": c.previous.value, "to": c.current.value, "trigger": c.trigger}
                for c in self.mode_changes
            ],
            "commands": self.commands,
            "release": self.release.value if self.release else None,
            "latency_ms": round(self.latency_ms, 3),
        }


@dataclass
class EngineStats:
    total_frames: int
    total_gestures: int
    mode: str
    signal_hand: str
    active_hand: str
    profiler_summary: dict = field(default_factory=dict)


def normalized_distance(frame: PoseFrame, side: Side) -> float:
    """Vertical hand-to-shoulder distance in arm lengths, capped at 1.

    Untracked joints give 0, the slowest repeat rate.
    """
    arm = frame.arm_length(side)
    if not arm > 0:
        return 0.0
    nd = abs(frame.coord(side.hand, Y) - frame.coord(side.shoulder, Y)) / arm
    if math.isnan(nd):
        return 0.0
    return min(1.0, nd)


class InteractionEngine:
    """Owns the recognizer, the mode, the motion state and the lock."""

    def __init__(
        self,
        desktop: Desktop,
        config: Optional[EngineConfig] = None,
        recognizer: Optional[GestureRecognizer] = None,
        actions: Optional[ActionMapper] = None,
    ):
        self.desktop = desktop
        self.config = config or EngineConfig()
        self.recognizer = recognizer or GestureRecognizer.with_defaults()
        if actions is None:
            if self.config.mappings is not None:
                actions = ActionMapper.from_entries(self.config.mappings, desktop)
            else:
                actions = ActionMapper.with_defaults(desktop)
        elif actions.desktop is None:
            actions.desktop = desktop
        self.actions = actions

        self.context = SharedInteractionContext(signal_hand=self.config.signal_hand)
        self.modes = ModeController(self.context)
        motion = self.config.motion
        self.motion = MotionController(
            desktop.work_area,
            max_speed=motion.max_speed,
            decay_step=motion.decay_step,
            min_fling_distance=motion.min_fling_distance,
        )
        self.scroll_throttle = RepeatThrottle(self.config.throttle.scroll_k)
        self.volume_throttle = RepeatThrottle(self.config.throttle.volume_k)
        self.profiler = PipelineProfiler()

        self._lock = threading.Lock()
        self._callbacks: list[Callable[[TickResult], None]] = []
        self._total_frames = 0
        self._total_gestures = 0

    @property
    def mode(self) -> Mode:
        return self.modes.mode

    def on_tick(self, callback: Callable[[TickResult], None]):
        """Register a callback invoked after every tick (outside the lock)."""
        self._callbacks.append(callback)

    def process_frame(self, frame: PoseFrame) -> TickResult:
        """Run one full tick for ``frame``."""
        with self._lock:
            result = self._tick(frame)
        for cb in self._callbacks:
            cb(result)
        return result

    def _tick(self, frame: PoseFrame) -> TickResult:
        t_start = time.perf_counter()
        result = TickResult()
        self._total_frames += 1

        with self.profiler.stage("total"):
            with self.profiler.stage("matching"):
                result.events = self.recognizer.update(frame, self.context)
            self._total_gestures += len(result.events)

            with self.profiler.stage("mode"):
                for event in result.events:
                    logger.info("Gesture %s (hand=%s)", event.name, event.hand.value if event.hand else "-")
                    change = self.modes.handle(event)
                    if change is not None:
                        result.mode_changes.append(change)
                        self._on_mode_change(change)

            with self.profiler.stage("actions"):
                for event in result.events:
                    if not self.modes.is_mode_gesture(event.name):
                        self.actions.on_gesture(event.name, {"hand": event.hand.value if event.hand else None})

            with self.profiler.stage("control"):
                self._control(frame, result)

        result.mode = self.modes.mode
        result.latency_ms = (time.perf_counter() - t_start) * 1000.0
        return result

    def _on_mode_change(self, change: ModeChange):
        if change.current is Mode.WINDOW_DRAG:
            self._grab_foreground()
        elif change.previous is Mode.WINDOW_DRAG and change.current is not Mode.IDLE:
            # Forced out of a drag: the window stays where it was left
            self.motion.release()

    def _grab_foreground(self):
        handle = self.desktop.foreground_window()
        rect = self.desktop.window_rect(handle) if handle is not None else None
        if rect is None:
            logger.warning("No foreground window to drag")
            self.motion.release()
            return
        self.motion.attach(MotionState.from_rect(handle, rect))

    # --- continuous control ---

    def _control(self, frame: PoseFrame, result: TickResult):
        mode = self.modes.mode
        if mode is Mode.IDLE:
            self._idle(frame, result)
        elif mode is Mode.CURSOR_CONTROL:
            self._cursor(frame, result)
        elif mode is Mode.WINDOW_DRAG:
            self._drag(frame, result)
        elif mode.is_scroll:
            self._repeat(frame, result, Side.RIGHT, self.scroll_throttle)
        elif mode.is_volume:
            self._repeat(frame, result, Side.LEFT, self.volume_throttle)

    def _track_active(self, frame: PoseFrame) -> tuple[float, float, float]:
        hand = self.context.active_hand.hand
        return self.context.track_point(frame.screen_point(hand), frame.coord(hand, Z))

    def _scale(self, frame: PoseFrame) -> float:
        width, height = self.desktop.screen_size
        return seek_scale(
            width, height, frame.arm_length(self.context.active_hand),
            divisor=self.config.motion.seek_divisor,
        )

    def _idle(self, frame: PoseFrame, result: TickResult):
        if self.context.check_for_fling:
            self.context.check_for_fling = False
            dx, dy, _ = self._track_active(frame)
            result.release = self._release(dx, dy, frame.arm_length(self.context.active_hand), result)

        if self.motion.state is not None and self.motion.is_moving:
            x, y = self.motion.update()
            self.desktop.move_window(self.motion.state.handle, int(x), int(y))
            result.commands.append("move_window")

    def _release(self, dx: float, dy: float, arm: float, result: TickResult) -> ReleaseAction:
        motion = self.config.motion
        action = classify_release(
            dx, dy, arm,
            threshold=motion.release_threshold,
            horizontal_ratio=motion.horizontal_ratio,
        )
        state = self.motion.state
        if state is None:
            return ReleaseAction.NONE
        if action is ReleaseAction.NONE:
            return action

        logger.info("Release %s for window %r", action.value, state.handle)
        area = self.motion.work_area
        if action is ReleaseAction.SNAP_LEFT:
            self.motion.fling((area.x, area.y))
        elif action is ReleaseAction.SNAP_RIGHT:
            self.motion.fling((area.x + area.width / 2, area.y))
        elif action is ReleaseAction.MAXIMIZE:
            self.desktop.maximize(state.handle)
            result.commands.append("maximize")
            self.motion.release()
        elif action is ReleaseAction.MINIMIZE:
            self.desktop.minimize(state.handle)
            result.commands.append("minimize")
            self.motion.release()
        return action

    def _cursor(self, frame: PoseFrame, result: TickResult):
        dx, dy, dz = self._track_active(frame)
        arm = frame.arm_length(self.context.active_hand)
        if arm > 0 and dz > arm / self.config.click_depth_ratio:
            self.desktop.click()
            result.commands.append("click")
            return

        scale = self._scale(frame)
        mx, my = dx * scale, dy * scale
        if not (math.isfinite(mx) and math.isfinite(my)):
            return
        if int(mx) or int(my):
            self.desktop.move_cursor(int(mx), int(my))
            result.commands.append("move_cursor")

    def _drag(self, frame: PoseFrame, result: TickResult):
        dx, dy, _ = self._track_active(frame)
        if self.motion.state is None:
            return
        if not (math.isfinite(dx) and math.isfinite(dy)):
            return
        x, y = self.motion.seek(dx, dy, self._scale(frame))
        self.desktop.move_window(self.motion.state.handle, int(x), int(y))
        result.commands.append("move_window")

    def _repeat(self, frame: PoseFrame, result: TickResult, side: Side, throttle: RepeatThrottle):
        self.context.repeat_counter += 1
        if not throttle.should_fire(self.context.repeat_counter, normalized_distance(frame, side)):
            return

        mode = self.modes.mode
        if mode is Mode.SCROLL_UP:
            self.desktop.scroll(-1)
            result.commands.append("scroll")
        elif mode is Mode.SCROLL_DOWN:
            self.desktop.scroll(1)
            result.commands.append("scroll")
        elif mode is Mode.VOLUME_UP:
            self.desktop.send_key(VOLUME_UP_KEY)
            result.commands.append("send_key")
        elif mode is Mode.VOLUME_DOWN:
            self.desktop.send_key(VOLUME_DOWN_KEY)
            result.commands.append("send_key")

    # --- asynchronous channel ---

    def apply_command(self, command: dict[str, Any]) -> dict:
        """Apply an out-of-band command, serialized with frame ticks.

        Supported commands:
            {"action": "set_mode", "mode": "scroll_down", "hand": "left"}
            {"action": "set_signal_hand", "hand": "left"}
            {"action": "reset"}

        Raises:
            ValueError: on an unknown action, mode or hand.
        """
        action = command.get("action")
        with self._lock:
            if action == "set_mode":
                try:
                    mode = Mode(command.get("mode"))
                except ValueError:
                    raise ValueError(f"Unknown mode {command.get('mode')!r}") from None
                hand = command.get("hand")
                previous = self.modes.mode
                change = self.modes.force(mode, hand=parse_side(hand) if hand else None)
                if previous is Mode.WINDOW_DRAG and mode is Mode.IDLE:
                    self.context.check_for_fling = True
                if change.previous is not change.current:
                    self._on_mode_change(change)
                return {"mode": self.modes.mode.value}

            if action == "set_signal_hand":
                self.context.signal_hand = parse_side(command.get("hand", ""))
                logger.info("Signal hand set to %s", self.context.signal_hand.value)
                return {"signal_hand": self.context.signal_hand.value}

            if action == "reset":
                self._reset_locked()
                return {"mode": self.modes.mode.value}

        raise ValueError(f"Unknown command {action!r}")

    def reset(self):
        """Drop all progress: matchers, mode, motion and session state."""
        with self._lock:
            self._reset_locked()

    def _reset_locked(self):
        self.recognizer.reset()
        self.modes.reset()
        self.motion.release()
        self.context.reset()
        logger.info("Engine reset")

    @property
    def stats(self) -> EngineStats:
        return EngineStats(
            total_frames=self._total_frames,
            total_gestures=self._total_gestures,
            mode=self.modes.mode.value,
            signal_hand=self.context.signal_hand.value,
            active_hand=self.context.active_hand.value,
            profiler_summary=self.profiler.summary(),
        )
