"""End-to-end engine ticks: frames in, desktop commands out."""

import pytest

from posecontrol.config import EngineConfig
from posecontrol.desktop import RecordingDesktop
from posecontrol.engine import InteractionEngine, normalized_distance
from posecontrol.frame import HandState, Side
from posecontrol.modes import Mode
from posecontrol.motion import ReleaseAction

CLOSED = HandState.CLOSED
OPEN = HandState.OPEN
POINTING = HandState.POINTING


@pytest.fixture
def engine(desktop):
    return InteractionEngine(desktop)


def grab(engine, pose):
    """Closed right fist over the head, pulled down, then moved right."""
    engine.process_frame(pose(right=CLOSED, hand_right=(0.0, 0.8, 2.0)))
    grabbed = engine.process_frame(pose(right=CLOSED, hand_right=(0.0, 0.5, 2.0)))
    moved = engine.process_frame(pose(right=CLOSED, hand_right=(0.1, 0.5, 2.0)))
    return grabbed, moved


class TestWindowDrag:
    def test_grab_captures_foreground_window(self, engine, desktop, pose):
        grabbed, _ = grab(engine, pose)
        assert [e.name for e in grabbed.events] == ["window_drag"]
        assert grabbed.mode is Mode.WINDOW_DRAG
        assert engine.context.active_hand is Side.RIGHT
        assert engine.motion.state.handle == desktop.handle

    def test_first_drag_tick_does_not_jump(self, engine, desktop, pose):
        grabbed, _ = grab(engine, pose)
        assert grabbed.commands == ["move_window"]
        assert desktop.calls_named("move_window")[0].args == (1, 100, 100)

    def test_drag_follows_hand(self, engine, desktop, pose):
        _, moved = grab(engine, pose)
        assert moved.commands == ["move_window"]
        assert desktop.window.x > 250
        assert desktop.window.y == 100
        assert not engine.motion.is_moving

    def test_horizontal_release_flings(self, engine, desktop, pose):
        grab(engine, pose)
        released = engine.process_frame(pose(right=OPEN, hand_right=(0.2, 0.5, 2.0)))
        assert released.mode is Mode.IDLE
        assert released.mode_changes[0].previous is Mode.WINDOW_DRAG
        assert released.release is ReleaseAction.SNAP_RIGHT
        assert "move_window" in released.commands
        assert engine.motion.is_moving

        x_before = desktop.window.x
        engine.process_frame(pose())
        assert desktop.window.x > x_before
        assert not engine.context.check_for_fling

    def test_upward_release_maximizes(self, engine, desktop, pose):
        grab(engine, pose)
        released = engine.process_frame(pose(right=OPEN, hand_right=(0.1, 0.7, 2.0)))
        assert released.release is ReleaseAction.MAXIMIZE
        assert desktop.calls_named("maximize")[0].args == (1,)
        assert engine.motion.state is None

    def test_downward_release_minimizes(self, engine, desktop, pose):
        grab(engine, pose)
        released = engine.process_frame(pose(right=OPEN, hand_right=(0.1, 0.3, 2.0)))
        assert released.release is ReleaseAction.MINIMIZE
        assert desktop.calls_named("minimize")

    def test_gentle_release_leaves_window(self, engine, desktop, pose):
        grab(engine, pose)
        x = desktop.window.x
        released = engine.process_frame(pose(right=OPEN, hand_right=(0.1, 0.5, 2.0)))
        assert released.release is ReleaseAction.NONE
        assert released.commands == []
        assert desktop.window.x == x

    def test_other_end_gestures_do_not_release(self, engine, pose):
        grab(engine, pose)
        # left hand opening is volume_end, not a drag release
        result = engine.process_frame(pose(left=OPEN, right=CLOSED, hand_right=(0.1, 0.5, 2.0)))
        assert result.mode is Mode.WINDOW_DRAG

    def test_release_without_window_does_nothing(self, pose):
        desktop = RecordingDesktop(handle=None)
        engine = InteractionEngine(desktop)
        grab(engine, pose)
        assert engine.motion.state is None
        released = engine.process_frame(pose(right=OPEN, hand_right=(0.2, 0.5, 2.0)))
        assert released.mode is Mode.IDLE
        assert released.release is ReleaseAction.NONE
        assert desktop.calls == []

    def test_drag_through_scroll_pose_keeps_window(self, engine, desktop, pose):
        grab(engine, pose)
        result = engine.process_frame(pose(right=CLOSED, hand_right=(0.3, 0.45, 2.0)))
        assert [e.name for e in result.events] == ["scroll_down"]
        assert result.mode is Mode.WINDOW_DRAG
        assert result.mode_changes == []
        assert result.commands == ["move_window"]
        assert engine.motion.state.handle == desktop.handle
        assert not desktop.calls_named("scroll")


class TestCursorControl:
    def enter(self, engine, pose):
        engine.process_frame(pose(right=POINTING, hand_right=(0.0, 0.8, 2.0)))
        return engine.process_frame(pose(right=POINTING, hand_right=(0.0, 0.5, 2.0)))

    def test_enter_does_not_move(self, engine, pose):
        result = self.enter(engine, pose)
        assert result.mode is Mode.CURSOR_CONTROL
        assert result.commands == []

    def test_moves_cursor(self, engine, desktop, pose):
        self.enter(engine, pose)
        result = engine.process_frame(pose(right=POINTING, hand_right=(0.05, 0.5, 2.0)))
        assert result.commands == ["move_cursor"]
        dx, dy = desktop.calls_named("move_cursor")[0].args
        assert dx > 0 and dy == 0

    def test_depth_push_clicks(self, engine, desktop, pose):
        self.enter(engine, pose)
        result = engine.process_frame(pose(right=POINTING, hand_right=(0.0, 0.5, 2.1)))
        assert "click" in result.commands
        assert not desktop.calls_named("move_cursor")

    def test_left_cursor_through_volume_pose(self, engine, desktop, pose):
        engine.process_frame(pose(left=POINTING, hand_left=(0.0, 0.8, 2.0)))
        engine.process_frame(pose(left=POINTING, hand_left=(0.0, 0.5, 2.0)))
        assert engine.context.active_hand is Side.LEFT
        result = engine.process_frame(pose(left=POINTING, hand_left=(-0.35, 0.5, 2.0)))
        assert "volume_down" in [e.name for e in result.events]
        assert result.mode is Mode.CURSOR_CONTROL
        assert not desktop.calls_named("send_key")

    def test_open_hand_ends(self, engine, pose):
        self.enter(engine, pose)
        result = engine.process_frame(pose(right=OPEN, hand_right=(0.0, 0.5, 2.0)))
        assert result.mode is Mode.IDLE
        assert result.release is None


class TestRepeatModes:
    def test_scroll_down_throttled(self, engine, desktop, pose):
        frame = pose(right=CLOSED, hand_right=(0.35, 0.5, 2.0))
        for _ in range(16):
            result = engine.process_frame(frame)
        assert result.mode is Mode.SCROLL_DOWN
        # nd ~ 0.27: delay 8
        assert [c.args for c in desktop.calls_named("scroll")] == [(1,), (1,)]
        assert engine.context.repeat_counter == 16

    def test_far_hand_scrolls_every_tick(self, engine, desktop, pose):
        frame = pose(right=CLOSED, hand_right=(0.35, -0.4, 2.0))
        for _ in range(5):
            engine.process_frame(frame)
        assert engine.mode is Mode.SCROLL_UP
        assert [c.args for c in desktop.calls_named("scroll")] == [(-1,)] * 5

    def test_volume_down_then_stop(self, engine, desktop, pose):
        frame = pose(left=POINTING, hand_left=(-0.35, 0.5, 2.0))
        for _ in range(8):
            engine.process_frame(frame)
        keys = [c.args[0] for c in desktop.calls_named("send_key")]
        assert keys == ["XF86AudioLowerVolume"] * 2

        result = engine.process_frame(pose(left=OPEN))
        assert result.mode is Mode.IDLE
        engine.process_frame(pose())
        assert len(desktop.calls_named("send_key")) == 2

    def test_configurable_k(self, desktop, pose):
        config = EngineConfig()
        config.throttle.scroll_k = 0
        engine = InteractionEngine(desktop, config)
        frame = pose(right=CLOSED, hand_right=(0.35, 0.5, 2.0))
        for _ in range(3):
            engine.process_frame(frame)
        assert len(desktop.calls_named("scroll")) == 3

    def test_normalized_distance(self, pose):
        frame = pose(hand_right=(0.35, -0.4, 2.0))
        assert normalized_distance(frame, Side.RIGHT) == 1.0
        assert normalized_distance(pose(hand_right=(0.25, 0.15, 2.0)), Side.RIGHT) == 0.0


class TestDiscreteGestures:
    def test_pause_play_sends_media_key(self, engine, desktop, pose):
        engine.process_frame(pose(left=CLOSED, hand_left=(-0.35, 0.0, 2.0)))
        result = engine.process_frame(pose(left=CLOSED, hand_left=(-0.1, 0.0, 2.0)))
        assert [e.name for e in result.events] == ["pause_play"]
        assert result.mode is Mode.IDLE
        assert desktop.calls_named("send_key")[0].args == ("XF86AudioPlay",)

    def test_custom_mappings_from_config(self, desktop, pose):
        config = EngineConfig(mappings=[{
            "trigger": "pause_play",
            "actions": [{"type": "keyboard", "params": {"keys": "space"}}],
        }])
        engine = InteractionEngine(desktop, config)
        engine.process_frame(pose(left=CLOSED, hand_left=(-0.35, 0.0, 2.0)))
        engine.process_frame(pose(left=CLOSED, hand_left=(-0.1, 0.0, 2.0)))
        assert desktop.calls_named("send_key")[0].args == ("space",)


class TestCommands:
    def test_set_mode(self, engine):
        assert engine.apply_command({"action": "set_mode", "mode": "volume_up"}) == {"mode": "volume_up"}
        assert engine.mode is Mode.VOLUME_UP
        assert engine.context.reset_last_point

    def test_set_mode_window_drag_grabs(self, engine, desktop):
        engine.apply_command({"action": "set_mode", "mode": "window_drag", "hand": "left"})
        assert engine.context.active_hand is Side.LEFT
        assert engine.motion.state.handle == desktop.handle

    def test_forced_drag_exit_checks_fling(self, engine):
        engine.apply_command({"action": "set_mode", "mode": "window_drag"})
        engine.apply_command({"action": "set_mode", "mode": "idle"})
        assert engine.context.check_for_fling

    def test_set_signal_hand(self, engine):
        engine.apply_command({"action": "set_signal_hand", "hand": "left"})
        assert engine.context.signal_hand is Side.LEFT

    def test_reset(self, engine, pose):
        engine.process_frame(pose(right=CLOSED, hand_right=(0.0, 0.8, 2.0)))
        engine.apply_command({"action": "set_mode", "mode": "scroll_up"})
        engine.apply_command({"action": "reset"})
        assert engine.mode is Mode.IDLE
        assert engine.recognizer.matcher("window_drag").cursor == 0

    @pytest.mark.parametrize("command", [
        {"action": "fly"},
        {"action": "set_mode", "mode": "hover"},
        {"action": "set_signal_hand", "hand": "both"},
        {},
    ])
    def test_invalid(self, engine, command):
        with pytest.raises(ValueError):
            engine.apply_command(command)

    def test_lock_released_after_errors(self, engine):
        with pytest.raises(ValueError):
            engine.apply_command({"action": "fly"})
        assert engine._lock.acquire(blocking=False)
        engine._lock.release()


class TestEngineBookkeeping:
    def test_stats(self, engine, pose):
        engine.process_frame(pose(left=CLOSED, hand_left=(-0.35, 0.0, 2.0)))
        engine.process_frame(pose(left=CLOSED, hand_left=(-0.1, 0.0, 2.0)))
        stats = engine.stats
        assert stats.total_frames == 2
        assert stats.total_gestures == 1
        assert stats.mode == "idle"
        assert {"matching", "mode", "control", "total"} <= set(stats.profiler_summary)

    def test_on_tick_callback(self, engine, pose):
        seen = []
        engine.on_tick(seen.append)
        engine.process_frame(pose())
        assert len(seen) == 1
        assert seen[0].to_dict()["type"] == "tick"

    def test_untracked_hand_issues_nothing(self, engine, desktop, pose):
        grab(engine, pose)
        calls = len(desktop.calls)
        frame = pose(right=CLOSED)
        del_frame = type(frame)(
            joints={j: p for j, p in frame.joints.items() if j.value != "hand_right"},
            hand_right=CLOSED,
        )
        result = engine.process_frame(del_frame)
        assert result.commands == []
        assert len(desktop.calls) == calls
