"""Tests for the built-in gesture definitions."""

from posecontrol import library
from posecontrol.context import SharedInteractionContext
from posecontrol.frame import HandState, Side
from posecontrol.matcher import GestureMatcher

CLOSED = HandState.CLOSED
OPEN = HandState.OPEN
POINTING = HandState.POINTING


def run(definition, frames, context=None):
    """Feed frames to a fresh matcher; return the events that fired."""
    matcher = GestureMatcher(definition)
    ctx = context or SharedInteractionContext()
    return [e for e in (matcher.update(f, ctx) for f in frames) if e is not None]


class TestOverheadGrab:
    def test_window_drag_right_hand(self, pose):
        events = run(library.window_drag(), [
            pose(right=CLOSED, hand_right=(0.0, 0.8, 2.0)),
            pose(right=CLOSED, hand_right=(0.0, 0.5, 2.0)),
        ])
        assert len(events) == 1
        assert events[0].hand is Side.RIGHT

    def test_window_drag_left_hand(self, pose):
        events = run(library.window_drag(), [
            pose(left=CLOSED, hand_left=(0.05, 0.8, 2.0)),
            pose(left=CLOSED, hand_left=(0.05, 0.5, 2.0)),
        ])
        assert len(events) == 1
        assert events[0].hand is Side.LEFT

    def test_pull_must_use_same_hand(self, pose):
        events = run(library.window_drag(), [
            pose(left=CLOSED, hand_left=(0.05, 0.8, 2.0)),
            pose(right=CLOSED, hand_right=(0.0, 0.5, 2.0)),
        ])
        assert events == []

    def test_outside_shoulders_does_not_start(self, pose):
        events = run(library.window_drag(), [
            pose(right=CLOSED, hand_right=(0.3, 0.8, 2.0)),
            pose(right=CLOSED, hand_right=(0.0, 0.5, 2.0)),
        ])
        assert events == []

    def test_cursor_move_needs_pointing(self, pose):
        frames = [
            pose(right=POINTING, hand_right=(0.0, 0.8, 2.0)),
            pose(right=POINTING, hand_right=(0.0, 0.5, 2.0)),
        ]
        assert len(run(library.cursor_move(), frames)) == 1
        assert run(library.window_drag(), frames) == []


class TestModeGestures:
    def test_scroll_down_and_up(self, pose):
        high = pose(right=CLOSED, hand_right=(0.35, 0.5, 2.0))
        low = pose(right=CLOSED, hand_right=(0.35, 0.2, 2.0))
        assert len(run(library.scroll_down(), [high])) == 1
        assert run(library.scroll_down(), [low]) == []
        assert len(run(library.scroll_up(), [low])) == 1

    def test_volume_down_and_up(self, pose):
        high = pose(left=POINTING, hand_left=(-0.35, 0.5, 2.0))
        low = pose(left=POINTING, hand_left=(-0.35, 0.2, 2.0))
        assert len(run(library.volume_down(), [high])) == 1
        assert len(run(library.volume_up(), [low])) == 1
        assert run(library.volume_up(), [high]) == []

    def test_end_gestures(self, pose):
        ctx = SharedInteractionContext(active_hand=Side.LEFT)
        open_left = pose(left=OPEN)
        assert len(run(library.window_drag_end(), [open_left], ctx)) == 1
        assert len(run(library.cursor_end(), [open_left], ctx)) == 1
        assert len(run(library.volume_end(), [open_left])) == 1
        assert run(library.scroll_end(), [open_left]) == []


class TestStrikes:
    def test_knock(self, pose):
        events = run(library.knock(), [
            pose(right=CLOSED, hand_right=(0.15, 0.3, 1.8)),
            pose(right=CLOSED, hand_right=(0.15, 0.3, 1.6)),
            pose(right=CLOSED, hand_right=(0.15, 0.3, 2.0)),
        ])
        assert len(events) == 1
        assert events[0].measurements["baseline"] > 0

    def test_knock_without_retract(self, pose):
        events = run(library.knock(), [
            pose(right=CLOSED, hand_right=(0.15, 0.3, 1.8)),
            pose(right=CLOSED, hand_right=(0.15, 0.3, 1.6)),
            pose(right=CLOSED, hand_right=(0.15, 0.3, 1.6)),
        ])
        assert events == []

    def test_slap_uses_open_hand(self, pose):
        frames = [
            pose(right=OPEN, hand_right=(0.15, 0.3, 1.8)),
            pose(right=OPEN, hand_right=(0.15, 0.3, 1.6)),
        ]
        assert len(run(library.slap(), frames)) == 1
        assert run(library.poke(), frames) == []

    def test_signal_hand_switch(self, pose):
        frames = [
            pose(left=POINTING, hand_left=(-0.15, 0.3, 1.8)),
            pose(left=POINTING, hand_left=(-0.15, 0.3, 1.6)),
        ]
        assert run(library.poke(), frames) == []
        ctx = SharedInteractionContext(signal_hand=Side.LEFT)
        assert len(run(library.poke(), frames, ctx)) == 1


class TestDiscreteGestures:
    def test_wave(self, pose):
        out = pose(hand_right=(0.35, 0.3, 2.0))
        back = pose(hand_right=(0.15, 0.3, 2.0))
        assert len(run(library.wave(), [out, back] * 3)) == 1
        assert run(library.wave(), [out, back] * 2 + [out]) == []

    def test_pause_play(self, pose):
        events = run(library.pause_play(), [
            pose(left=CLOSED, hand_left=(-0.35, 0.0, 2.0)),
            pose(left=CLOSED, hand_left=(-0.1, 0.0, 2.0)),
        ])
        assert len(events) == 1

    def test_hide_all(self, pose):
        frame = pose(
            right=POINTING,
            hand_right=(0.25, 0.5, 2.0),
            hand_left=(-0.25, 0.5, 2.0),
        )
        assert len(run(library.hide_all(), [frame])) == 1
        assert run(library.hide_all(), [pose(right=POINTING, hand_right=(0.25, 0.5, 2.0))]) == []

    def test_show_all(self, pose):
        frame = pose(
            right=POINTING,
            hand_right=(0.25, -0.4, 2.0),
            hand_left=(-0.25, -0.4, 2.0),
        )
        assert len(run(library.show_all(), [frame])) == 1
        assert run(library.show_all(), [pose(right=POINTING)]) == []


def test_default_gestures_cover_mode_names():
    names = {d.name for d in library.default_gestures()}
    for name in (
        library.WINDOW_DRAG, library.WINDOW_DRAG_END, library.CURSOR_MOVE, library.CURSOR_END,
        library.SCROLL_UP, library.SCROLL_DOWN, library.SCROLL_END,
        library.VOLUME_UP, library.VOLUME_DOWN, library.VOLUME_END,
    ):
        assert name in names
