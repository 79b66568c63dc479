"""Built-in gesture definitions.

Positions are in sensor camera space: +y is up and +x points toward the
user's right, so "between the shoulders" is
``shoulder_left.x < hand.x < shoulder_right.x``.
"""

from __future__ import annotations

from posecontrol.frame import HandState, Joint
from posecontrol.matcher import GestureDefinition
from posecontrol.segments import (
    HandRef,
    HandStateSegment,
    Limb,
    PositionalSegment,
    above,
    below,
    left_of,
    right_of,
    strike,
)

# Names shared with the mode controller
WINDOW_DRAG = "window_drag"
WINDOW_DRAG_END = "window_drag_end"
CURSOR_MOVE = "cursor_move"
CURSOR_END = "cursor_end"
SCROLL_UP = "scroll_up"
SCROLL_DOWN = "scroll_down"
SCROLL_END = "scroll_end"
VOLUME_UP = "volume_up"
VOLUME_DOWN = "volume_down"
VOLUME_END = "volume_end"


def _overhead_grab(state: HandState) -> tuple[PositionalSegment, PositionalSegment]:
    """Raise a hand over the head between the shoulders, then pull it down."""
    between = (
        left_of(Limb.HAND, Joint.SHOULDER_RIGHT),
        right_of(Limb.HAND, Joint.SHOULDER_LEFT),
    )
    start = PositionalSegment(
        comparisons=(above(Limb.HAND, Joint.HEAD),) + between,
        hand=HandRef.EITHER,
        hand_state=state,
    )
    pull = PositionalSegment(
        comparisons=(below(Limb.HAND, Joint.HEAD),) + between,
        hand=HandRef.CARRIED,
        hand_state=state,
    )
    return start, pull


def wave() -> GestureDefinition:
    out = PositionalSegment(
        comparisons=(above(Limb.HAND, Limb.ELBOW), right_of(Limb.HAND, Limb.ELBOW)),
    )
    back = PositionalSegment(
        comparisons=(above(Limb.HAND, Limb.ELBOW), left_of(Limb.HAND, Limb.ELBOW)),
    )
    return GestureDefinition(
        name="wave",
        segments=(out, back) * 3,
        description="Right hand swings across its elbow three times",
    )


def window_drag() -> GestureDefinition:
    return GestureDefinition(
        name=WINDOW_DRAG,
        segments=_overhead_grab(HandState.CLOSED),
        description="Closed fist over the head, pulled down: grab the foreground window",
    )


def window_drag_end() -> GestureDefinition:
    return GestureDefinition(
        name=WINDOW_DRAG_END,
        segments=(HandStateSegment(HandState.OPEN, HandRef.ACTIVE),),
        description="Open the dragging hand to release the window",
    )


def cursor_move() -> GestureDefinition:
    return GestureDefinition(
        name=CURSOR_MOVE,
        segments=_overhead_grab(HandState.POINTING),
        description="Pointing hand over the head, pulled down: take the cursor",
    )


def cursor_end() -> GestureDefinition:
    return GestureDefinition(
        name=CURSOR_END,
        segments=(HandStateSegment(HandState.OPEN, HandRef.ACTIVE),),
        description="Open the cursor hand to release the cursor",
    )


def scroll_down() -> GestureDefinition:
    return GestureDefinition(
        name=SCROLL_DOWN,
        segments=(PositionalSegment(
            comparisons=(above(Limb.HAND, Limb.SHOULDER), right_of(Limb.HAND, Limb.SHOULDER)),
            hand=HandRef.RIGHT,
            hand_state=HandState.CLOSED,
        ),),
        description="Closed right hand raised out to the side",
    )


def scroll_up() -> GestureDefinition:
    return GestureDefinition(
        name=SCROLL_UP,
        segments=(PositionalSegment(
            comparisons=(below(Limb.HAND, Limb.SHOULDER), right_of(Limb.HAND, Limb.SHOULDER)),
            hand=HandRef.RIGHT,
            hand_state=HandState.CLOSED,
        ),),
        description="Closed right hand lowered out to the side",
    )


def scroll_end() -> GestureDefinition:
    return GestureDefinition(
        name=SCROLL_END,
        segments=(HandStateSegment(HandState.OPEN, HandRef.RIGHT),),
        description="Open the right hand to stop scrolling",
    )


def volume_down() -> GestureDefinition:
    return GestureDefinition(
        name=VOLUME_DOWN,
        segments=(PositionalSegment(
            comparisons=(above(Limb.HAND, Limb.SHOULDER), left_of(Limb.HAND, Limb.SHOULDER)),
            hand=HandRef.LEFT,
            hand_state=HandState.POINTING,
        ),),
        description="Pointing left hand raised out to the side",
    )


def volume_up() -> GestureDefinition:
    return GestureDefinition(
        name=VOLUME_UP,
        segments=(PositionalSegment(
            comparisons=(below(Limb.HAND, Limb.SHOULDER), left_of(Limb.HAND, Limb.SHOULDER)),
            hand=HandRef.LEFT,
            hand_state=HandState.POINTING,
        ),),
        description="Pointing left hand lowered out to the side",
    )


def volume_end() -> GestureDefinition:
    return GestureDefinition(
        name=VOLUME_END,
        segments=(HandStateSegment(HandState.OPEN, HandRef.LEFT),),
        description="Open the left hand to stop changing volume",
    )


def knock() -> GestureDefinition:
    return GestureDefinition(
        name="knock",
        segments=strike(HandState.CLOSED, +1, -1),
        description="Closed signal hand pushes out and pulls back",
    )


def slap() -> GestureDefinition:
    return GestureDefinition(
        name="slap",
        segments=strike(HandState.OPEN, +1),
        description="Open signal hand pushes out",
    )


def poke() -> GestureDefinition:
    return GestureDefinition(
        name="poke",
        segments=strike(HandState.POINTING, +1),
        description="Pointing signal hand pushes out",
    )


def pause_play() -> GestureDefinition:
    outside = PositionalSegment(
        comparisons=(left_of(Limb.HAND, Limb.SHOULDER),),
        hand=HandRef.LEFT,
        hand_state=HandState.CLOSED,
    )
    inside = PositionalSegment(
        comparisons=(right_of(Limb.HAND, Limb.SHOULDER),),
        hand=HandRef.LEFT,
        hand_state=HandState.CLOSED,
    )
    return GestureDefinition(
        name="pause_play",
        segments=(outside, inside),
        description="Closed left hand sweeps in across the left shoulder",
    )


def hide_all() -> GestureDefinition:
    return GestureDefinition(
        name="hide_all",
        segments=(PositionalSegment(
            comparisons=(
                above(Joint.HAND_RIGHT, Joint.SHOULDER_RIGHT),
                above(Joint.HAND_LEFT, Joint.SHOULDER_LEFT),
            ),
            hand=HandRef.RIGHT,
            hand_state=HandState.POINTING,
        ),),
        description="Both hands above the shoulders, right hand pointing",
    )


def show_all() -> GestureDefinition:
    return GestureDefinition(
        name="show_all",
        segments=(PositionalSegment(
            comparisons=(
                below(Joint.HAND_RIGHT, Joint.HIP_RIGHT),
                below(Joint.HAND_LEFT, Joint.HIP_LEFT),
            ),
            hand=HandRef.RIGHT,
            hand_state=HandState.POINTING,
        ),),
        description="Both hands below the hips, right hand pointing",
    )


def default_gestures() -> list[GestureDefinition]:
    """Every built-in gesture, in evaluation order."""
    return [
        wave(),
        window_drag(),
        window_drag_end(),
        cursor_move(),
        cursor_end(),
        scroll_up(),
        scroll_down(),
        scroll_end(),
        volume_up(),
        volume_down(),
        volume_end(),
        knock(),
        slap(),
        poke(),
        pause_play(),
        hide_all(),
        show_all(),
    ]
