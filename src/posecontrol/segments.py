"""Gesture segments: single predicate steps of a multi-step gesture.

A segment looks at one frame plus two state bags and answers
SUCCEEDED or FAILED. Segments keep nothing between calls; anything a
later step needs goes into the per-instance ``measurements`` dict.

Three families:

- PositionalSegment: a conjunction of joint-coordinate comparisons,
  optionally with a required hand state.
- BaselineSegment / ThresholdSegment: record a hand-to-joint distance,
  then require it to grow or shrink by more than 1/12 of itself.
- HandStateSegment: the designated hand shows a given state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from posecontrol.context import SharedInteractionContext
from posecontrol.frame import HandState, Joint, PoseFrame, Side, X, Y, Z

# A strike must change the baseline distance by more than baseline / STRIKE_DIVISOR
STRIKE_DIVISOR = 12.0

_AXES = {"x": X, "y": Y, "z": Z}


class SegmentResult(Enum):
    FAILED = "failed"
    SUCCEEDED = "succeeded"


class HandRef(Enum):
    """Symbolic hand, resolved per frame against the context/measurements."""
    LEFT = "left"
    RIGHT = "right"
    SIGNAL = "signal"  # SharedInteractionContext.signal_hand
    ACTIVE = "active"  # SharedInteractionContext.active_hand
    CARRIED = "carried"  # measurements["hand"], set by an earlier segment
    EITHER = "either"  # try right, then left

    def resolve(
        self, context: SharedInteractionContext, measurements: dict
    ) -> list[Side]:
        if self is HandRef.LEFT:
            return [Side.LEFT]
        if self is HandRef.RIGHT:
            return [Side.RIGHT]
        if self is HandRef.SIGNAL:
            return [context.signal_hand]
        if self is HandRef.ACTIVE:
            return [context.active_hand]
        if self is HandRef.CARRIED:
            hand = measurements.get("hand")
            return [hand] if hand is not None else []
        return [Side.RIGHT, Side.LEFT]


class Limb(Enum):
    """Joint of the arm attached to a symbolic hand."""
    HAND = "hand"
    ELBOW = "elbow"
    SHOULDER = "shoulder"
    HIP = "hip"

    def joint(self, side: Side) -> Joint:
        return getattr(side, self.value)


JointRef = Union[Joint, Limb]


def _resolve_joint(ref: JointRef, side: Side) -> Joint:
    return ref.joint(side) if isinstance(ref, Limb) else ref


@dataclass(frozen=True)
class Comparison:
    """``joint.axis <op> reference.axis`` with op one of '<' or '>'.

    Either joint may be a Limb, meaning "that joint on the segment's hand".
    """
    joint: JointRef
    axis: str
    op: str
    reference: JointRef

    def __post_init__(self):
        if self.axis not in _AXES:
            raise ValueError(f"Unknown axis: {self.axis!r}")
        if self.op not in ("<", ">"):
            raise ValueError(f"Unknown comparison operator: {self.op!r}")

    def holds(self, frame: PoseFrame, side: Side) -> bool:
        axis = _AXES[self.axis]
        a = frame.coord(_resolve_joint(self.joint, side), axis)
        b = frame.coord(_resolve_joint(self.reference, side), axis)
        # NaN (untracked joint) compares false either way
        return a < b if self.op == "<" else a > b

    def describe(self) -> str:
        def name(ref: JointRef) -> str:
            return f"<{ref.value}>" if isinstance(ref, Limb) else ref.value
        return f"{name(self.joint)}.{self.axis} {self.op} {name(self.reference)}.{self.axis}"


def above(joint: JointRef, reference: JointRef) -> Comparison:
    return Comparison(joint, "y", ">", reference)


def below(joint: JointRef, reference: JointRef) -> Comparison:
    return Comparison(joint, "y", "<", reference)


def left_of(joint: JointRef, reference: JointRef) -> Comparison:
    return Comparison(joint, "x", "<", reference)


def right_of(joint: JointRef, reference: JointRef) -> Comparison:
    return Comparison(joint, "x", ">", reference)


class GestureSegment(ABC):
    """One step of a gesture definition."""

    @abstractmethod
    def evaluate(
        self,
        frame: PoseFrame,
        context: SharedInteractionContext,
        measurements: dict,
    ) -> SegmentResult:
        ...

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class PositionalSegment(GestureSegment):
    """Succeeds when every comparison holds for some candidate hand.

    With ``hand=HandRef.EITHER`` the right hand is tried first; the hand
    that matched is stored as ``measurements["hand"]`` so later segments
    of the same gesture can follow it.
    """

    comparisons: tuple[Comparison, ...]
    hand: HandRef = HandRef.RIGHT
    hand_state: Optional[HandState] = None

    def evaluate(self, frame, context, measurements) -> SegmentResult:
        for side in self.hand.resolve(context, measurements):
            if self._matches(frame, side):
                measurements["hand"] = side
                return SegmentResult.SUCCEEDED
        return SegmentResult.FAILED

    def _matches(self, frame: PoseFrame, side: Side) -> bool:
        if self.hand_state is not None and frame.hand_state(side) != self.hand_state:
            return False
        return all(c.holds(frame, side) for c in self.comparisons)

    def describe(self) -> str:
        parts = [c.describe() for c in self.comparisons]
        if self.hand_state is not None:
            parts.append(f"hand {self.hand_state.value}")
        return f"[{self.hand.value}] " + " and ".join(parts)


@dataclass(frozen=True)
class HandStateSegment(GestureSegment):
    """Succeeds iff the designated hand shows ``state``, wherever it is."""

    state: HandState
    hand: HandRef = HandRef.ACTIVE

    def evaluate(self, frame, context, measurements) -> SegmentResult:
        for side in self.hand.resolve(context, measurements):
            if frame.hand_state(side) == self.state:
                return SegmentResult.SUCCEEDED
        return SegmentResult.FAILED

    def describe(self) -> str:
        return f"{self.hand.value} hand {self.state.value}"


@dataclass(frozen=True)
class _StrikeGuard:
    """Shared guard for strike segments: signal hand above its elbow in a given state."""

    hand_state: HandState
    reference: Limb = Limb.SHOULDER
    key: str = "baseline"

    def distance(self, frame: PoseFrame, context: SharedInteractionContext) -> Optional[float]:
        side = context.signal_hand
        if not frame.coord(side.hand, Y) > frame.coord(side.elbow, Y):
            return None
        if frame.hand_state(side) != self.hand_state:
            return None
        return frame.distance(side.hand, self.reference.joint(side))


@dataclass(frozen=True)
class BaselineSegment(GestureSegment):
    """Records the signal-hand distance as this gesture instance's baseline."""

    guard: _StrikeGuard

    def evaluate(self, frame, context, measurements) -> SegmentResult:
        dist = self.guard.distance(frame, context)
        if dist is None:
            return SegmentResult.FAILED
        measurements[self.guard.key] = dist
        return SegmentResult.SUCCEEDED

    def describe(self) -> str:
        return (f"signal hand above elbow, {self.guard.hand_state.value}; "
                f"record hand-{self.guard.reference.value} distance")


@dataclass(frozen=True)
class ThresholdSegment(GestureSegment):
    """Succeeds when the distance moved past the baseline by more than B/12.

    ``direction=+1`` requires growth (outward strike), ``-1`` shrinkage
    (retraction). The comparison is strict. A zero baseline makes the
    threshold zero, so any change in the right direction passes.
    """

    guard: _StrikeGuard
    direction: int = 1

    def evaluate(self, frame, context, measurements) -> SegmentResult:
        dist = self.guard.distance(frame, context)
        if dist is None:
            return SegmentResult.FAILED
        baseline = measurements.get(self.guard.key, 0.0)
        if exceeds_threshold(baseline, dist, self.direction):
            return SegmentResult.SUCCEEDED
        return SegmentResult.FAILED

    def describe(self) -> str:
        word = "grows" if self.direction > 0 else "shrinks"
        return f"signal hand distance {word} by more than 1/12 of baseline"


def exceeds_threshold(baseline: float, current: float, direction: int) -> bool:
    """Strict relative-change test used by strike gestures."""
    delta = current - baseline
    limit = baseline / STRIKE_DIVISOR
    if direction > 0:
        return delta > limit
    return delta < -limit


def strike(hand_state: HandState, *directions: int, reference: Limb = Limb.SHOULDER) -> tuple[GestureSegment, ...]:
    """Build a baseline segment followed by one threshold segment per direction."""
    guard = _StrikeGuard(hand_state=hand_state, reference=reference)
    return (BaselineSegment(guard),) + tuple(ThresholdSegment(guard, d) for d in directions)
