"""Multi-step gesture matching.

Each gesture is an ordered list of segments. A matcher walks the list one
frame at a time: the awaited segment either succeeds (advance, or complete
on the last step) or fails (back to the start, carried measurements
dropped). There is no grace period and no timeout; a single bad frame
discards an attempt in progress.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from posecontrol.context import SharedInteractionContext
from posecontrol.frame import PoseFrame, Side
from posecontrol.segments import GestureSegment, SegmentResult

logger = logging.getLogger("posecontrol.matcher")


@dataclass(frozen=True)
class GestureDefinition:
    """A named, fixed sequence of segments."""
    name: str
    segments: tuple[GestureSegment, ...]
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "segments", tuple(self.segments))
        if not self.segments:
            raise ValueError(f"Gesture {self.name!r} needs at least one segment")

    def __len__(self) -> int:
        return len(self.segments)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "segments": [s.describe() for s in self.segments],
        }


@dataclass
class GestureEvent:
    """Fired on the tick a gesture's last segment succeeds."""
    name: str
    hand: Optional[Side]  # hand recorded by the segments, if any
    measurements: dict = field(default_factory=dict)
    timestamp: float = 0.0


class GestureMatcher:
    """Tracks progress through one gesture definition.

    ``cursor`` is the index of the segment currently awaited; 0 means idle.
    """

    def __init__(self, definition: GestureDefinition):
        self.definition = definition
        self.cursor = 0
        self.measurements: dict = {}

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def in_progress(self) -> bool:
        return self.cursor > 0

    def update(
        self, frame: PoseFrame, context: SharedInteractionContext
    ) -> Optional[GestureEvent]:
        """Evaluate the awaited segment against ``frame``.

        Returns:
            A GestureEvent when the final segment succeeded, else None.
        """
        segment = self.definition.segments[self.cursor]
        result = segment.evaluate(frame, context, self.measurements)

        if result is SegmentResult.FAILED:
            if self.cursor:
                logger.debug("%s: reset at segment %d", self.name, self.cursor)
            self.reset()
            return None

        if self.cursor == len(self.definition) - 1:
            event = GestureEvent(
                name=self.name,
                hand=self.measurements.get("hand"),
                measurements=dict(self.measurements),
                timestamp=frame.timestamp,
            )
            self.reset()
            return event

        self.cursor += 1
        return None

    def reset(self):
        self.cursor = 0
        self.measurements.clear()


class GestureRecognizer:
    """Runs one independent matcher per registered gesture.

    Matchers share nothing but the SharedInteractionContext passed in.
    """

    def __init__(self):
        self._matchers: list[GestureMatcher] = []

    def register(self, definition: GestureDefinition):
        """Add a gesture to watch for."""
        self._matchers.append(GestureMatcher(definition))

    def update(
        self, frame: PoseFrame, context: SharedInteractionContext
    ) -> list[GestureEvent]:
        """Feed one frame to every matcher.

        Returns:
            Completion events in registration order (usually 0 or 1).
        """
        events = []
        for matcher in self._matchers:
            event = matcher.update(frame, context)
            if event is not None:
                logger.debug("Recognized %s (hand=%s)", event.name, event.hand)
                events.append(event)
        return events

    def reset(self):
        for matcher in self._matchers:
            matcher.reset()

    def matcher(self, name: str) -> Optional[GestureMatcher]:
        for m in self._matchers:
            if m.name == name:
                return m
        return None

    @property
    def definitions(self) -> list[GestureDefinition]:
        return [m.definition for m in self._matchers]

    @classmethod
    def with_defaults(cls) -> GestureRecognizer:
        """Create a recognizer with every built-in gesture registered."""
        from posecontrol.library import default_gestures

        recognizer = cls()
        for definition in default_gestures():
            recognizer.register(definition)
        return recognizer

    def __len__(self) -> int:
        return len(self._matchers)

    def __iter__(self):
        return iter(self._matchers)
