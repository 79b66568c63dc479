"""Pose frames: one sampled instant of tracked body state.

A frame carries 3D joint positions in sensor camera space (metres, +y up,
+z away from the sensor) and the open/closed/pointing state of both hands.
Frames are produced once per sensor tick and never mutated.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

import numpy as np


class Joint(Enum):
    """Skeleton joints reported by the body sensor."""
    SPINE_BASE = "spine_base"
    SPINE_MID = "spine_mid"
    NECK = "neck"
    HEAD = "head"
    SHOULDER_LEFT = "shoulder_left"
    ELBOW_LEFT = "elbow_left"
    WRIST_LEFT = "wrist_left"
    HAND_LEFT = "hand_left"
    SHOULDER_RIGHT = "shoulder_right"
    ELBOW_RIGHT = "elbow_right"
    WRIST_RIGHT = "wrist_right"
    HAND_RIGHT = "hand_right"
    HIP_LEFT = "hip_left"
    KNEE_LEFT = "knee_left"
    ANKLE_LEFT = "ankle_left"
    FOOT_LEFT = "foot_left"
    HIP_RIGHT = "hip_right"
    KNEE_RIGHT = "knee_right"
    ANKLE_RIGHT = "ankle_right"
    FOOT_RIGHT = "foot_right"
    SPINE_SHOULDER = "spine_shoulder"
    HAND_TIP_LEFT = "hand_tip_left"
    THUMB_LEFT = "thumb_left"
    HAND_TIP_RIGHT = "hand_tip_right"
    THUMB_RIGHT = "thumb_right"


class HandState(Enum):
    UNKNOWN = "unknown"
    NOT_TRACKED = "not_tracked"
    OPEN = "open"
    CLOSED = "closed"
    POINTING = "pointing"  # lasso: index and middle finger extended


class Side(Enum):
    """Body side, used to pick a hand and its arm joints."""
    LEFT = "left"
    RIGHT = "right"

    @property
    def hand(self) -> Joint:
        return Joint.HAND_LEFT if self is Side.LEFT else Joint.HAND_RIGHT

    @property
    def elbow(self) -> Joint:
        return Joint.ELBOW_LEFT if self is Side.LEFT else Joint.ELBOW_RIGHT

    @property
    def shoulder(self) -> Joint:
        return Joint.SHOULDER_LEFT if self is Side.LEFT else Joint.SHOULDER_RIGHT

    @property
    def hip(self) -> Joint:
        return Joint.HIP_LEFT if self is Side.LEFT else Joint.HIP_RIGHT


# Axis indices into a position vector
X, Y, Z = 0, 1, 2

_UNTRACKED = np.full(3, np.nan, dtype=np.float64)
_UNTRACKED.setflags(write=False)

# Depth values below zero show up for inferred joints; clamp before projecting
_MIN_DEPTH = 0.1


@dataclass(frozen=True)
class CameraIntrinsics:
    """Pinhole model mapping camera-space points to depth-image pixels.

    Defaults are the depth camera of a Kinect v2 (512x424 image).
    """
    fx: float = 365.5
    fy: float = 365.5
    cx: float = 256.0
    cy: float = 212.0

    def project(self, position: np.ndarray) -> np.ndarray:
        x, y, z = position
        if z < 0:
            z = _MIN_DEPTH
        if z == 0 or math.isnan(z):
            return np.array([np.nan, np.nan])
        # Image y grows downward while camera y grows upward
        return np.array([self.cx + self.fx * x / z, self.cy - self.fy * y / z])


DEFAULT_INTRINSICS = CameraIntrinsics()


@dataclass(frozen=True, eq=False)
class PoseFrame:
    """Immutable body snapshot for one sensor tick.

    Missing joints read back as NaN positions, so every coordinate
    comparison involving them is false.
    """

    joints: Mapping[Joint, np.ndarray]
    hand_left: HandState = HandState.UNKNOWN
    hand_right: HandState = HandState.UNKNOWN
    screen: Mapping[Joint, np.ndarray] = field(default_factory=dict)
    timestamp: float = 0.0
    intrinsics: CameraIntrinsics = DEFAULT_INTRINSICS

    def __post_init__(self):
        joints = {}
        for joint, pos in self.joints.items():
            arr = np.array(pos, dtype=np.float64).reshape(3)
            arr.setflags(write=False)
            joints[joint] = arr
        screen = {}
        for joint, pt in self.screen.items():
            arr = np.array(pt, dtype=np.float64).reshape(2)
            arr.setflags(write=False)
            screen[joint] = arr
        object.__setattr__(self, "joints", MappingProxyType(joints))
        object.__setattr__(self, "screen", MappingProxyType(screen))

    def position(self, joint: Joint) -> np.ndarray:
        return self.joints.get(joint, _UNTRACKED)

    def coord(self, joint: Joint, axis: int) -> float:
        return float(self.position(joint)[axis])

    def distance(self, a: Joint, b: Joint) -> float:
        """3D Euclidean distance between two joints (NaN if either is missing)."""
        return float(np.linalg.norm(self.position(a) - self.position(b)))

    def hand_state(self, side: Side) -> HandState:
        return self.hand_left if side is Side.LEFT else self.hand_right

    def arm_length(self, side: Side) -> float:
        """Hand-to-elbow distance, used to normalize motion to the user's size."""
        return self.distance(side.hand, side.elbow)

    def screen_point(self, joint: Joint) -> np.ndarray:
        """2D depth-image point for a joint.

        Uses the sensor-supplied projection when the frame carries one,
        otherwise projects the camera-space position.
        """
        pt = self.screen.get(joint)
        if pt is not None:
            return pt
        return self.intrinsics.project(self.position(joint))

    def to_dict(self) -> dict:
        data = {
            "joints": {j.value: [float(v) for v in p] for j, p in self.joints.items()},
            "hand_left": self.hand_left.value,
            "hand_right": self.hand_right.value,
            "timestamp": self.timestamp,
        }
        if self.screen:
            data["screen"] = {j.value: [float(v) for v in p] for j, p in self.screen.items()}
        return data

    @classmethod
    def from_dict(
        cls, data: dict, intrinsics: Optional[CameraIntrinsics] = None
    ) -> PoseFrame:
        """Build a frame from its JSON wire form.

        Raises:
            ValueError: on unknown joint names or hand states.
        """
        joints = {Joint(name): pos for name, pos in data.get("joints", {}).items()}
        screen = {Joint(name): pt for name, pt in (data.get("screen") or {}).items()}
        return cls(
            joints=joints,
            hand_left=HandState(data.get("hand_left", "unknown")),
            hand_right=HandState(data.get("hand_right", "unknown")),
            screen=screen,
            timestamp=float(data.get("timestamp", 0.0)),
            intrinsics=intrinsics or DEFAULT_INTRINSICS,
        )
