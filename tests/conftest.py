"""Shared frame builders for posecontrol tests.

The base pose is a person standing two metres from the sensor with both
arms hanging: hands below the elbows, above the hips, between nothing.
"""

import pytest

from posecontrol.desktop import RecordingDesktop
from posecontrol.frame import HandState, Joint, PoseFrame

BASE_POSE = {
    Joint.HEAD: (0.0, 0.6, 2.0),
    Joint.NECK: (0.0, 0.45, 2.0),
    Joint.SPINE_SHOULDER: (0.0, 0.4, 2.0),
    Joint.SPINE_MID: (0.0, 0.1, 2.0),
    Joint.SPINE_BASE: (0.0, -0.25, 2.0),
    Joint.SHOULDER_LEFT: (-0.2, 0.4, 2.0),
    Joint.SHOULDER_RIGHT: (0.2, 0.4, 2.0),
    Joint.ELBOW_LEFT: (-0.25, 0.15, 2.0),
    Joint.ELBOW_RIGHT: (0.25, 0.15, 2.0),
    Joint.HAND_LEFT: (-0.25, -0.1, 2.0),
    Joint.HAND_RIGHT: (0.25, -0.1, 2.0),
    Joint.HIP_LEFT: (-0.1, -0.3, 2.0),
    Joint.HIP_RIGHT: (0.1, -0.3, 2.0),
}


def build_pose(left=HandState.UNKNOWN, right=HandState.UNKNOWN, timestamp=0.0, **joints):
    """Base pose with selected joints moved, e.g. ``hand_right=(0, 0.8, 2)``."""
    positions = dict(BASE_POSE)
    for name, pos in joints.items():
        positions[Joint(name)] = pos
    return PoseFrame(joints=positions, hand_left=left, hand_right=right, timestamp=timestamp)


@pytest.fixture
def pose():
    return build_pose


@pytest.fixture
def desktop():
    return RecordingDesktop()
