"""posecontrol - body-pose gesture recognition driving desktop control."""

__version__ = "0.1.0"

from posecontrol.frame import PoseFrame, Joint, HandState, Side, CameraIntrinsics
from posecontrol.context import SharedInteractionContext
from posecontrol.segments import (
    GestureSegment,
    SegmentResult,
    PositionalSegment,
    HandStateSegment,
    BaselineSegment,
    ThresholdSegment,
)
from posecontrol.matcher import GestureDefinition, GestureEvent, GestureMatcher, GestureRecognizer
from posecontrol.modes import Mode, ModeController, RepeatThrottle
from posecontrol.motion import MotionController, MotionState, ReleaseAction, Rect, classify_release
from posecontrol.desktop import Desktop, RecordingDesktop, XdotoolDesktop
from posecontrol.actions import ActionMapper, Action, ActionType
from posecontrol.config import EngineConfig, load_config
from posecontrol.profiler import PipelineProfiler
from posecontrol.metrics import MetricsCollector
from posecontrol.engine import InteractionEngine, TickResult
