"""posecontrol configuration: a YAML file mapped onto dataclasses.

Example ``posecontrol.yml``::

    signal_hand: right
    click_depth_ratio: 15
    motion:
      max_speed: 30
      decay_step: 0.01
    throttle:
      scroll_k: 10
      volume_k: 5
    mappings:
      - trigger: pause_play
        actions:
          - type: keyboard
            params: {keys: XF86AudioPlay}
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from posecontrol.frame import CameraIntrinsics, Side

logger = logging.getLogger("posecontrol.config")


def _known(cls, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    unknown = set(data) - names
    if unknown:
        logger.debug("Ignoring unknown %s keys: %s", cls.__name__, sorted(unknown))
    return {k: v for k, v in data.items() if k in names}


@dataclass
class MotionConfig:
    max_speed: float = 30.0
    decay_step: float = 0.01
    min_fling_distance: float = 5.0
    seek_divisor: float = 500.0
    release_threshold: float = 10.0
    horizontal_ratio: float = 0.5


@dataclass
class ThrottleConfig:
    scroll_k: int = 10
    volume_k: int = 5


@dataclass
class ProjectionConfig:
    """Depth-camera intrinsics used when frames carry no screen points."""
    fx: float = 365.5
    fy: float = 365.5
    cx: float = 256.0
    cy: float = 212.0

    def intrinsics(self) -> CameraIntrinsics:
        return CameraIntrinsics(fx=self.fx, fy=self.fy, cx=self.cx, cy=self.cy)


@dataclass
class EngineConfig:
    signal_hand: Side = Side.RIGHT
    # cursor mode clicks when the hand pushes in by more than arm / ratio
    click_depth_ratio: float = 15.0
    motion: MotionConfig = field(default_factory=MotionConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    projection: ProjectionConfig = field(default_factory=ProjectionConfig)
    mappings: Optional[list[dict]] = None  # None means the built-in mappings

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "signal_hand": self.signal_hand.value,
            "click_depth_ratio": self.click_depth_ratio,
            "motion": asdict(self.motion),
            "throttle": asdict(self.throttle),
            "projection": asdict(self.projection),
        }
        if self.mappings is not None:
            data["mappings"] = self.mappings
        return data

    @classmethod
    def from_dict(cls, data: dict) -> EngineConfig:
        data = _known(cls, data or {})
        config = cls()
        if "signal_hand" in data:
            config.signal_hand = parse_side(data["signal_hand"])
        if "click_depth_ratio" in data:
            ratio = float(data["click_depth_ratio"])
            if ratio <= 0:
                raise ValueError(f"click_depth_ratio must be positive, got {ratio}")
            config.click_depth_ratio = ratio
        if "motion" in data:
            config.motion = MotionConfig(**_known(MotionConfig, data["motion"] or {}))
        if "throttle" in data:
            config.throttle = ThrottleConfig(**_known(ThrottleConfig, data["throttle"] or {}))
        if "projection" in data:
            config.projection = ProjectionConfig(**_known(ProjectionConfig, data["projection"] or {}))
        if "mappings" in data:
            mappings = data["mappings"]
            if mappings is not None and not isinstance(mappings, list):
                raise ValueError("mappings must be a list")
            config.mappings = mappings
        return config


def parse_side(value: str | Side) -> Side:
    if isinstance(value, Side):
        return value
    try:
        return Side(str(value).lower())
    except ValueError:
        raise ValueError(f"Unknown hand {value!r}; expected 'left' or 'right'") from None


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load config from YAML; a missing path gives the defaults."""
    if path is None:
        return EngineConfig()
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    config = EngineConfig.from_dict(data)
    logger.info("Loaded config from %s", path)
    return config


def save_config(config: EngineConfig, path: str | Path):
    with open(path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
