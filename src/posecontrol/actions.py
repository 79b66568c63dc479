"""Gesture-to-action mapping for discrete gestures.

Maps completed gestures (knock, slap, pause_play, ...) to actions:
- Keyboard shortcuts (through the Desktop backend)
- Shell commands
- Log lines

Configuration via YAML, either a standalone file or the ``mappings``
section of the engine config.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml

from posecontrol.desktop import Desktop

logger = logging.getLogger("posecontrol.actions")


class ActionType(Enum):
    KEYBOARD = "keyboard"
    SHELL = "shell"
    LOG = "log"


@dataclass
class Action:
    """A single action to execute when a gesture completes."""
    type: ActionType
    params: dict[str, Any] = field(default_factory=dict)
    cooldown: float = 0.0  # minimum seconds between triggers
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "params": self.params,
            "cooldown": self.cooldown,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Action:
        return cls(
            type=ActionType(data["type"]),
            params=data.get("params", {}),
            cooldown=data.get("cooldown", 0.0),
            description=data.get("description", ""),
        )


@dataclass
class GestureMapping:
    """Maps a gesture name to one or more actions."""
    trigger: str
    actions: list[Action]
    enabled: bool = True

    def to_dict(self) -> dict:
        return {
            "trigger": self.trigger,
            "enabled": self.enabled,
            "actions": [a.to_dict() for a in self.actions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> GestureMapping:
        return cls(
            trigger=data["trigger"],
            actions=[Action.from_dict(a) for a in data.get("actions", [])],
            enabled=data.get("enabled", True),
        )


class ActionExecutor:
    """Executes actions triggered by gesture events.

    Runs inside the frame tick, so everything here is synchronous and
    bounded by a timeout.
    """

    def __init__(self, desktop: Optional[Desktop] = None):
        self.desktop = desktop
        self._last_triggered: dict[int, float] = {}

    def execute(self, action: Action, context: dict | None = None, now: Optional[float] = None) -> bool:
        """Execute a single action. Returns True on success."""
        now = now if now is not None else time.monotonic()
        key = id(action)
        if action.cooldown > 0:
            last = self._last_triggered.get(key)
            if last is not None and now - last < action.cooldown:
                return False
        self._last_triggered[key] = now

        try:
            if action.type == ActionType.KEYBOARD:
                return self._exec_keyboard(action.params)
            elif action.type == ActionType.SHELL:
                return self._exec_shell(action.params)
            elif action.type == ActionType.LOG:
                logger.info(
                    "Action LOG: %s (context: %s)",
                    action.params.get("message", "gesture triggered"),
                    context,
                )
                return True
        except Exception as e:
            logger.error("Action %s failed: %s", action.type.value, e)
            return False

        return False

    def _exec_keyboard(self, params: dict) -> bool:
        keys = params.get("keys", "")
        if not keys:
            return False
        if self.desktop is None:
            logger.warning("No desktop backend for keyboard action %s", keys)
            return False
        return self.desktop.send_key(keys)

    def _exec_shell(self, params: dict) -> bool:
        command = params.get("command", "")
        if not command:
            return False

        timeout = params.get("timeout", 5)
        try:
            proc = subprocess.run(
                command, shell=True, capture_output=True, timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning("Shell command timed out: %s", command)
            return False
        logger.debug("Shell [%s] -> rc=%d", command, proc.returncode)
        return proc.returncode == 0


class ActionMapper:
    """Manages gesture-to-action mappings and dispatches completions.

    Load mappings from YAML:
        mapper = ActionMapper.from_yaml("actions.yml")

    Dispatch on completion:
        mapper.on_gesture("pause_play")
    """

    def __init__(self, desktop: Optional[Desktop] = None):
        self._mappings: dict[str, GestureMapping] = {}
        self._executor = ActionExecutor(desktop)

    @property
    def desktop(self) -> Optional[Desktop]:
        return self._executor.desktop

    @desktop.setter
    def desktop(self, value: Optional[Desktop]):
        self._executor.desktop = value

    def add_mapping(self, mapping: GestureMapping):
        """Register a gesture-to-action mapping."""
        self._mappings[mapping.trigger] = mapping

    def on_gesture(self, gesture: str, context: dict | None = None) -> list[bool]:
        """Dispatch actions for a completed gesture. Returns list of success bools."""
        mapping = self._mappings.get(gesture)
        if not mapping or not mapping.enabled:
            return []

        ctx = {"gesture": gesture, **(context or {})}
        return [self._executor.execute(action, ctx) for action in mapping.actions]

    @classmethod
    def from_entries(cls, entries: list[dict], desktop: Optional[Desktop] = None) -> ActionMapper:
        mapper = cls(desktop)
        for entry in entries:
            mapper.add_mapping(GestureMapping.from_dict(entry))
        return mapper

    @classmethod
    def from_yaml(cls, path: str | Path, desktop: Optional[Desktop] = None) -> ActionMapper:
        """Load mappings from a YAML config file."""
        with open(path) as f:
            config = yaml.safe_load(f) or {}
        return cls.from_entries(config.get("mappings", []), desktop)

    def to_entries(self) -> list[dict]:
        return [m.to_dict() for m in self._mappings.values()]

    def to_yaml(self, path: str | Path):
        """Save current mappings to YAML."""
        with open(path, "w") as f:
            yaml.dump({"mappings": self.to_entries()}, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def with_defaults(cls, desktop: Optional[Desktop] = None) -> ActionMapper:
        """Mappings for the built-in discrete gestures."""
        return cls.from_entries(default_mapping_entries(), desktop)

    @property
    def triggers(self) -> list[str]:
        return list(self._mappings.keys())


def default_mapping_entries() -> list[dict]:
    def keys(trigger: str, combo: str, description: str) -> dict:
        return {
            "trigger": trigger,
            "actions": [{
                "type": "keyboard",
                "params": {"keys": combo},
                "cooldown": 1.0,
                "description": description,
            }],
        }

    def log(trigger: str, message: str) -> dict:
        return {
            "trigger": trigger,
            "actions": [{"type": "log", "params": {"message": message}}],
        }

    return [
        keys("pause_play", "XF86AudioPlay", "Toggle media playback"),
        keys("hide_all", "super+d", "Show desktop"),
        keys("show_all", "super+d", "Restore windows"),
        keys("slap", "XF86AudioNext", "Next track"),
        log("knock", "knock knock"),
        log("poke", "poke"),
        log("wave", "hello there"),
    ]
