"""OS desktop primitives: cursor, windows, scrolling and keys.

The engine talks to the desktop only through ``Desktop``. Two backends:

- XdotoolDesktop drives an X11 session through the ``xdotool`` binary.
- RecordingDesktop keeps an in-memory screen and logs every call; used
  for tests and ``--dry-run``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from posecontrol.motion import Rect

logger = logging.getLogger("posecontrol.desktop")


class Desktop(ABC):
    """Thin interface to the OS window system."""

    @property
    @abstractmethod
    def screen_size(self) -> tuple[int, int]:
        """(width, height) of the primary screen in pixels."""

    @property
    def work_area(self) -> Rect:
        """Usable screen area (excluding panels); the full screen by default."""
        w, h = self.screen_size
        return Rect(0, 0, w, h)

    @abstractmethod
    def foreground_window(self) -> Optional[Any]:
        ...

    @abstractmethod
    def window_rect(self, handle: Any) -> Optional[Rect]:
        ...

    @abstractmethod
    def move_window(self, handle: Any, x: int, y: int) -> bool:
        ...

    @abstractmethod
    def maximize(self, handle: Any) -> bool:
        ...

    @abstractmethod
    def minimize(self, handle: Any) -> bool:
        ...

    @abstractmethod
    def move_cursor(self, dx: int, dy: int) -> bool:
        ...

    @abstractmethod
    def click(self) -> bool:
        ...

    @abstractmethod
    def scroll(self, lines: int) -> bool:
        """Scroll by whole lines; positive scrolls down."""

    @abstractmethod
    def send_key(self, keys: str) -> bool:
        """Send a key or chord in xdotool syntax, e.g. ``super+d``."""


@dataclass
class DesktopCall:
    name: str
    args: tuple = ()


@dataclass
class RecordingDesktop(Desktop):
    """In-memory desktop with a single foreground window."""

    width: int = 1920
    height: int = 1080
    window: Rect = field(default_factory=lambda: Rect(100, 100, 800, 600))
    cursor: tuple[int, int] = (960, 540)
    calls: list[DesktopCall] = field(default_factory=list)
    handle: Any = 1

    @property
    def screen_size(self) -> tuple[int, int]:
        return self.width, self.height

    def foreground_window(self):
        return self.handle

    def window_rect(self, handle):
        return self.window if handle == self.handle else None

    def move_window(self, handle, x, y):
        self.calls.append(DesktopCall("move_window", (handle, x, y)))
        if handle != self.handle:
            return False
        self.window = Rect(x, y, self.window.width, self.window.height)
        return True

    def maximize(self, handle):
        self.calls.append(DesktopCall("maximize", (handle,)))
        return True

    def minimize(self, handle):
        self.calls.append(DesktopCall("minimize", (handle,)))
        return True

    def move_cursor(self, dx, dy):
        self.calls.append(DesktopCall("move_cursor", (dx, dy)))
        self.cursor = (self.cursor[0] + dx, self.cursor[1] + dy)
        return True

    def click(self):
        self.calls.append(DesktopCall("click"))
        return True

    def scroll(self, lines):
        self.calls.append(DesktopCall("scroll", (lines,)))
        return True

    def send_key(self, keys):
        self.calls.append(DesktopCall("send_key", (keys,)))
        return True

    def calls_named(self, name: str) -> list[DesktopCall]:
        return [c for c in self.calls if c.name == name]


class XdotoolDesktop(Desktop):
    """X11 desktop driven through ``xdotool`` subprocess calls.

    Failures are logged and reported as False; they never raise into
    the frame loop.
    """

    def __init__(self, binary: str = "xdotool", timeout: float = 2.0):
        self.binary = binary
        self.timeout = timeout
        if shutil.which(binary) is None:
            logger.warning("%s not found on PATH; desktop commands will fail", binary)
        self._screen: Optional[tuple[int, int]] = None

    def _run(self, *args: str) -> Optional[str]:
        try:
            proc = subprocess.run(
                [self.binary, *args],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error("xdotool %s failed: %s", args[0] if args else "", e)
            return None
        if proc.returncode != 0:
            logger.warning("xdotool %s failed: %s", args[0] if args else "", proc.stderr.strip())
            return None
        return proc.stdout

    @property
    def screen_size(self) -> tuple[int, int]:
        if self._screen is None:
            out = self._run("getdisplaygeometry")
            if out:
                w, h = out.split()
                self._screen = (int(w), int(h))
            else:
                return 1920, 1080
        return self._screen

    def foreground_window(self):
        out = self._run("getactivewindow")
        return out.strip() if out else None

    def window_rect(self, handle):
        out = self._run("getwindowgeometry", "--shell", str(handle))
        if not out:
            return None
        values = {}
        for line in out.splitlines():
            key, _, value = line.partition("=")
            values[key] = value
        try:
            return Rect(
                float(values["X"]), float(values["Y"]),
                float(values["WIDTH"]), float(values["HEIGHT"]),
            )
        except (KeyError, ValueError):
            logger.warning("Unparseable window geometry for %s: %r", handle, out)
            return None

    def move_window(self, handle, x, y):
        return self._run("windowmove", str(handle), str(int(x)), str(int(y))) is not None

    def maximize(self, handle):
        """Set the maximized state through _NET_WM_STATE (xdotool 3.20210804+)."""
        return self._run(
            "windowstate", "--add", "MAXIMIZED_VERT", "--add", "MAXIMIZED_HORZ", str(handle)
        ) is not None

    def minimize(self, handle):
        return self._run("windowminimize", str(handle)) is not None

    def move_cursor(self, dx, dy):
        return self._run("mousemove_relative", "--", str(int(dx)), str(int(dy))) is not None

    def click(self):
        return self._run("click", "1") is not None

    def scroll(self, lines):
        # X11 buttons 4/5 are wheel up/down
        button = "5" if lines > 0 else "4"
        return self._run("click", "--repeat", str(abs(lines)), button) is not None

    def send_key(self, keys):
        if not keys:
            return False
        return self._run("key", keys) is not None
