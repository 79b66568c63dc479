"""Prometheus text-format metrics for the posecontrol service.

Tracked metrics:
- posecontrol_gestures_total (counter, by gesture name)
- posecontrol_mode_transitions_total (counter, by target mode)
- posecontrol_desktop_commands_total (counter, by command)
- posecontrol_frames_total (counter)
- posecontrol_rejected_frames_total (counter)
- posecontrol_tick_latency_seconds (histogram)
- posecontrol_active_connections (gauge)
"""

from __future__ import annotations

import threading
import time
from collections import Counter


class _Histogram:
    """Cumulative-bucket histogram."""

    def __init__(self, buckets: list[float]):
        self.buckets = sorted(buckets)
        self.bucket_counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float):
        with self._lock:
            self.count += 1
            self.sum += value
            for i, b in enumerate(self.buckets):
                if value <= b:
                    self.bucket_counts[i] += 1
                    break

    def render(self, name: str, help_text: str) -> list[str]:
        lines = [
            f"# HELP {name} {help_text}",
            f"# TYPE {name} histogram",
        ]
        with self._lock:
            cumulative = 0
            for i, b in enumerate(self.buckets):
                cumulative += self.bucket_counts[i]
                lines.append(f'{name}_bucket{{le="{b}"}} {cumulative}')
            lines.append(f'{name}_bucket{{le="+Inf"}} {self.count}')
            lines.append(f"{name}_sum {self.sum:.6f}")
            lines.append(f"{name}_count {self.count}")
        return lines


def _counter(name: str, help_text: str, label: str, counts: Counter) -> list[str]:
    lines = [f"# HELP {name} {help_text}", f"# TYPE {name} counter"]
    for key, count in sorted(counts.items()):
        lines.append(f'{name}{{{label}="{key}"}} {count}')
    return lines


class MetricsCollector:
    """Collects engine and service counters."""

    def __init__(self):
        self._gesture_counts: Counter = Counter()
        self._mode_counts: Counter = Counter()
        self._command_counts: Counter = Counter()
        self._frames_total = 0
        self._rejected_total = 0
        self._active_connections = 0
        self._lock = threading.Lock()

        # 1ms .. 100ms; Kinect-class sensors tick at 30 Hz
        self._latency = _Histogram(
            [0.001, 0.002, 0.005, 0.010, 0.020, 0.033, 0.050, 0.100]
        )
        self._start_time = time.time()

    def record_gesture(self, name: str):
        with self._lock:
            self._gesture_counts[name] += 1

    def record_mode(self, mode: str):
        with self._lock:
            self._mode_counts[mode] += 1

    def record_command(self, name: str):
        with self._lock:
            self._command_counts[name] += 1

    def record_frame(self, latency_seconds: float):
        with self._lock:
            self._frames_total += 1
        self._latency.observe(latency_seconds)

    def record_rejected(self):
        with self._lock:
            self._rejected_total += 1

    def set_connections(self, count: int):
        self._active_connections = count

    def render(self) -> str:
        """Render all metrics in Prometheus text exposition format."""
        lines: list[str] = [
            "# HELP posecontrol_uptime_seconds Time since service start",
            "# TYPE posecontrol_uptime_seconds gauge",
            f"posecontrol_uptime_seconds {time.time() - self._start_time:.1f}",
            "",
        ]

        with self._lock:
            lines += _counter(
                "posecontrol_gestures_total", "Completed gestures by name",
                "gesture", self._gesture_counts,
            )
            lines.append("")
            lines += _counter(
                "posecontrol_mode_transitions_total", "Mode transitions by target mode",
                "mode", self._mode_counts,
            )
            lines.append("")
            lines += _counter(
                "posecontrol_desktop_commands_total", "Desktop commands issued",
                "command", self._command_counts,
            )
            lines.append("")
            frames, rejected = self._frames_total, self._rejected_total

        lines += self._latency.render(
            "posecontrol_tick_latency_seconds", "Frame tick latency in seconds",
        )
        lines.append("")

        lines += [
            "# HELP posecontrol_frames_total Frames processed",
            "# TYPE posecontrol_frames_total counter",
            f"posecontrol_frames_total {frames}",
            "",
            "# HELP posecontrol_rejected_frames_total Frames rejected as malformed",
            "# TYPE posecontrol_rejected_frames_total counter",
            f"posecontrol_rejected_frames_total {rejected}",
            "",
            "# HELP posecontrol_active_connections Current WebSocket connections",
            "# TYPE posecontrol_active_connections gauge",
            f"posecontrol_active_connections {self._active_connections}",
            "",
        ]
        return "\n".join(lines) + "\n"

    @property
    def gesture_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._gesture_counts)

    @property
    def frames_total(self) -> int:
        return self._frames_total
