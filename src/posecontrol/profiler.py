"""Per-tick timing for the interaction engine.

Stages are named blocks of one tick (matching, mode, actions, control and
the enclosing total). Each keeps a rolling window of durations; the status
endpoint reports them. A sensor delivers about 30 frames per second, so a
``total`` slower than the frame period means frames queue up behind the
engine; those ticks are counted and logged.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Iterator

import numpy as np

logger = logging.getLogger("posecontrol.profiler")

FRAME_BUDGET_MS = 1000.0 / 30.0


@dataclass
class StageStats:
    name: str
    avg_ms: float
    min_ms: float
    max_ms: float
    p95_ms: float
    call_count: int

    def to_dict(self) -> dict:
        data = {k: round(v, 3) for k, v in asdict(self).items() if k.endswith("_ms")}
        data["calls"] = self.call_count
        return data


class PipelineProfiler:
    """Rolling stage timings for frame ticks.

    Usage:
        profiler = PipelineProfiler()
        with profiler.stage("matching"):
            events = recognizer.update(frame, context)
        profiler.summary()

    Args:
        window_size: Durations kept per stage.
        budget_ms: Limit for the ``total`` stage; slower ticks are counted
            in ``over_budget``.
    """

    STAGES = ("matching", "mode", "actions", "control", "total")

    def __init__(self, window_size: int = 120, budget_ms: float = FRAME_BUDGET_MS):
        self.window_size = window_size
        self.budget_ms = budget_ms
        self.enabled = True
        self.over_budget = 0
        self._timings: dict[str, deque[float]] = {}
        self._counts: dict[str, int] = {}
        for name in self.STAGES:
            self._add(name)

    def _add(self, name: str):
        self._timings[name] = deque(maxlen=self.window_size)
        self._counts[name] = 0

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Time the enclosed block, also when it raises."""
        if not self.enabled:
            yield
            return
        if name not in self._timings:
            self._add(name)

        t0 = time.perf_counter()
        try:
            yield
        finally:
            self._record(name, (time.perf_counter() - t0) * 1000.0)

    def _record(self, name: str, elapsed_ms: float):
        self._timings[name].append(elapsed_ms)
        self._counts[name] += 1
        if name == "total" and elapsed_ms > self.budget_ms:
            self.over_budget += 1
            logger.debug("Tick took %.1f ms (budget %.1f ms)", elapsed_ms, self.budget_ms)

    def get_stage_stats(self, name: str) -> StageStats | None:
        timings = self._timings.get(name)
        if not timings:
            return None
        values = np.fromiter(timings, dtype=np.float64)
        return StageStats(
            name=name,
            avg_ms=float(values.mean()),
            min_ms=float(values.min()),
            max_ms=float(values.max()),
            p95_ms=float(np.percentile(values, 95)),
            call_count=self._counts[name],
        )

    def summary(self) -> dict[str, dict]:
        """Stats for every stage that has run since the last reset."""
        result = {}
        for name in self._timings:
            stats = self.get_stage_stats(name)
            if stats is not None:
                result[name] = stats.to_dict()
        return result

    def reset(self):
        for name in self._timings:
            self._timings[name].clear()
            self._counts[name] = 0
        self.over_budget = 0
