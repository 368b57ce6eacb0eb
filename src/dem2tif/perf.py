"""Stage timings for ``convert``."""

from __future__ import annotations

import json
import os
import tracemalloc
from contextlib import contextmanager
from pathlib import Path
from time import perf_counter
from typing import Any, Iterator

ENV_PROFILE_DIR = "DEM2TIF_PROFILE_DIR"


class PerfTracker:
    """Seconds per pipeline stage plus the traced memory peak."""

    def __init__(self, *, enabled: bool, track_memory: bool = True) -> None:
        self.enabled = enabled
        self.track_memory = track_memory
        self._stages: dict[str, float] = {}
        self._started_at: float | None = None
        self._elapsed: float | None = None
        self._peak_mb: float | None = None
        self._owns_tracing = False

    def start(self) -> None:
        if not self.enabled:
            return
        self._started_at = perf_counter()
        if self.track_memory and not tracemalloc.is_tracing():
            tracemalloc.start()
            self._owns_tracing = True

    def stop(self) -> None:
        if not self.enabled or self._started_at is None or self._elapsed is not None:
            return
        self._elapsed = max(0.0, perf_counter() - self._started_at)
        if self.track_memory and tracemalloc.is_tracing():
            self._peak_mb = tracemalloc.get_traced_memory()[1] / (1024 * 1024)
            if self._owns_tracing:
                tracemalloc.stop()

    @contextmanager
    def span(self, stage: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return
        began = perf_counter()
        try:
            yield
        finally:
            self._stages[stage] = self._stages.get(stage, 0.0) + perf_counter() - began

    def summary(self) -> dict[str, Any]:
        """Metrics document written by ``--metrics-json``; empty when disabled."""
        if not self.enabled:
            return {}
        summary: dict[str, Any] = {
            "total_seconds": round(self._elapsed or 0.0, 6),
            "spans": {stage: round(seconds, 6) for stage, seconds in self._stages.items()},
        }
        if self._peak_mb is not None:
            summary["peak_memory_mb"] = round(self._peak_mb, 3)
        return summary


def resolve_metrics_path(metrics_json: str | None) -> Path | None:
    """``--metrics-json`` wins; otherwise ``$DEM2TIF_PROFILE_DIR/convert_metrics.json``."""
    if metrics_json:
        return Path(metrics_json)
    profile_dir = os.environ.get(ENV_PROFILE_DIR)
    if profile_dir:
        return Path(profile_dir) / "convert_metrics.json"
    return None


def write_metrics(path: Path, summary: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
