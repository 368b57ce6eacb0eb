from __future__ import annotations

import json
from pathlib import Path

from dem2tif.perf import ENV_PROFILE_DIR, PerfTracker, resolve_metrics_path, write_metrics


def test_perf_tracker_disabled_returns_empty_summary() -> None:
    tracker = PerfTracker(enabled=False)
    tracker.start()
    with tracker.span("ingest"):
        pass
    tracker.stop()

    assert tracker.summary() == {}


def test_perf_tracker_records_spans() -> None:
    tracker = PerfTracker(enabled=True, track_memory=False)
    tracker.start()
    with tracker.span("ingest"):
        pass
    with tracker.span("encode"):
        pass
    tracker.stop()

    summary = tracker.summary()
    assert set(summary["spans"]) == {"ingest", "encode"}
    assert summary["total_seconds"] >= 0
    assert "peak_memory_mb" not in summary


def test_perf_tracker_tracks_memory() -> None:
    tracker = PerfTracker(enabled=True)
    tracker.start()
    buffer = bytearray(1024 * 1024)
    tracker.stop()

    assert len(buffer) == 1024 * 1024
    assert tracker.summary()["peak_memory_mb"] >= 0


def test_resolve_metrics_path_prefers_cli(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(ENV_PROFILE_DIR, str(tmp_path))

    assert resolve_metrics_path("explicit.json") == Path("explicit.json")
    assert resolve_metrics_path(None) == tmp_path / "convert_metrics.json"


def test_resolve_metrics_path_none_without_env() -> None:
    assert resolve_metrics_path(None) is None


def test_write_metrics_creates_parent(tmp_path) -> None:
    path = tmp_path / "nested" / "metrics.json"

    write_metrics(path, {"total_seconds": 1.5})

    assert json.loads(path.read_text(encoding="utf-8")) == {"total_seconds": 1.5}


def test_perf_tracker_accumulates_repeated_stage() -> None:
    tracker = PerfTracker(enabled=True, track_memory=False)
    tracker.start()
    for _ in range(3):
        with tracker.span("load"):
            pass
    tracker.stop()

    assert list(tracker.summary()["spans"]) == ["load"]


def test_perf_tracker_stop_without_start_is_ignored() -> None:
    tracker = PerfTracker(enabled=True, track_memory=False)
    tracker.stop()

    assert tracker.summary() == {"total_seconds": 0.0, "spans": {}}
