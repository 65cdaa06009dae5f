from __future__ import annotations

import os
import threading
import time
from pathlib import Path
from types import SimpleNamespace

from media_compressor.jobs import cleanup_job


def _touch(path: Path, *, age_sec: float) -> Path:
    path.write_bytes(b"x")
    ts = time.time() - age_sec
    os.utime(path, (ts, ts))
    return path


def test_removes_only_old_files(tmp_path: Path) -> None:
    old = _touch(tmp_path / "compressed_old.mp4", age_sec=600)
    old_hidden = _touch(tmp_path / ".upload-1-old.jpg", age_sec=900)
    fresh = _touch(tmp_path / "fresh.gif", age_sec=10)
    nested = tmp_path / "subdir"
    nested.mkdir()
    os.utime(nested, (time.time() - 3600, time.time() - 3600))

    removed = cleanup_job.run(tmp_path, max_age_sec=300)

    assert removed == 2
    assert not old.exists()
    assert not old_hidden.exists()
    assert fresh.exists()
    assert nested.is_dir()


def test_missing_directory_is_noop(tmp_path: Path) -> None:
    assert cleanup_job.run(tmp_path / "nope", max_age_sec=1) == 0


def test_disabled_when_minutes_not_positive(tmp_path: Path) -> None:
    settings = SimpleNamespace(cleanup_minutes=0, cleanup_interval_sec=60, uploads_dir=str(tmp_path))
    assert cleanup_job.start_cleanup_thread(settings) is None


def test_run_forever_stops_on_event(monkeypatch, tmp_path: Path) -> None:
    calls: list[float] = []
    monkeypatch.setattr(cleanup_job, "run", lambda directory, max_age_sec: calls.append(max_age_sec))

    stop = threading.Event()
    worker = threading.Thread(target=cleanup_job.run_forever, args=(tmp_path, 120, 0.01, stop))
    worker.start()
    deadline = time.time() + 5
    while not calls and time.time() < deadline:
        time.sleep(0.01)
    stop.set()
    worker.join(timeout=5)

    assert calls
    assert calls[0] == 120
    assert not worker.is_alive()
