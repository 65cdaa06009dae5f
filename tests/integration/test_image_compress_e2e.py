from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from media_compressor.domain.enums import Operation, TaskStage, TaskStatus
from media_compressor.domain.task import TaskRecord
from media_compressor.media.ffmpeg import FfmpegRunner
from media_compressor.media.invoker import ProcessInvoker
from media_compressor.media.probe import MediaProbe
from media_compressor.media.ytdlp import YtDlpClient
from media_compressor.services.orchestrator import JobOrchestrator
from media_compressor.services.params import JobRequest
from media_compressor.store.memory import MemoryStatusStore

pytestmark = pytest.mark.skipif(
    shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
    reason="ffmpeg/ffprobe not installed",
)


class _RecordingStore(MemoryStatusStore):
    def __init__(self) -> None:
        super().__init__()
        self.history: list[TaskRecord] = []

    def set(self, record: TaskRecord, ttl_sec: int = 1800) -> None:
        self.history.append(record)
        super().set(record, ttl_sec)


def _make_jpeg(path: Path) -> None:
    subprocess.run(
        ["ffmpeg", "-y", "-v", "error", "-f", "lavfi", "-i", "testsrc=size=320x240:rate=1",
         "-frames:v", "1", str(path)],
        check=True,
    )


def test_image_compress_end_to_end(tmp_path: Path) -> None:
    src = tmp_path / "incoming.jpg"
    _make_jpeg(src)

    invoker = ProcessInvoker()
    store = _RecordingStore()
    orch = JobOrchestrator(
        store,
        probe=MediaProbe(invoker),
        ffmpeg=FfmpegRunner(invoker),
        fetcher=YtDlpClient(invoker),
        output_dir=tmp_path / "uploads",
        work_root=tmp_path / "work",
        max_workers=1,
    )
    req = JobRequest(
        operation=Operation.image_compress,
        source_path=src,
        source_name="photo.jpg",
        quality=80,
        width=0,
    )

    task_id = orch.submit(req)
    orch.shutdown(wait=True)

    final = orch.get_status(task_id)
    assert final is not None
    assert final.status == TaskStatus.completed
    assert final.error is None
    assert final.output_file == "compressed_photo.jpg"
    assert (tmp_path / "uploads" / "compressed_photo.jpg").stat().st_size > 0
    assert not (tmp_path / "work" / task_id).exists()

    statuses = [(r.status, r.stage) for r in store.history]
    assert statuses[0] == (TaskStatus.pending, TaskStage.init)
    assert statuses[1] == (TaskStatus.processing, TaskStage.init)
    assert (TaskStatus.processing, TaskStage.transcode) in statuses
    transcode = [r.percent for r in store.history if r.stage == TaskStage.transcode]
    assert transcode == sorted(transcode)
