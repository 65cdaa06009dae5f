"""
Оркестратор фоновых задач конвертации.

Назначение:
- принять заявку, записать pending и вернуть task_id сразу
- провести задачу по машине состояний в пуле потоков:
  created → (fetching) → acquired → transforming → finalized | failed
- писать стадию/процент в хранилище статусов (best-effort)
- убрать рабочую директорию задачи в любом исходе

Единственный писатель записи задачи после submit() - поток этой задачи.
Ретраев нет: сбой внешней утилиты терминален для задачи.
"""

from __future__ import annotations

import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import BinaryIO

from media_compressor.common.config import Settings, get_settings
from media_compressor.common.errors import (
    ErrCode,
    ExternalToolError,
    FetchFailed,
    ProbeUnavailable,
    TaskPhaseError,
    TransformFailed,
)
from media_compressor.common.ids import new_task_id
from media_compressor.common.logging import get_project_logger
from media_compressor.common.metrics import (
    record_status_write_failure,
    record_task_result,
    track_stage_latency,
)
from media_compressor.domain.enums import JobState, Operation, TaskStage
from media_compressor.domain.state_machine import JobStateMachine
from media_compressor.domain.task import TaskRecord
from media_compressor.media.ffmpeg import FfmpegRunner, build_transform_args
from media_compressor.media.invoker import ProcessInvoker
from media_compressor.media.probe import MediaProbe
from media_compressor.media.progress import MonotonicPercent
from media_compressor.media.ytdlp import YtDlpClient
from media_compressor.store.base import DEFAULT_TTL_SEC, StatusStore

from .naming import output_name
from .params import JobRequest, clamp_to_source

log = get_project_logger()


class JobOrchestrator:
    def __init__(
        self,
        store: StatusStore,
        *,
        probe: MediaProbe,
        ffmpeg: FfmpegRunner,
        fetcher: YtDlpClient,
        output_dir: str | Path,
        work_root: str | Path,
        ttl_sec: int = DEFAULT_TTL_SEC,
        audio_bitrate: str = "128k",
        max_workers: int = 4,
    ) -> None:
        self.store = store
        self._probe = probe
        self._ffmpeg = ffmpeg
        self._fetcher = fetcher
        self._output_dir = Path(output_dir)
        self._work_root = Path(work_root)
        self._ttl_sec = ttl_sec
        self._audio_bitrate = audio_bitrate
        self._pool = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="media-job"
        )

    @classmethod
    def from_settings(cls, store: StatusStore, settings: Settings | None = None) -> JobOrchestrator:
        s = settings or get_settings()
        invoker = ProcessInvoker(diagnostics=s.tool_diagnostics)
        return cls(
            store,
            probe=MediaProbe(invoker, ffprobe_bin=s.ffprobe_bin, timeout_sec=s.probe_timeout_sec),
            ffmpeg=FfmpegRunner(invoker, ffmpeg_bin=s.ffmpeg_bin),
            fetcher=YtDlpClient(
                invoker,
                ytdlp_bin=s.ytdlp_bin,
                proxy=s.proxy,
                resolve_timeout_sec=s.fetch_resolve_timeout_sec,
                info_timeout_sec=s.info_timeout_sec,
            ),
            output_dir=s.uploads_dir,
            work_root=s.work_dir,
            ttl_sec=s.task_ttl_sec,
            audio_bitrate=s.audio_bitrate,
            max_workers=s.max_workers,
        )

    # ------------------------------------------------------------------
    # Публичный API
    # ------------------------------------------------------------------
    def stage_upload(self, chunks: BinaryIO, filename: str) -> tuple[str, Path]:
        """
        Сохраняет загрузку сразу в рабочую директорию будущей задачи.
        Каталог результатов (его чистит reaper и раздаёт /uploads) не затрагивается,
        поэтому задача может сколько угодно ждать свободного потока в пуле.
        """
        task_id = new_task_id()
        job_dir = self._work_root / task_id
        job_dir.mkdir(parents=True, exist_ok=True)
        target = job_dir / f".upload-{Path(filename).name}"
        try:
            with target.open("wb") as out:
                shutil.copyfileobj(chunks, out)
        except OSError:
            self.discard(task_id)
            raise
        return task_id, target

    def discard(self, task_id: str) -> None:
        """Убирает подготовленную, но не отправленную задачу."""
        shutil.rmtree(self._work_root / task_id, ignore_errors=True)

    def submit(self, request: JobRequest, *, task_id: str | None = None) -> str:
        task_id = task_id or new_task_id()
        self._write(TaskRecord.pending(task_id))
        self._pool.submit(self.run, task_id, request)
        log.info(
            "task_submitted",
            extra={
                "payload": {
                    "task_id": task_id,
                    "operation": request.operation.value,
                    "source": "url" if request.source_url else "file",
                }
            },
        )
        return task_id

    def get_status(self, task_id: str) -> TaskRecord | None:
        return self.store.get(task_id)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Одна задача целиком
    # ------------------------------------------------------------------
    def run(self, task_id: str, request: JobRequest) -> TaskRecord:
        existing = self.store.get(task_id)
        if existing is not None and existing.status.is_terminal:
            # терминальная запись неизменяема: повторный запуск не перезапишет её
            log.warning(
                "task_already_terminal",
                extra={"payload": {"task_id": task_id, "status": existing.status.value}},
            )
            return existing

        machine = JobStateMachine(task_id)
        job_dir = self._work_root / task_id
        self._write(TaskRecord.processing(task_id, TaskStage.init, 0))

        try:
            try:
                name = self._execute(machine, request, job_dir)
                machine.advance(JobState.finalized)
                final = TaskRecord.completed(task_id, name)
            except TaskPhaseError as e:
                machine.advance(JobState.failed)
                final = TaskRecord.failed(task_id, e.error_text())
            except Exception as e:
                # задача не должна зависнуть в processing
                log.exception("task_unexpected_error", extra={"payload": {"task_id": task_id}})
                machine.advance(JobState.failed)
                final = TaskRecord.failed(
                    task_id, TransformFailed(str(e)[:300] or type(e).__name__).error_text()
                )

            self._write(final)
        finally:
            shutil.rmtree(job_dir, ignore_errors=True)

        self._log_outcome(final, request.operation, machine)
        return final

    def _execute(self, machine: JobStateMachine, request: JobRequest, job_dir: Path) -> str:
        task_id = machine.task_id
        job_dir.mkdir(parents=True, exist_ok=True)

        if request.source_url:
            machine.advance(JobState.fetching)
            source = self._fetch(task_id, request.source_url, job_dir)
        else:
            source = self._acquire_local(request, job_dir)
        machine.advance(JobState.acquired)

        machine.advance(JobState.transforming)
        produced = self._transform(task_id, request, source, job_dir)
        return self._finalize(produced)

    # ------------------------------------------------------------------
    # Стадии
    # ------------------------------------------------------------------
    def _fetch(self, task_id: str, url: str, job_dir: Path) -> Path:
        self._write(TaskRecord.processing(task_id, TaskStage.download, 0))
        progress = MonotonicPercent()

        def on_percent(pct: int) -> None:
            self._write(TaskRecord.processing(task_id, TaskStage.download, progress.update(pct)))

        with track_stage_latency(TaskStage.download.value):
            try:
                source = self._fetcher.download(url, job_dir, on_percent=on_percent)
            except ExternalToolError as e:
                raise FetchFailed(e.message, {"url": url}) from e
            except (OSError, ValueError) as e:
                raise FetchFailed(str(e)[:300], {"url": url}) from e

        self._write(TaskRecord.processing(task_id, TaskStage.download, 100))
        return source

    def _acquire_local(self, request: JobRequest, job_dir: Path) -> Path:
        if request.source_path is None:
            raise TransformFailed("no input file")
        target = job_dir / (request.source_name or request.source_path.name)
        try:
            shutil.move(str(request.source_path), target)
        except OSError as e:
            raise TransformFailed(f"input unavailable: {e}") from e
        return target

    def _effective_size(self, request: JobRequest, source: Path) -> tuple[int, int]:
        width, fps = request.width, request.fps
        if not request.wants_clamping:
            return width, fps
        try:
            props = self._probe.video_properties(str(source))
        except ProbeUnavailable as e:
            log.info(
                "probe_unavailable",
                extra={"payload": {"what": "video_properties", "error": e.message}},
            )
            return width, fps

        clamped_width, clamped_fps = clamp_to_source(width, fps, props)
        if request.operation == Operation.image_compress:
            clamped_fps = fps
        if (clamped_width, clamped_fps) != (width, fps):
            log.info(
                "params_clamped",
                extra={
                    "payload": {
                        "requested": {"width": width, "fps": fps},
                        "effective": {"width": clamped_width, "fps": clamped_fps},
                        "source": {"width": props.width, "fps": props.fps},
                    }
                },
            )
        return clamped_width, clamped_fps

    def _duration(self, source: Path) -> float | None:
        try:
            return self._probe.duration(str(source))
        except ProbeUnavailable as e:
            log.info(
                "probe_unavailable",
                extra={"payload": {"what": "duration", "error": e.message}},
            )
            return None

    def _transform(self, task_id: str, request: JobRequest, source: Path, job_dir: Path) -> Path:
        self._write(TaskRecord.processing(task_id, TaskStage.transcode, 0))

        width, fps = self._effective_size(request, source)
        duration = self._duration(source)

        # отдельная поддиректория: у <stem>.mp3 из .mp3 имя совпало бы с входом
        out_dir = job_dir / "out"
        out_dir.mkdir(exist_ok=True)
        produced = out_dir / output_name(request.operation, source.name, request.image_format)

        args = build_transform_args(
            request.operation,
            str(source),
            str(produced),
            crf=request.crf,
            width=width,
            fps=fps,
            quality=request.quality,
            audio_bitrate=self._audio_bitrate,
        )
        progress = MonotonicPercent()

        def on_percent(pct: int) -> None:
            self._write(TaskRecord.processing(task_id, TaskStage.transcode, progress.update(pct)))

        with track_stage_latency(TaskStage.transcode.value):
            try:
                self._ffmpeg.run_with_progress(
                    args, duration_sec=duration, on_percent=on_percent, label=source.name
                )
            except ExternalToolError as e:
                raise TransformFailed(e.message) from e

        if not produced.is_file():
            raise TransformFailed("no output produced")
        self._write(TaskRecord.processing(task_id, TaskStage.transcode, 100))
        return produced

    def _finalize(self, produced: Path) -> str:
        with track_stage_latency(TaskStage.finalize.value):
            try:
                self._output_dir.mkdir(parents=True, exist_ok=True)
                shutil.move(str(produced), self._output_dir / produced.name)
            except OSError as e:
                raise TransformFailed(f"cannot store output: {e}") from e
        return produced.name

    # ------------------------------------------------------------------
    # Служебное
    # ------------------------------------------------------------------
    def _write(self, record: TaskRecord) -> None:
        """
        Best-effort запись статуса: потерянный тик прогресса не должен
        валить здоровую задачу.
        """
        try:
            self.store.set(record, self._ttl_sec)
        except Exception as e:
            record_status_write_failure()
            log.warning(
                "status_write_failed",
                extra={
                    "payload": {
                        "code": ErrCode.STORE_WRITE_FAILED,
                        "task_id": record.id,
                        "status": record.status.value,
                        "backend": getattr(self.store, "backend", "?"),
                        "error": str(e)[:200],
                    }
                },
            )

    def _log_outcome(self, final: TaskRecord, operation: Operation, machine: JobStateMachine) -> None:
        result = final.status.value
        record_task_result(operation=operation.value, result=result)
        payload = {
            "task_id": final.id,
            "operation": operation.value,
            "states": [s.value for s in machine.history],
        }
        if final.error:
            log.warning("task_failed", extra={"payload": {**payload, "error": final.error}})
        else:
            log.info("task_completed", extra={"payload": {**payload, "output_file": final.output_file}})
