"""
Фоновая job очистки каталога загрузок/результатов.

Назначение:
- периодически удалять файлы старше CLEANUP_MINUTES
- CLEANUP_MINUTES <= 0 отключает очистку

С задачами не синхронизируется: порог должен быть больше реальной
длительности задачи.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path

from media_compressor.common.config import Settings, get_settings
from media_compressor.common.logging import get_project_logger
from media_compressor.common.metrics import record_cleanup_removed

log = get_project_logger()


def run(directory: str | Path, max_age_sec: float, *, now: float | None = None) -> int:
    root = Path(directory)
    if not root.is_dir():
        return 0

    cutoff = (time.time() if now is None else now) - max_age_sec
    removed = 0
    for path in root.iterdir():
        try:
            if not path.is_file() or path.stat().st_mtime >= cutoff:
                continue
            path.unlink()
            removed += 1
        except FileNotFoundError:
            # файл успели забрать/удалить параллельно
            continue
        except OSError as e:
            log.warning(
                "cleanup_remove_failed",
                extra={"payload": {"path": str(path), "error": str(e)[:200]}},
            )

    if removed:
        log.info("cleanup_removed", extra={"payload": {"dir": str(root), "count": removed}})
    record_cleanup_removed(removed)
    return removed


def run_forever(
    directory: str | Path,
    max_age_sec: float,
    interval_sec: float,
    stop_event: threading.Event,
) -> None:
    log.info(
        "cleanup_job_started",
        extra={"payload": {"dir": str(directory), "max_age_sec": max_age_sec}},
    )
    while not stop_event.wait(interval_sec):
        try:
            run(directory, max_age_sec)
        except Exception as e:
            log.error("cleanup_job_error", extra={"payload": {"err": str(e)[:200]}})
    log.info("cleanup_job_stopped")


def start_cleanup_thread(settings: Settings | None = None) -> threading.Event | None:
    """
    Запускает reaper в daemon-потоке. Возвращает событие остановки
    или None, если очистка отключена.
    """
    s = settings or get_settings()
    if s.cleanup_minutes <= 0:
        log.info("cleanup_job_disabled")
        return None

    stop_event = threading.Event()
    thread = threading.Thread(
        target=run_forever,
        args=(s.uploads_dir, s.cleanup_minutes * 60, max(1, s.cleanup_interval_sec), stop_event),
        name="uploads-cleanup",
        daemon=True,
    )
    thread.start()
    return stop_event
