"""
Worker Cleanup.

Назначение:
- периодически запускать cleanup_job вне API-процесса
- удалять из каталога загрузок файлы старше CLEANUP_MINUTES
"""

from __future__ import annotations

import time

from media_compressor.common.config import get_settings
from media_compressor.common.logging import get_project_logger, setup_logging
from media_compressor.jobs.cleanup_job import run as run_cleanup

log = get_project_logger()


def main() -> None:
    setup_logging()
    settings = get_settings()
    interval_sec = max(1, int(settings.cleanup_interval_sec))
    max_age_sec = int(settings.cleanup_minutes) * 60

    log.info(
        "worker_cleanup_started",
        extra={
            "payload": {
                "enabled": max_age_sec > 0,
                "dir": settings.uploads_dir,
                "interval_sec": interval_sec,
                "max_age_sec": max_age_sec,
            }
        },
    )
    if max_age_sec <= 0:
        return

    while True:
        try:
            run_cleanup(settings.uploads_dir, max_age_sec)
        except Exception as e:
            log.error(
                "worker_cleanup_error",
                extra={"payload": {"err": str(e)[:300]}},
            )
        time.sleep(interval_sec)


if __name__ == "__main__":
    main()
