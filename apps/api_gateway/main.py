"""
API Gateway (FastAPI).

Функции:
- /health
- /metrics
- /v1/upload, /v1/status/{task_id}, /v1/info
- /uploads: раздача готовых файлов

Архитектурно:
- upload сохраняет файл и отдаёт заявку оркестратору, task_id возвращается сразу
- конвертация идёт в пуле потоков, клиент опрашивает /v1/status
- reaper в отдельном потоке чистит каталог загрузок по возрасту
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from apps.api_gateway import deps
from apps.api_gateway.routers.info import router as info_router
from apps.api_gateway.routers.tasks import router as tasks_router
from media_compressor.common.config import get_settings
from media_compressor.common.logging import get_project_logger, setup_logging
from media_compressor.common.metrics import setup_metrics_endpoint
from media_compressor.jobs.cleanup_job import start_cleanup_thread

log = get_project_logger()


def create_app() -> FastAPI:
    app = FastAPI(title="Media Compressor", version="0.1.0")
    settings = get_settings()
    cleanup_stop: list[threading.Event] = []

    setup_metrics_endpoint(app, service=settings.service_name)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True, "status_store": deps.get_status_store().backend}

    @app.on_event("startup")
    async def startup() -> None:
        stop_event = start_cleanup_thread(settings)
        if stop_event is not None:
            cleanup_stop.append(stop_event)
        log.info(
            "api_started",
            extra={
                "payload": {
                    "uploads_dir": settings.uploads_dir,
                    "work_dir": settings.work_dir,
                    "max_workers": settings.max_workers,
                }
            },
        )

    @app.on_event("shutdown")
    async def shutdown() -> None:
        for event in cleanup_stop:
            event.set()
        deps.shutdown()

    uploads_dir = Path(settings.uploads_dir)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=uploads_dir), name="uploads")

    app.include_router(tasks_router, prefix="/v1")
    app.include_router(info_router, prefix="/v1")

    return app


setup_logging()

app = create_app()


def main() -> None:
    s = get_settings()
    uvicorn.run(app, host=s.api_host, port=s.api_port)


if __name__ == "__main__":
    main()
