"""
Метрики Prometheus для сервиса.

Назначение:
- Экспорт /metrics
- Счётчики задач, задержки стадий, сбои записи статусов, работа reaper'а
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================

REQUESTS_TOTAL = Counter(
    "media_requests_total",
    "Общее количество HTTP запросов",
    ["service", "route", "method", "status"],
)

HTTP_REQUEST_LATENCY_MS = Histogram(
    "media_http_request_latency_ms",
    "Задержка HTTP запроса (мс)",
    ["service", "route", "method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

TASKS_TOTAL = Counter(
    "media_tasks_total",
    "Количество завершённых задач конвертации",
    ["operation", "result"],  # completed|failed
)

STAGE_LATENCY_MS = Histogram(
    "media_stage_latency_ms",
    "Длительность стадий задачи (мс)",
    ["stage"],
    buckets=(50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000, 300000, 900000),
)

STATUS_WRITE_FAILURES_TOTAL = Counter(
    "media_status_write_failures_total",
    "Потерянные записи статуса (best-effort)",
)

CLEANUP_REMOVED_TOTAL = Counter(
    "media_cleanup_removed_total",
    "Файлы, удалённые reaper'ом по возрасту",
)


@contextmanager
def track_stage_latency(stage: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        STAGE_LATENCY_MS.labels(stage=stage).observe(elapsed_ms)


def record_task_result(*, operation: str, result: str) -> None:
    TASKS_TOTAL.labels(operation=operation, result=result).inc()


def record_status_write_failure() -> None:
    STATUS_WRITE_FAILURES_TOTAL.inc()


def record_cleanup_removed(count: int) -> None:
    if count > 0:
        CLEANUP_REMOVED_TOTAL.inc(count)


def setup_metrics_endpoint(app: FastAPI, *, service: str = "api-gateway") -> None:
    """
    Регистрирует endpoint /metrics для Prometheus.
    """

    @app.middleware("http")
    async def http_metrics(request: Request, call_next):
        method = request.method
        started = time.perf_counter()

        response = await call_next(request)
        # шаблон маршрута, а не сырой путь: /v1/status/{task_id}
        route = getattr(request.scope.get("route"), "path", None) or request.url.path
        elapsed_ms = (time.perf_counter() - started) * 1000
        status_code = str(response.status_code)

        REQUESTS_TOTAL.labels(
            service=service,
            route=route,
            method=method,
            status=status_code,
        ).inc()
        HTTP_REQUEST_LATENCY_MS.labels(
            service=service,
            route=route,
            method=method,
        ).observe(elapsed_ms)
        return response

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
