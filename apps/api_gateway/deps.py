"""
Общие зависимости API.

Сюда выносим:
- хранилище статусов (Redis или in-process fallback, выбирается один раз)
- оркестратор задач
- клиент yt-dlp для /info

Всё создаётся лениво при первом обращении: импорт модуля не трогает Redis.
Тесты подменяют get_* через monkeypatch.
"""

from __future__ import annotations

import threading

from media_compressor.common.config import get_settings
from media_compressor.media.invoker import ProcessInvoker
from media_compressor.media.ytdlp import YtDlpClient
from media_compressor.services.orchestrator import JobOrchestrator
from media_compressor.store.base import StatusStore
from media_compressor.store.factory import build_status_store

_LOCK = threading.Lock()
_STORE: StatusStore | None = None
_ORCHESTRATOR: JobOrchestrator | None = None
_FETCHER: YtDlpClient | None = None


def get_status_store() -> StatusStore:
    global _STORE
    with _LOCK:
        if _STORE is None:
            _STORE = build_status_store(get_settings())
        return _STORE


def get_orchestrator() -> JobOrchestrator:
    global _ORCHESTRATOR
    store = get_status_store()
    with _LOCK:
        if _ORCHESTRATOR is None:
            _ORCHESTRATOR = JobOrchestrator.from_settings(store, get_settings())
        return _ORCHESTRATOR


def get_fetcher() -> YtDlpClient:
    global _FETCHER
    with _LOCK:
        if _FETCHER is None:
            s = get_settings()
            _FETCHER = YtDlpClient(
                ProcessInvoker(diagnostics=s.tool_diagnostics),
                ytdlp_bin=s.ytdlp_bin,
                proxy=s.proxy,
                resolve_timeout_sec=s.fetch_resolve_timeout_sec,
                info_timeout_sec=s.info_timeout_sec,
            )
        return _FETCHER


def shutdown() -> None:
    global _ORCHESTRATOR
    with _LOCK:
        orchestrator, _ORCHESTRATOR = _ORCHESTRATOR, None
    if orchestrator is not None:
        orchestrator.shutdown(wait=False)
