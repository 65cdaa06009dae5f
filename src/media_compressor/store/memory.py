"""
In-process хранилище статусов.

Используется, когда Redis не настроен или недоступен на старте.
Один lock на словарь, TTL проверяется лениво при чтении.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from media_compressor.domain.task import TaskRecord

from .base import DEFAULT_TTL_SEC


class MemoryStatusStore:
    backend = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._data: dict[str, tuple[TaskRecord, float]] = {}

    def set(self, record: TaskRecord, ttl_sec: int = DEFAULT_TTL_SEC) -> None:
        expires_at = self._clock() + max(1, int(ttl_sec))
        with self._lock:
            self._data[record.id] = (record, expires_at)
            if len(self._data) > 10_000:
                self._evict_expired_locked()

    def get(self, task_id: str) -> TaskRecord | None:
        with self._lock:
            item = self._data.get(task_id)
            if item is None:
                return None
            record, expires_at = item
            if expires_at <= self._clock():
                self._data.pop(task_id, None)
                return None
            return record

    def _evict_expired_locked(self) -> None:
        now = self._clock()
        for key, (_, exp) in list(self._data.items()):
            if exp <= now:
                self._data.pop(key, None)
