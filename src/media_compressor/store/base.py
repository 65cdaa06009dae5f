"""
Контракт хранилища статусов задач.

- set(record, ttl): upsert, TTL отсчитывается заново
- get(task_id): последняя запись или None (в т.ч. после истечения TTL)
"""

from __future__ import annotations

from typing import Protocol

from media_compressor.domain.task import TaskRecord

DEFAULT_TTL_SEC = 30 * 60
KEY_PREFIX = "task:"


def task_key(task_id: str) -> str:
    return f"{KEY_PREFIX}{task_id}"


class StatusStore(Protocol):
    backend: str

    def set(self, record: TaskRecord, ttl_sec: int = DEFAULT_TTL_SEC) -> None: ...

    def get(self, task_id: str) -> TaskRecord | None: ...
