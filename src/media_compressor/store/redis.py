"""
Redis-хранилище статусов задач.

- JSON записи под ключом task:<id>
- истечение через нативный EX
- без ретраев: ошибки записи обрабатывает вызывающая сторона
"""

from __future__ import annotations

import json

import redis

from media_compressor.common.logging import get_project_logger
from media_compressor.domain.task import TaskRecord

from .base import DEFAULT_TTL_SEC, task_key

log = get_project_logger()


def make_redis_client(url: str, *, connect_timeout_sec: float = 2.0) -> redis.Redis:
    return redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=connect_timeout_sec,
    )


class RedisStatusStore:
    backend = "redis"

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    def set(self, record: TaskRecord, ttl_sec: int = DEFAULT_TTL_SEC) -> None:
        payload = json.dumps(record.to_dict(), ensure_ascii=False)
        self._client.set(task_key(record.id), payload, ex=max(1, int(ttl_sec)))

    def get(self, task_id: str) -> TaskRecord | None:
        try:
            raw = self._client.get(task_key(task_id))
        except redis.RedisError as e:
            log.warning(
                "status_store_redis_read_failed",
                extra={"payload": {"task_id": task_id, "error": str(e)[:200]}},
            )
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                return None
            return TaskRecord.from_dict(data)
        except (KeyError, TypeError, ValueError):
            return None
