"""
Выбор backend'а хранилища статусов на старте процесса.

Redis недоступен при старте → in-process хранилище до конца жизни процесса
(логируется один раз, не фатально). Вызывающие не различают backend'ы.
"""

from __future__ import annotations

from collections.abc import Callable

import redis

from media_compressor.common.config import Settings, get_settings
from media_compressor.common.logging import get_project_logger

from .base import StatusStore
from .memory import MemoryStatusStore
from .redis import RedisStatusStore, make_redis_client

log = get_project_logger()


def build_status_store(
    settings: Settings | None = None,
    *,
    client_factory: Callable[[str], redis.Redis] = make_redis_client,
) -> StatusStore:
    s = settings or get_settings()
    url = (s.redis_url or "").strip()
    if not url:
        log.info("status_store_memory", extra={"payload": {"reason": "redis_not_configured"}})
        return MemoryStatusStore()

    try:
        client = client_factory(url)
        client.ping()
    except (redis.RedisError, OSError, ValueError) as e:
        log.warning(
            "status_store_redis_unavailable",
            extra={"payload": {"error": str(e)[:200], "fallback": "memory"}},
        )
        return MemoryStatusStore()

    log.info("status_store_redis", extra={"payload": {"url": _redact(url)}})
    return RedisStatusStore(client)


def _redact(url: str) -> str:
    # redis://:secret@host:6379/0 -> redis://***@host:6379/0
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"
