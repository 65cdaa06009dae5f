from __future__ import annotations

from types import SimpleNamespace

import redis

from media_compressor.domain.enums import TaskStage
from media_compressor.domain.task import TaskRecord
from media_compressor.store.factory import build_status_store
from media_compressor.store.memory import MemoryStatusStore
from media_compressor.store.redis import RedisStatusStore


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class _FakeRedis:
    def __init__(self) -> None:
        self.kv: dict[str, str] = {}
        self.ex: dict[str, int] = {}
        self.pinged = False

    def ping(self) -> bool:
        self.pinged = True
        return True

    def set(self, key: str, value: str, ex: int | None = None) -> None:
        self.kv[key] = value
        if ex is not None:
            self.ex[key] = ex

    def get(self, key: str) -> str | None:
        return self.kv.get(key)


class _BrokenRedis(_FakeRedis):
    def ping(self) -> bool:
        raise redis.ConnectionError("connection refused")

    def get(self, key: str) -> str | None:
        raise redis.ConnectionError("connection refused")


def _settings(url: str | None) -> SimpleNamespace:
    return SimpleNamespace(redis_url=url)


def test_memory_store_round_trip_and_ttl() -> None:
    clock = _FakeClock()
    store = MemoryStatusStore(clock=clock)
    rec = TaskRecord.processing("t1", TaskStage.transcode, 42)

    store.set(rec, ttl_sec=60)
    assert store.get("t1") == rec
    assert store.get("t1") == rec  # повторное чтение без записи

    clock.now += 59
    assert store.get("t1") == rec
    clock.now += 2
    assert store.get("t1") is None


def test_memory_store_set_resets_ttl() -> None:
    clock = _FakeClock()
    store = MemoryStatusStore(clock=clock)
    store.set(TaskRecord.pending("t1"), ttl_sec=10)
    clock.now += 8
    store.set(TaskRecord.processing("t1", TaskStage.init), ttl_sec=10)
    clock.now += 8
    got = store.get("t1")
    assert got is not None
    assert got.status.value == "processing"


def test_memory_store_unknown_id() -> None:
    assert MemoryStatusStore().get("missing") is None


def test_redis_store_uses_namespaced_key_and_expiry() -> None:
    client = _FakeRedis()
    store = RedisStatusStore(client)
    rec = TaskRecord.completed("t1", "clip.gif")

    store.set(rec, ttl_sec=1800)
    assert client.ex["task:t1"] == 1800
    assert '"output_file": "clip.gif"' in client.kv["task:t1"]
    assert store.get("t1") == rec
    assert store.get("t2") is None


def test_redis_store_ignores_garbage() -> None:
    client = _FakeRedis()
    client.kv["task:t1"] = "not json"
    client.kv["task:t2"] = "[1, 2]"
    store = RedisStatusStore(client)
    assert store.get("t1") is None
    assert store.get("t2") is None


def test_redis_store_read_error_reports_absent() -> None:
    assert RedisStatusStore(_BrokenRedis()).get("t1") is None


def test_factory_uses_redis_when_reachable() -> None:
    client = _FakeRedis()
    store = build_status_store(_settings("redis://localhost:6379/0"), client_factory=lambda url: client)
    assert store.backend == "redis"
    assert client.pinged


def test_factory_falls_back_to_memory_when_unreachable() -> None:
    store = build_status_store(
        _settings("redis://:secret@nowhere:6379/0"), client_factory=lambda url: _BrokenRedis()
    )
    assert store.backend == "memory"

    rec = TaskRecord.processing("t1", TaskStage.download, 10)
    store.set(rec)
    assert store.get("t1") == rec


def test_factory_memory_when_redis_not_configured() -> None:
    def _must_not_connect(url: str):
        raise AssertionError("redis must not be contacted")

    assert build_status_store(_settings(""), client_factory=_must_not_connect).backend == "memory"
