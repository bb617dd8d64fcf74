"""Tests for key-value stores, the prediction log and the training cache."""

import asyncio
import fnmatch

import orjson
import pytest
import redis.asyncio as redis

from app.config import Settings
from app.storage import (
    MemoryStore,
    PredictionLog,
    RedisStore,
    TrainingDataCache,
    create_store,
    predictions_key,
    training_data_key,
)
from core.models import Direction, PredictionRecord, TrainingSample


class FakeRedis:
    """Minimal in-process stand-in for redis.asyncio.Redis."""

    def __init__(self, fail_ping: bool = False):
        self.data: dict[str, str] = {}
        self.fail_ping = fail_ping
        self.closed = False

    async def ping(self):
        if self.fail_ping:
            raise redis.ConnectionError("connection refused")
        return True

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)

    async def scan_iter(self, match=None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatch(key, match):
                yield key

    async def aclose(self):
        self.closed = True


class SuspendingStore(MemoryStore):
    """MemoryStore that yields to the event loop on every call, like a network store."""

    async def get(self, key):
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key, value):
        await asyncio.sleep(0)
        await super().set(key, value)


def prediction(ts: int, direction: Direction = Direction.CALL) -> PredictionRecord:
    return PredictionRecord(timestamp=ts, prediction=direction, confidence=0.7, features=[0.5] * 15)


def sample(ts: int, label: int = 1) -> TrainingSample:
    return TrainingSample(features=[0.1] * 15, label=label, timestamp=ts)


# =============================================================================
# Stores
# =============================================================================

class TestMemoryStore:
    """Tests for MemoryStore."""

    @pytest.mark.asyncio
    async def test_get_set_remove(self):
        store = MemoryStore()
        assert await store.get("missing") is None

        await store.set("a", "1")
        assert await store.get("a") == "1"

        await store.remove("a")
        await store.remove("a")  # removing twice is fine
        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_clear(self):
        store = MemoryStore()
        await store.set("a", "1")
        await store.set("b", "2")

        await store.clear()
        assert len(store) == 0


class TestRedisStore:
    """Tests for RedisStore key namespacing."""

    @pytest.mark.asyncio
    async def test_keys_are_prefixed(self):
        client = FakeRedis()
        store = RedisStore(client, key_prefix="fx:")

        await store.set("model_EURUSD", "{}")

        assert client.data == {"fx:model_EURUSD": "{}"}
        assert await store.get("model_EURUSD") == "{}"

    @pytest.mark.asyncio
    async def test_clear_only_touches_prefix(self):
        client = FakeRedis()
        client.data["other:key"] = "keep"
        store = RedisStore(client, key_prefix="fx:")
        await store.set("a", "1")
        await store.set("b", "2")

        await store.clear()

        assert client.data == {"other:key": "keep"}

    @pytest.mark.asyncio
    async def test_close(self):
        client = FakeRedis()
        await RedisStore(client).close()
        assert client.closed


class TestCreateStore:
    """Tests for the store factory."""

    @pytest.mark.asyncio
    async def test_memory_backend(self):
        store = await create_store(Settings(storage_backend="memory"))
        assert isinstance(store, MemoryStore)

    @pytest.mark.asyncio
    async def test_redis_backend(self, monkeypatch):
        client = FakeRedis()
        monkeypatch.setattr(
            RedisStore, "from_url", classmethod(lambda cls, url, prefix="": cls(client, prefix))
        )

        store = await create_store(Settings(storage_backend="redis", key_prefix="fx:"))

        assert isinstance(store, RedisStore)
        assert store.key_prefix == "fx:"

    @pytest.mark.asyncio
    async def test_unreachable_redis_falls_back_to_memory(self, monkeypatch):
        client = FakeRedis(fail_ping=True)
        monkeypatch.setattr(
            RedisStore, "from_url", classmethod(lambda cls, url, prefix="": cls(client, prefix))
        )

        store = await create_store(Settings(storage_backend="redis"))

        assert isinstance(store, MemoryStore)
        assert client.closed


# =============================================================================
# Prediction log
# =============================================================================

class TestPredictionLog:
    """Tests for PredictionLog."""

    @pytest.mark.asyncio
    async def test_append_and_load(self):
        log = PredictionLog(MemoryStore())
        await log.append("EURUSD", prediction(1))
        await log.append("EURUSD", prediction(2, Direction.PUT))

        records = await log.load("EURUSD")

        assert [r.timestamp for r in records] == [1, 2]
        assert records[1].prediction == Direction.PUT
        assert await log.load("EURJPY") == []

    @pytest.mark.asyncio
    async def test_capped_at_most_recent(self):
        log = PredictionLog(MemoryStore(), max_records=3)
        for ts in range(5):
            await log.append("EURUSD", prediction(ts))

        records = await log.load("EURUSD")
        assert [r.timestamp for r in records] == [2, 3, 4]

    @pytest.mark.asyncio
    async def test_update_outcome(self):
        log = PredictionLog(MemoryStore())
        await log.append("EURUSD", prediction(10))
        await log.append("EURUSD", prediction(20))

        assert await log.update_outcome("EURUSD", 20, Direction.PUT) is True
        assert await log.update_outcome("EURUSD", 30, Direction.PUT) is False

        records = await log.load("EURUSD")
        assert records[0].actual_outcome is None
        assert records[1].actual_outcome == Direction.PUT

    @pytest.mark.asyncio
    async def test_concurrent_appends_all_kept(self):
        log = PredictionLog(SuspendingStore())

        await asyncio.gather(*(log.append("EURUSD", prediction(ts)) for ts in range(5)))

        records = await log.load("EURUSD")
        assert sorted(r.timestamp for r in records) == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_outcome_racing_append(self):
        log = PredictionLog(SuspendingStore())
        await log.append("EURUSD", prediction(1))

        updated, _ = await asyncio.gather(
            log.update_outcome("EURUSD", 1, Direction.CALL),
            log.append("EURUSD", prediction(2)),
        )

        records = await log.load("EURUSD")
        assert updated is True
        assert [r.timestamp for r in records] == [1, 2]
        assert records[0].actual_outcome == Direction.CALL

    @pytest.mark.asyncio
    async def test_malformed_log_is_empty(self):
        store = MemoryStore()
        await store.set(predictions_key("EURUSD"), '[{"timestamp": "x"}]')

        assert await PredictionLog(store).load("EURUSD") == []

    @pytest.mark.asyncio
    async def test_stored_as_json_list(self):
        store = MemoryStore()
        await PredictionLog(store).append("EURUSD", prediction(1))

        data = orjson.loads(await store.get(predictions_key("EURUSD")))
        assert data[0]["prediction"] == "CALL"
        assert data[0]["actual_outcome"] is None

    @pytest.mark.asyncio
    async def test_clear(self):
        store = MemoryStore()
        log = PredictionLog(store)
        await log.append("EURUSD", prediction(1))

        await log.clear("EURUSD")
        assert await log.load("EURUSD") == []


# =============================================================================
# Training data cache
# =============================================================================

class TestTrainingDataCache:
    """Tests for TrainingDataCache."""

    @pytest.mark.asyncio
    async def test_merge_dedupes_by_timestamp(self):
        cache = TrainingDataCache(MemoryStore())
        await cache.merge("EURUSD", [sample(1), sample(2), sample(3)])

        merged = await cache.merge("EURUSD", [sample(3, label=0), sample(4)])

        assert [s.timestamp for s in merged] == [1, 2, 3, 4]
        assert merged[2].label == 0
        assert [s.timestamp for s in await cache.load("EURUSD")] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_merge_sorts_and_caps(self):
        cache = TrainingDataCache(MemoryStore(), max_samples=2)

        merged = await cache.merge("EURUSD", [sample(5), sample(1), sample(3)])

        assert [s.timestamp for s in merged] == [3, 5]

    @pytest.mark.asyncio
    async def test_malformed_cache_is_empty(self):
        store = MemoryStore()
        await store.set(training_data_key("EURUSD"), "not json")

        assert await TrainingDataCache(store).load("EURUSD") == []
