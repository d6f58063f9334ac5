"""Tests for the score stores: memory and Redis (mocked client)."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from isup.config.schema import MemoryStoreConfig, RedisStoreConfig
from isup.errors import StoreError
from isup.score import Score
from isup.store import MemoryStore, RedisStore, create_store


def _score(value: float) -> Score:
    return Score(response_avg=1_000_000, score=value, reliability=0.5)


# ── MemoryStore ──────────────────────────────────────────────────────────


class TestMemoryStore:
    @pytest.mark.asyncio
    async def test_best_picks_highest_score(self) -> None:
        store = MemoryStore()
        await store.set("a", _score(0.5))
        await store.set("b", _score(0.9))
        await store.set("c", _score(0.1))
        assert await store.best() == "b"

    @pytest.mark.asyncio
    async def test_best_on_empty_store_is_none(self) -> None:
        assert await MemoryStore().best() is None

    @pytest.mark.asyncio
    async def test_get_missing_is_none(self) -> None:
        assert await MemoryStore().get("http://nowhere/") is None

    @pytest.mark.asyncio
    async def test_set_overwrites(self) -> None:
        store = MemoryStore()
        await store.set("a", _score(0.5))
        await store.set("a", _score(0.2))
        assert await store.get("a") == _score(0.2)
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_ties_go_to_first_written_key(self) -> None:
        store = MemoryStore()
        await store.set("first", _score(0.7))
        await store.set("second", _score(0.7))
        # Overwriting keeps the original position.
        await store.set("first", _score(0.7))
        assert await store.best() == "first"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    async def test_rejects_non_finite_score(self, bad) -> None:
        store = MemoryStore()
        with pytest.raises(StoreError):
            await store.set("a", _score(bad))
        assert await store.get("a") is None
        assert await store.best() is None

    @pytest.mark.asyncio
    async def test_concurrent_writers(self) -> None:
        store = MemoryStore()
        await asyncio.gather(*(store.set(f"k{i}", _score(i / 100)) for i in range(100)))
        assert len(store) == 100
        assert await store.best() == "k99"

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self) -> None:
        store = MemoryStore()
        await store.set("a", _score(0.1))
        snap = store.snapshot()
        await store.set("b", _score(0.2))
        assert list(snap) == ["a"]

    @pytest.mark.asyncio
    async def test_close_is_noop(self) -> None:
        store = MemoryStore()
        await store.set("a", _score(0.1))
        await store.close()
        assert await store.get("a") == _score(0.1)


# ── RedisStore ───────────────────────────────────────────────────────────


def _mock_redis() -> MagicMock:
    client = MagicMock()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[True, 1])
    client.pipeline.return_value = pipe
    client.get = AsyncMock(return_value=None)
    client.zrevrange = AsyncMock(return_value=[])
    client.aclose = AsyncMock()
    return client


class TestRedisStore:
    @pytest.mark.asyncio
    async def test_set_writes_value_and_ranking_in_one_pipeline(self) -> None:
        client = _mock_redis()
        store = RedisStore(client)
        score = Score(response_avg=400_000_000, score=0.25, reliability=0.01)

        await store.set("https://a.example/", score)

        client.pipeline.assert_called_once_with(transaction=False)
        pipe = client.pipeline.return_value
        pipe.set.assert_called_once_with("isup:https://a.example/", json.dumps(score.to_dict()))
        pipe.zadd.assert_called_once_with("isup:scores", {"https://a.example/": 0.25})
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_custom_names(self) -> None:
        client = _mock_redis()
        store = RedisStore(client, key_prefix="svc:", sorted_set_name="svc:rank")
        await store.set("u", _score(0.3))
        pipe = client.pipeline.return_value
        pipe.set.assert_called_once()
        assert pipe.set.call_args.args[0] == "svc:u"
        pipe.zadd.assert_called_once_with("svc:rank", {"u": 0.3})

    @pytest.mark.asyncio
    async def test_set_rejects_nan_before_touching_redis(self) -> None:
        client = _mock_redis()
        with pytest.raises(StoreError):
            await RedisStore(client).set("u", _score(float("nan")))
        client.pipeline.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_wraps_backend_errors(self) -> None:
        client = _mock_redis()
        client.pipeline.return_value.execute.side_effect = RedisConnectionError("down")
        with pytest.raises(StoreError) as exc_info:
            await RedisStore(client).set("u", _score(0.1))
        assert exc_info.value.backend == "redis"
        assert isinstance(exc_info.value.orig_exc, RedisConnectionError)

    @pytest.mark.asyncio
    async def test_get_decodes_json(self) -> None:
        client = _mock_redis()
        score = Score(response_avg=5, score=0.5, reliability=0.2)
        client.get.return_value = json.dumps(score.to_dict())
        assert await RedisStore(client).get("u") == score
        client.get.assert_awaited_once_with("isup:u")

    @pytest.mark.asyncio
    async def test_get_accepts_bytes(self) -> None:
        client = _mock_redis()
        client.get.return_value = json.dumps(_score(0.4).to_dict()).encode()
        assert await RedisStore(client).get("u") == _score(0.4)

    @pytest.mark.asyncio
    async def test_get_missing_is_none(self) -> None:
        assert await RedisStore(_mock_redis()).get("u") is None

    @pytest.mark.asyncio
    async def test_get_corrupt_value_raises(self) -> None:
        client = _mock_redis()
        client.get.return_value = "{not json"
        with pytest.raises(StoreError):
            await RedisStore(client).get("u")

    @pytest.mark.asyncio
    async def test_get_wraps_backend_errors(self) -> None:
        client = _mock_redis()
        client.get.side_effect = RedisConnectionError("down")
        with pytest.raises(StoreError):
            await RedisStore(client).get("u")

    @pytest.mark.asyncio
    async def test_best_uses_top_of_sorted_set(self) -> None:
        client = _mock_redis()
        client.zrevrange.return_value = ["https://b.example/"]
        assert await RedisStore(client).best() == "https://b.example/"
        client.zrevrange.assert_awaited_once_with("isup:scores", 0, 0)

    @pytest.mark.asyncio
    async def test_best_on_empty_set_is_none(self) -> None:
        assert await RedisStore(_mock_redis()).best() is None

    @pytest.mark.asyncio
    async def test_best_wraps_backend_errors(self) -> None:
        client = _mock_redis()
        client.zrevrange.side_effect = RedisConnectionError("down")
        with pytest.raises(StoreError):
            await RedisStore(client).best()

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        client = _mock_redis()
        await RedisStore(client).close()
        client.aclose.assert_awaited_once()

    def test_from_url(self) -> None:
        with patch("isup.store.redis_store.aioredis.from_url") as from_url:
            store = RedisStore.from_url("redis://cache:6379/2", key_prefix="p:")
        from_url.assert_called_once_with("redis://cache:6379/2", decode_responses=True)
        assert store.key_prefix == "p:"
        assert store.sorted_set_name == "isup:scores"


# ── Factory ──────────────────────────────────────────────────────────────


class TestCreateStore:
    def test_default_is_memory(self) -> None:
        assert isinstance(create_store(), MemoryStore)
        assert isinstance(create_store(MemoryStoreConfig()), MemoryStore)

    def test_redis(self) -> None:
        cfg = RedisStoreConfig(type="redis", connection="redis://cache:6379/1")
        with patch("isup.store.redis_store.aioredis.from_url") as from_url:
            store = create_store(cfg)
        assert isinstance(store, RedisStore)
        from_url.assert_called_once_with("redis://cache:6379/1", decode_responses=True)
