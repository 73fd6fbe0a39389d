import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from chatstate.exceptions import StorageFailure
from chatstate.storage import InMemorySessionStore, RedisSessionStore
from tests.utils import InMemoryRedis


class BrokenRedis:
    async def get(self, key: str):
        raise RedisConnectionError("connection refused")

    async def set(self, key: str, value: str, ex: int | None = None):
        raise RedisConnectionError("connection refused")


@pytest.mark.asyncio
async def test_redis_store_round_trips_json_per_session_key():
    redis = InMemoryRedis()
    store = RedisSessionStore(redis, prefix="test:session")

    assert await store.get("s1", "messages") is None

    await store.put("s1", "messages", [{"role": "user", "content": "hi", "timestamp": 1}])
    assert await store.get("s1", "messages") == [
        {"role": "user", "content": "hi", "timestamp": 1}
    ]

    raw = redis._data["test:session:s1:messages"]
    assert json.loads(raw)[0]["content"] == "hi"
    # Other sessions and keys are untouched.
    assert await store.get("s2", "messages") is None
    assert await store.get("s1", "analytics") is None


@pytest.mark.asyncio
async def test_redis_store_corrupt_payload_is_a_storage_failure():
    redis = InMemoryRedis()
    store = RedisSessionStore(redis, prefix="test:session")
    redis._data["test:session:s1:analytics"] = "{not json"

    with pytest.raises(StorageFailure) as exc_info:
        await store.get("s1", "analytics")
    assert exc_info.value.session_id == "s1"
    assert exc_info.value.key == "analytics"


@pytest.mark.asyncio
async def test_redis_store_wraps_driver_errors():
    store = RedisSessionStore(BrokenRedis())

    with pytest.raises(StorageFailure):
        await store.get("s1", "messages")
    with pytest.raises(StorageFailure):
        await store.put("s1", "messages", [])


@pytest.mark.asyncio
async def test_in_memory_store_does_not_share_mutable_values():
    store = InMemorySessionStore()
    value = [{"content": "a"}]
    await store.put("s1", "messages", value)

    value.append({"content": "b"})
    loaded = await store.get("s1", "messages")
    assert loaded == [{"content": "a"}]

    loaded.append({"content": "c"})
    assert await store.get("s1", "messages") == [{"content": "a"}]
