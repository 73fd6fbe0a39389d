"""
Redis helper utilities for the session store.

This module is the central place that constructs the Redis client and
provides small helpers for JSON-style key access, so that storage code
does not deal with encoding details directly.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from weakref import WeakKeyDictionary

from redis.asyncio import Redis

from .settings import settings

_redis_clients_by_loop: WeakKeyDictionary[asyncio.AbstractEventLoop, Redis] = (
    WeakKeyDictionary()
)


class CorruptPayload(ValueError):
    """Raised when a stored value is not valid JSON."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Value stored under {key!r} is not valid JSON")


def _ensure_event_loop() -> asyncio.AbstractEventLoop:
    try:
        return asyncio.get_running_loop()
    except RuntimeError as exc:  # pragma: no cover - easier debugging for sync misuse
        raise RuntimeError(
            "get_redis_client() must be called from inside a running event loop"
        ) from exc


def _create_client() -> Redis:
    return Redis.from_url(settings.redis_url, decode_responses=True)


def get_redis_client() -> Redis:
    """
    Return a Redis client bound to the current event loop.
    """
    loop = _ensure_event_loop()
    client = _redis_clients_by_loop.get(loop)
    if client is None:
        client = _create_client()
        _redis_clients_by_loop[loop] = client
    return client


async def redis_get_json(redis: Redis, key: str) -> Any | None:
    """
    Load a JSON value from Redis.

    Returns None on a missing key and raises CorruptPayload when the
    stored value cannot be decoded.
    """
    raw = await redis.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CorruptPayload(key) from exc


async def redis_set_json(redis: Redis, key: str, value: Any) -> None:
    """
    Store a JSON-serialisable value under the given key (no expiry).
    """
    await redis.set(key, json.dumps(value, ensure_ascii=False))


__all__ = ["CorruptPayload", "get_redis_client", "redis_get_json", "redis_set_json"]
