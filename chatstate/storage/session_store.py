"""
Per-session key/value persistence.

Every piece of durable state lives under a (session_id, key) pair; the
conversation layer uses two keys per session, `messages` and
`analytics`. Each put replaces one value in a single write, so a failed
put never leaves a half-written record behind.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional, Protocol, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

from chatstate.exceptions import StorageFailure
from chatstate.logging_config import logger
from chatstate.redis_client import CorruptPayload, redis_get_json, redis_set_json

MESSAGES_KEY = "messages"
ANALYTICS_KEY = "analytics"

SESSION_KEY_TEMPLATE = "{prefix}:{session_id}:{key}"


class SessionStore(Protocol):
    """Storage contract consumed by the ledger and the aggregator."""

    async def get(self, session_id: str, key: str) -> Optional[Any]:
        """Return the JSON value stored for the key, or None when absent."""
        ...

    async def put(self, session_id: str, key: str, value: Any) -> None:
        """Replace the value stored for the key."""
        ...


class InMemorySessionStore:
    """
    Process-local store; values are deep-copied on the way in and out so
    callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._data: Dict[Tuple[str, str], Any] = {}

    async def get(self, session_id: str, key: str) -> Optional[Any]:
        value = self._data.get((session_id, key))
        if value is None:
            return None
        return copy.deepcopy(value)

    async def put(self, session_id: str, key: str, value: Any) -> None:
        self._data[(session_id, key)] = copy.deepcopy(value)


class RedisSessionStore:
    """
    Redis-backed store: one JSON string per `{prefix}:{session_id}:{key}`.
    """

    def __init__(self, redis: Redis, *, prefix: str = "chatstate:session") -> None:
        self._redis = redis
        self._prefix = prefix

    def key_for(self, session_id: str, key: str) -> str:
        return SESSION_KEY_TEMPLATE.format(
            prefix=self._prefix, session_id=session_id, key=key
        )

    async def get(self, session_id: str, key: str) -> Optional[Any]:
        redis_key = self.key_for(session_id, key)
        try:
            return await redis_get_json(self._redis, redis_key)
        except CorruptPayload as exc:
            logger.error("session store: corrupt payload under %s", redis_key)
            raise StorageFailure(str(exc), session_id=session_id, key=key) from exc
        except (RedisError, OSError) as exc:
            logger.warning("session store: read of %s failed: %s", redis_key, exc)
            raise StorageFailure(
                f"Failed to read {key!r} for session", session_id=session_id, key=key
            ) from exc

    async def put(self, session_id: str, key: str, value: Any) -> None:
        redis_key = self.key_for(session_id, key)
        try:
            await redis_set_json(self._redis, redis_key, value)
        except (RedisError, OSError) as exc:
            logger.warning("session store: write of %s failed: %s", redis_key, exc)
            raise StorageFailure(
                f"Failed to write {key!r} for session", session_id=session_id, key=key
            ) from exc


__all__ = [
    "ANALYTICS_KEY",
    "MESSAGES_KEY",
    "SESSION_KEY_TEMPLATE",
    "InMemorySessionStore",
    "RedisSessionStore",
    "SessionStore",
]
