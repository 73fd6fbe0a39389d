from __future__ import annotations

import asyncio
from typing import Any, Optional

from chatstate.exceptions import StorageFailure
from chatstate.storage import InMemorySessionStore


class InMemoryRedis:
    """
    Minimal async Redis replacement supporting the commands the session
    store uses.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str):
        return self._data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None):
        self._data[key] = value

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if key in self._data:
                removed += 1
                self._data.pop(key, None)
        return removed


class ManualClock:
    """Millisecond clock the test moves by hand."""

    def __init__(self, start: int = 1000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


class FlakySessionStore(InMemorySessionStore):
    """
    In-memory store whose next N puts for a key raise StorageFailure.
    """

    def __init__(self) -> None:
        super().__init__()
        self.failing_puts: dict[str, int] = {}

    def fail_next_put(self, key: str, times: int = 1) -> None:
        self.failing_puts[key] = times

    async def put(self, session_id: str, key: str, value: Any) -> None:
        remaining = self.failing_puts.get(key, 0)
        if remaining:
            self.failing_puts[key] = remaining - 1
            raise StorageFailure("injected write failure", session_id=session_id, key=key)
        await super().put(session_id, key, value)


class YieldingSessionStore(InMemorySessionStore):
    """
    In-memory store that yields to the event loop around every read and
    write, so unsynchronised read-modify-write sequences interleave.
    """

    async def get(self, session_id: str, key: str) -> Optional[Any]:
        value = await super().get(session_id, key)
        await asyncio.sleep(0)
        return value

    async def put(self, session_id: str, key: str, value: Any) -> None:
        await asyncio.sleep(0)
        await super().put(session_id, key, value)
