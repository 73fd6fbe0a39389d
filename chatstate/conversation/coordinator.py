"""
Per-session facade that serialises all work against one session.

Every operation, reads included, runs under the coordinator's
asyncio.Lock. The lock hands itself to waiters in FIFO order, so calls
for one session complete one at a time in submission order and the
ledger's read-modify-write never interleaves with another append.
Different sessions have different coordinators and never wait on each
other.
"""

from __future__ import annotations

import asyncio
import weakref
from typing import Callable, List

from chatstate.exceptions import InvalidSession
from chatstate.models import Analytics, Message, MessageRole
from chatstate.storage import SessionStore

from .analytics import AnalyticsAggregator
from .ledger import ConversationLedger, current_millis


class SessionCoordinator:
    def __init__(
        self,
        session_id: str,
        ledger: ConversationLedger,
        aggregator: AnalyticsAggregator,
    ) -> None:
        self.session_id = session_id
        self._ledger = ledger
        self._aggregator = aggregator
        self._lock = asyncio.Lock()

    async def get_history(self) -> List[Message]:
        async with self._lock:
            return await self._ledger.list_messages(self.session_id)

    async def submit_user_message(self, content: str) -> Message:
        async with self._lock:
            return await self._ledger.append_message(
                self.session_id, MessageRole.USER, content
            )

    async def submit_user_turn(self, content: str) -> List[Message]:
        """
        Append a user message and return the history as it stood before it,
        both under one hold of the lock.
        """
        async with self._lock:
            history = await self._ledger.list_messages(self.session_id)
            await self._ledger.append_message(
                self.session_id, MessageRole.USER, content
            )
            return history

    async def submit_assistant_message(self, content: str) -> Message:
        async with self._lock:
            return await self._ledger.append_message(
                self.session_id, MessageRole.ASSISTANT, content
            )

    async def clear_session(self) -> None:
        async with self._lock:
            await self._ledger.clear(self.session_id)

    async def get_analytics(self) -> Analytics:
        async with self._lock:
            history = await self._ledger.list_messages(self.session_id)
            return await self._aggregator.reconcile(self.session_id, history)


class SessionRegistry:
    """
    Resolves session identifiers to their single live coordinator.

    Coordinators are held weakly: one stays alive while any caller holds
    or waits on it, and an idle session costs nothing.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        clock: Callable[[], int] = current_millis,
    ) -> None:
        self._store = store
        self._aggregator = AnalyticsAggregator(store)
        self._ledger = ConversationLedger(store, self._aggregator, clock=clock)
        self._coordinators: weakref.WeakValueDictionary[str, SessionCoordinator] = (
            weakref.WeakValueDictionary()
        )

    def get(self, session_id: str | None) -> SessionCoordinator:
        if not isinstance(session_id, str) or not session_id.strip():
            raise InvalidSession("sessionId is required")
        coordinator = self._coordinators.get(session_id)
        if coordinator is None:
            coordinator = SessionCoordinator(session_id, self._ledger, self._aggregator)
            self._coordinators[session_id] = coordinator
        return coordinator


__all__ = ["SessionCoordinator", "SessionRegistry"]
