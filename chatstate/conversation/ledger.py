from __future__ import annotations

import time
from typing import Callable, List

from pydantic import ValidationError

from chatstate.exceptions import AnalyticsWriteFailure, InvalidMessage, StorageFailure
from chatstate.logging_config import logger
from chatstate.models import Message, MessageRole
from chatstate.storage import MESSAGES_KEY, SessionStore

from .analytics import AnalyticsAggregator


def current_millis() -> int:
    return int(time.time() * 1000)


class ConversationLedger:
    """
    Ordered message history per session.

    Appends are read-modify-write against the store: load the list,
    append, write the whole list back, then let the aggregator fold the
    new message into the session analytics. Callers must serialise
    appends per session (see SessionCoordinator).
    """

    def __init__(
        self,
        store: SessionStore,
        aggregator: AnalyticsAggregator,
        *,
        clock: Callable[[], int] = current_millis,
    ) -> None:
        self._store = store
        self._aggregator = aggregator
        self._clock = clock

    async def list_messages(self, session_id: str) -> List[Message]:
        data = await self._store.get(session_id, MESSAGES_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageFailure(
                "Stored message list is malformed", session_id=session_id, key=MESSAGES_KEY
            )
        try:
            return [Message.model_validate(item) for item in data]
        except ValidationError as exc:
            raise StorageFailure(
                "Stored message list is malformed", session_id=session_id, key=MESSAGES_KEY
            ) from exc

    def _next_timestamp(self, history: List[Message]) -> int:
        now = self._clock()
        # Clock steps backwards must not reorder timestamps within a session.
        for previous in reversed(history):
            if previous.timestamp is not None:
                return max(now, previous.timestamp)
        return now

    async def append_message(
        self, session_id: str, role: MessageRole | str, content: str
    ) -> Message:
        try:
            role = MessageRole(role)
        except ValueError as exc:
            raise InvalidMessage(f"Unknown message role {role!r}") from exc
        if role == MessageRole.SYSTEM:
            raise InvalidMessage("System messages are not stored in the conversation ledger")
        if not isinstance(content, str):
            raise InvalidMessage("Message content must be text")

        history = await self.list_messages(session_id)
        message = Message(role=role, content=content, timestamp=self._next_timestamp(history))
        history.append(message)
        await self._store.put(
            session_id, MESSAGES_KEY, [m.model_dump(mode="json") for m in history]
        )
        logger.info(
            "ledger: appended %s message to session %r (length=%d)",
            role.value,
            session_id,
            len(history),
        )

        try:
            await self._aggregator.on_message_appended(session_id, message, history)
        except StorageFailure as exc:
            logger.error(
                "ledger: analytics update failed for session %r after append: %s",
                session_id,
                exc,
            )
            raise AnalyticsWriteFailure(
                "Message stored but analytics update failed",
                session_id=session_id,
                stored_message=message,
            ) from exc
        return message

    async def clear(self, session_id: str) -> None:
        await self._store.put(session_id, MESSAGES_KEY, [])
        # A failed reset here is detected and repaired on the next analytics access.
        await self._aggregator.reset(session_id)
        logger.info("ledger: cleared session %r", session_id)


__all__ = ["ConversationLedger", "current_millis"]
