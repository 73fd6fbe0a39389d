"""
Incremental usage analytics for one session's ledger.

Analytics are updated once per append from the message just stored and
the ledger as it stood at that moment; the full history is only replayed
when the stored record is found to be out of step with the ledger (a
previous analytics write failed after its ledger write succeeded).
"""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import ValidationError

from chatstate.exceptions import StorageFailure
from chatstate.logging_config import logger
from chatstate.models import Analytics, Message, MessageRole
from chatstate.storage import ANALYTICS_KEY, SessionStore

COUNTED_ROLES = (MessageRole.USER, MessageRole.ASSISTANT)


def _preceding_user_message(history: Sequence[Message]) -> Optional[Message]:
    for candidate in reversed(history):
        if candidate.role == MessageRole.USER:
            return candidate
    return None


def counted_messages(history: Sequence[Message]) -> int:
    return sum(1 for m in history if m.role in COUNTED_ROLES)


def apply_message(
    analytics: Analytics, message: Message, history: Sequence[Message]
) -> Analytics:
    """
    Return the analytics after `message` was appended.

    `history` is the ledger including `message` as its last entry. Roles
    other than user/assistant leave the analytics untouched.
    """
    if message.role not in COUNTED_ROLES:
        return analytics

    updated = analytics.model_copy()
    updated.total_messages += 1

    if message.role == MessageRole.USER:
        updated.user_messages += 1
        updated.last_message_time = message.timestamp
        if updated.first_message_time is None:
            updated.first_message_time = message.timestamp
        return updated

    updated.assistant_messages += 1
    prompt = _preceding_user_message(history[:-1])
    if (
        prompt is not None
        and prompt.timestamp is not None
        and message.timestamp is not None
    ):
        delta = message.timestamp - prompt.timestamp
        samples = updated.assistant_messages
        updated.average_response_time = (
            updated.average_response_time * (samples - 1) + delta
        ) / samples
    return updated


def rebuild(history: Sequence[Message]) -> Analytics:
    """Recompute analytics by replaying every message in append order."""
    analytics = Analytics()
    for idx, message in enumerate(history):
        analytics = apply_message(analytics, message, history[: idx + 1])
    return analytics


class AnalyticsAggregator:
    def __init__(self, store: SessionStore) -> None:
        self._store = store

    async def get(self, session_id: str) -> Analytics:
        data = await self._store.get(session_id, ANALYTICS_KEY)
        if data is None:
            return Analytics()
        try:
            return Analytics.model_validate(data)
        except ValidationError as exc:
            raise StorageFailure(
                "Stored analytics record is malformed",
                session_id=session_id,
                key=ANALYTICS_KEY,
            ) from exc

    async def _save(self, session_id: str, analytics: Analytics) -> None:
        await self._store.put(
            session_id, ANALYTICS_KEY, analytics.model_dump(mode="json", by_alias=True)
        )

    async def on_message_appended(
        self, session_id: str, message: Message, history: Sequence[Message]
    ) -> Analytics:
        current = await self.get(session_id)
        prior = history[:-1]
        if current.total_messages != counted_messages(prior):
            logger.warning(
                "analytics drift for session %r (recorded=%d, ledger=%d); rebuilding",
                session_id,
                current.total_messages,
                counted_messages(prior),
            )
            current = rebuild(prior)
        updated = apply_message(current, message, history)
        await self._save(session_id, updated)
        return updated

    async def reconcile(self, session_id: str, history: Sequence[Message]) -> Analytics:
        """
        Return analytics consistent with `history`, repairing the stored
        record when it has drifted.
        """
        current = await self.get(session_id)
        if current.total_messages == counted_messages(history):
            return current
        logger.warning(
            "analytics drift for session %r (recorded=%d, ledger=%d); rebuilding",
            session_id,
            current.total_messages,
            counted_messages(history),
        )
        repaired = rebuild(history)
        await self._save(session_id, repaired)
        return repaired

    async def reset(self, session_id: str) -> None:
        await self._save(session_id, Analytics())


__all__ = ["AnalyticsAggregator", "apply_message", "counted_messages", "rebuild"]
