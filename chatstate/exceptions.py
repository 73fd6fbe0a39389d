from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from chatstate.models import Message


class ChatStateError(Exception):
    """Base class for errors raised by the session state core."""


class StorageFailure(ChatStateError):
    """Raised when the underlying session store read or write failed."""

    def __init__(self, message: str, *, session_id: Optional[str] = None, key: Optional[str] = None):
        self.session_id = session_id
        self.key = key
        super().__init__(message)


class AnalyticsWriteFailure(StorageFailure):
    """
    Raised when a message was durably appended to the ledger but the
    matching analytics update could not be persisted.

    The ledger is correct; the analytics record is repaired on the next
    append or analytics read for the session.
    """

    def __init__(self, message: str, *, session_id: str, stored_message: "Message"):
        self.stored_message = stored_message
        super().__init__(message, session_id=session_id, key="analytics")


class InvalidSession(ChatStateError):
    """Raised when a session identifier is missing or empty."""


class InvalidMessage(ChatStateError):
    """Raised when a message cannot be appended to a ledger."""


class InferenceError(Exception):
    """Raised when the inference service failed or returned an unusable payload."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class InferenceTimeout(InferenceError):
    """Raised when an inference call did not finish within its timeout."""


__all__ = [
    "ChatStateError",
    "StorageFailure",
    "AnalyticsWriteFailure",
    "InvalidSession",
    "InvalidMessage",
    "InferenceError",
    "InferenceTimeout",
]
