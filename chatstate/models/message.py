from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """
    One stored conversation turn.

    `timestamp` is epoch milliseconds assigned by the ledger at append
    time; records written before timestamps existed may carry None.
    """

    model_config = ConfigDict(frozen=True)

    role: MessageRole = Field(..., description="Author of the message")
    content: str = Field(..., description="Message text")
    timestamp: Optional[int] = Field(
        default=None, description="Append time (epoch milliseconds)", ge=0
    )


__all__ = ["Message", "MessageRole"]
