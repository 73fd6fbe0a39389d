from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Analytics(BaseModel):
    """
    Running statistics derived from one session's ledger.

    Serialised with the camelCase names used by the HTTP API and the
    persisted record (totalMessages, averageResponseTime, ...).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    total_messages: int = Field(default=0, ge=0)
    user_messages: int = Field(default=0, ge=0)
    assistant_messages: int = Field(default=0, ge=0)
    average_response_time: float = Field(
        default=0.0, ge=0, description="Running mean of response times (ms)"
    )
    first_message_time: Optional[int] = Field(
        default=None, description="Timestamp of the first user message (epoch ms)"
    )
    last_message_time: Optional[int] = Field(
        default=None, description="Timestamp of the latest user message (epoch ms)"
    )


__all__ = ["Analytics"]
