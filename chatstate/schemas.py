from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from chatstate.models import Message


class SessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Missing or null ids reach SessionRegistry.get and become InvalidSession (400).
    session_id: Optional[str] = Field(
        default=None, alias="sessionId", description="Caller-supplied session id"
    )


class ChatRequest(SessionRequest):
    message: str = Field(..., min_length=1, description="User turn text")
    image: Optional[str] = Field(
        default=None, description="Optional image as a data URL or bare base64 string"
    )
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        le=600,
        description="Upper bound in seconds for the inference call",
    )


class ChatResponse(BaseModel):
    response: str


class HistoryResponse(BaseModel):
    messages: List[Message] = Field(default_factory=list)


class ClearResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str = "ok"


__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ClearResponse",
    "HealthResponse",
    "HistoryResponse",
    "SessionRequest",
]
