from __future__ import annotations

import base64
import binascii
import json

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from chatstate.conversation import SessionRegistry
from chatstate.deps import get_inference_client, get_session_registry
from chatstate.errors import bad_gateway, bad_request, gateway_timeout
from chatstate.exceptions import InferenceError, InferenceTimeout
from chatstate.inference import WorkersAIClient
from chatstate.logging_config import logger
from chatstate.models import Analytics
from chatstate.schemas import (
    ChatRequest,
    ChatResponse,
    ClearResponse,
    HistoryResponse,
    SessionRequest,
)
from chatstate.settings import settings

router = APIRouter(prefix="/api", tags=["chat"])


def decode_image(image: str) -> bytes:
    """
    Decode a `data:<mime>;base64,<payload>` URL or a bare base64 string.
    """
    encoded = image.split(",", 1)[1] if "," in image else image
    try:
        data = base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise bad_request("image is not valid base64 data") from exc
    if not data:
        raise bad_request("image is empty")
    return data


@router.post("/chat", response_model=ChatResponse)
async def chat_endpoint(
    payload: ChatRequest,
    registry: SessionRegistry = Depends(get_session_registry),
    inference: WorkersAIClient = Depends(get_inference_client),
) -> ChatResponse:
    """
    Record the user turn, ask the inference service for a reply and
    record the reply.

    When inference fails or times out the user turn stays in the history
    and no assistant message is written.
    """
    coordinator = registry.get(payload.session_id)
    image_bytes = decode_image(payload.image) if payload.image else None

    history = await coordinator.submit_user_turn(payload.message)

    try:
        if image_bytes is not None:
            reply = await inference.run_vision(
                image_bytes, payload.message, timeout=payload.timeout
            )
        else:
            reply = await inference.run_text(
                settings.system_prompt, history, payload.message, timeout=payload.timeout
            )
    except InferenceTimeout as exc:
        logger.warning("chat: inference timed out for session %r: %s", payload.session_id, exc)
        raise gateway_timeout(str(exc)) from exc
    except InferenceError as exc:
        logger.warning("chat: inference failed for session %r: %s", payload.session_id, exc)
        details = {"upstream_status": exc.status_code} if exc.status_code else None
        raise bad_gateway(str(exc), details=details) from exc

    await coordinator.submit_assistant_message(reply)
    return ChatResponse(response=reply)


@router.post("/history", response_model=HistoryResponse)
async def history_endpoint(
    payload: SessionRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> HistoryResponse:
    coordinator = registry.get(payload.session_id)
    return HistoryResponse(messages=await coordinator.get_history())


@router.post("/clear", response_model=ClearResponse)
async def clear_endpoint(
    payload: SessionRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> ClearResponse:
    coordinator = registry.get(payload.session_id)
    await coordinator.clear_session()
    return ClearResponse(success=True)


@router.post("/analytics", response_model=Analytics)
async def analytics_endpoint(
    payload: SessionRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> Analytics:
    coordinator = registry.get(payload.session_id)
    return await coordinator.get_analytics()


@router.post("/export")
async def export_endpoint(
    payload: SessionRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> Response:
    """
    Download the conversation as a pretty-printed JSON attachment.
    """
    coordinator = registry.get(payload.session_id)
    messages = await coordinator.get_history()
    body = json.dumps(
        {"messages": [m.model_dump(mode="json") for m in messages]},
        indent=2,
        ensure_ascii=False,
    )
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": "attachment; filename=conversation.json"},
    )


__all__ = ["router", "decode_image"]
