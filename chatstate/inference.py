"""
Client for the text/vision inference service (Workers AI REST API).

The session core never calls this module; only the chat route does.
Responses are treated as untyped payloads and validated before any text
is handed back, so a malformed reply surfaces as InferenceError rather
than as a broken message in the ledger.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .exceptions import InferenceError, InferenceTimeout
from .logging_config import logger
from .models import Message
from .settings import settings


def extract_text(payload: Any, field: str) -> str:
    """
    Pull `field` out of a Workers AI response.

    Accepts both the REST envelope `{"result": {...}, "success": true}`
    and the bare result object.
    """
    if not isinstance(payload, dict):
        raise InferenceError("Inference response is not a JSON object")
    if payload.get("success") is False:
        errors = payload.get("errors") or []
        raise InferenceError(f"Inference service reported failure: {errors!r}")
    result = payload.get("result", payload)
    if not isinstance(result, dict):
        raise InferenceError("Inference response has no result object")
    value = result.get(field)
    if not isinstance(value, str) or not value.strip():
        raise InferenceError(f"Inference response is missing a text {field!r} field")
    return value


def build_text_messages(
    system_prompt: str, history: Sequence[Message], new_user_text: str
) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": m.role.value, "content": m.content} for m in history)
    messages.append({"role": "user", "content": new_user_text})
    return messages


class WorkersAIClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str,
        api_token: Optional[str] = None,
        text_model: str = settings.text_model,
        vision_model: str = settings.vision_model,
        vision_max_tokens: int = settings.vision_max_tokens,
        default_timeout: float = settings.inference_timeout,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self.text_model = text_model
        self.vision_model = vision_model
        self.vision_max_tokens = vision_max_tokens
        self.default_timeout = default_timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    async def _post(self, model: str, body: Dict[str, Any], timeout: float) -> Any:
        url = f"{self._base_url}/{model}"
        try:
            response = await self._client.post(
                url, json=body, headers=self._headers(), timeout=timeout
            )
        except httpx.TimeoutException as exc:
            raise InferenceTimeout(f"Inference request to {model} timed out") from exc
        except httpx.HTTPError as exc:
            raise InferenceError(f"Inference request to {model} failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "inference: %s returned HTTP %s: %s",
                model,
                response.status_code,
                response.text[:500],
            )
            raise InferenceError(
                f"Inference service returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise InferenceError("Inference response is not valid JSON") from exc

    async def _run(self, model: str, body: Dict[str, Any], field: str, timeout: Optional[float]) -> str:
        limit = timeout if timeout is not None else self.default_timeout
        try:
            payload = await asyncio.wait_for(
                self._post(model, body, limit), timeout=limit
            )
        except asyncio.TimeoutError as exc:
            logger.warning("inference: %s exceeded %.1fs timeout", model, limit)
            raise InferenceTimeout(
                f"Inference request to {model} exceeded {limit:.1f}s"
            ) from exc
        return extract_text(payload, field)

    async def run_text(
        self,
        system_prompt: str,
        history: Sequence[Message],
        new_user_text: str,
        *,
        timeout: Optional[float] = None,
    ) -> str:
        body = {"messages": build_text_messages(system_prompt, history, new_user_text)}
        return await self._run(self.text_model, body, "response", timeout)

    async def run_vision(
        self, image_bytes: bytes, prompt: str, *, timeout: Optional[float] = None
    ) -> str:
        body = {
            "image": list(image_bytes),
            "prompt": prompt,
            "max_tokens": self.vision_max_tokens,
        }
        return await self._run(self.vision_model, body, "description", timeout)


__all__ = ["WorkersAIClient", "build_text_messages", "extract_text"]
