from typing import AsyncIterator, Optional

import httpx
from fastapi import Depends

from .conversation import SessionRegistry
from .inference import WorkersAIClient
from .redis_client import get_redis_client
from .settings import settings
from .storage import InMemorySessionStore, RedisSessionStore, SessionStore

_session_registry: Optional[SessionRegistry] = None


def build_session_store() -> SessionStore:
    if settings.session_store_backend == "memory":
        return InMemorySessionStore()
    return RedisSessionStore(get_redis_client(), prefix=settings.session_key_prefix)


async def get_session_registry() -> SessionRegistry:
    """
    Process-wide registry; it must be shared by all requests so that one
    session maps to one coordinator lock.
    """
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry(build_session_store())
    return _session_registry


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """
    Short-lived AsyncClient for inference calls.
    """
    async with httpx.AsyncClient(timeout=settings.inference_timeout) as client:
        yield client


async def get_inference_client(
    client: httpx.AsyncClient = Depends(get_http_client),
) -> WorkersAIClient:
    return WorkersAIClient(
        client,
        base_url=settings.inference_base_url,
        api_token=settings.inference_api_token,
        text_model=settings.text_model,
        vision_model=settings.vision_model,
        vision_max_tokens=settings.vision_max_tokens,
        default_timeout=settings.inference_timeout,
    )
