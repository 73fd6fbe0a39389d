import uuid

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware

from .api.chat_routes import router as chat_router
from .errors import error_response
from .exceptions import InvalidMessage, InvalidSession, StorageFailure
from .logging_config import logger
from .schemas import HealthResponse
from .settings import settings


async def handle_invalid_request(request: Request, exc: Exception):
    return error_response(
        status.HTTP_400_BAD_REQUEST, error="bad_request", message=str(exc)
    )


async def handle_storage_failure(request: Request, exc: StorageFailure):
    logger.error(
        "Storage failure on %s %s (session_id=%r, key=%r): %s",
        request.method,
        request.url.path,
        exc.session_id,
        exc.key,
        exc,
    )
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        error="service_unavailable",
        message="Session storage is unavailable, please retry",
        details={"key": exc.key} if exc.key else None,
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    """
    Global fallback: log with a correlation id and return a structured 500.
    """
    error_id = uuid.uuid4().hex
    logger.exception(
        "Unhandled error %s %s (error_id=%s)",
        request.method,
        request.url.path,
        error_id,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        error="internal_error",
        message="Internal server error, please retry later",
        details={"error_id": error_id},
    )


def create_app() -> FastAPI:
    app = FastAPI(title="chat-session-state", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_methods=settings.get_cors_methods(),
        allow_headers=settings.get_cors_headers(),
    )

    app.add_exception_handler(InvalidSession, handle_invalid_request)
    app.add_exception_handler(InvalidMessage, handle_invalid_request)
    app.add_exception_handler(StorageFailure, handle_storage_failure)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse()

    app.include_router(chat_router)
    return app
