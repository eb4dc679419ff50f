from __future__ import annotations  # FastAPI server for the mock interview backend

import logging
import os
import time
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.auth_routes import router as auth_router
from api.routes import router as interview_router
from config.settings import Settings, settings as default_settings
from conversation_gateway import ConversationGateway, TavusClient
from errors import AppError
from observability import configure_logging
from storage.cleanup import CleanupRegistry
from storage.object_storage import ObjectStorageGateway
from webhooks import RecordingInfo, TranscriptEvent, WebhookReceiver, WebhookStore

logger = logging.getLogger(__name__)

AVAILABLE_ROUTES = [
    "GET /health",
    "GET /api/test",
    "POST /auth/register",
    "POST /auth/login",
    "GET /auth/verify",
    "POST /interview/create-conversation",
    "GET /interview/get-conversation/:conversationId",
    "GET /interview/conversation-stream/:conversationId",
    "POST /interview/end-conversation",
    "POST /interview/analyze",
    "POST /interview/analysis-report.pdf",
    "POST /interview/conversation-callback",
    "POST /interview/upload-recording",
    "POST /interview/upload-transcript",
    "GET /interview/download-urls/:conversationId",
    "GET /interview/user-transcripts/:userId",
    "DELETE /interview/delete-recording/:conversationId",
    "POST /interview/cleanup-session",
    "GET /interview/cleanup-status/:conversationId",
]


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


def _validation_message(exc: RequestValidationError) -> str:  # First field error as a sentence
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = str(first.get("msg", "Invalid value"))
    return f"{location}: {message}" if location else message


def create_app(
    *,
    vendor: Optional[TavusClient] = None,
    storage: Optional[ObjectStorageGateway] = None,
    config: Optional[Settings] = None,
) -> FastAPI:
    """Build the application with its webhook stores and gateways on ``app.state``."""

    cfg = config or default_settings
    configure_logging()
    app = FastAPI(title="Mock Interview API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    transcripts: WebhookStore[List[TranscriptEvent]] = WebhookStore(
        capacity=cfg.WEBHOOK_CACHE_CAPACITY,
        ttl_seconds=cfg.WEBHOOK_CACHE_TTL_SECONDS,
    )
    recordings: WebhookStore[RecordingInfo] = WebhookStore(
        capacity=cfg.WEBHOOK_CACHE_CAPACITY,
        ttl_seconds=cfg.WEBHOOK_CACHE_TTL_SECONDS,
    )
    vendor_client = vendor or TavusClient(api_key=cfg.TAVUS_API_KEY, base_url=cfg.TAVUS_BASE_URL)
    app.state.transcripts = transcripts
    app.state.recordings = recordings
    app.state.receiver = WebhookReceiver(transcripts, recordings)
    app.state.gateway = ConversationGateway(
        vendor=vendor_client,
        transcripts=transcripts,
        recordings=recordings,
        config=cfg,
    )
    app.state.storage = storage or ObjectStorageGateway()
    app.state.cleanups = CleanupRegistry(
        capacity=cfg.WEBHOOK_CACHE_CAPACITY,
        ttl_seconds=cfg.WEBHOOK_CACHE_TTL_SECONDS,
    )
    app.state.started_at = time.monotonic()

    app.include_router(auth_router)
    app.include_router(interview_router)

    @app.exception_handler(AppError)
    async def _app_error(_: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(_: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return _error(404, f"Route {request.method} {request.url.path} not found", availableRoutes=AVAILABLE_ROUTES)
        return _error(exc.status_code, str(exc.detail))

    @app.get("/health")
    def health() -> dict:
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - app.state.started_at, 3),
            "environment": os.getenv("APP_ENV", "development"),
        }

    @app.get("/api/test")
    def connectivity() -> dict:
        return {
            "success": True,
            "message": "Backend is reachable",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "webhookData": {
                "transcripts": len(app.state.transcripts),
                "recordings": len(app.state.recordings),
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api_server:app", host="0.0.0.0", port=default_settings.PORT)
