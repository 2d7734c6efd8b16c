"""FastAPI server for MailSift"""

from __future__ import annotations

from typing import Any

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mailsift.api.routes.health import router as health_router
from mailsift.api.routes.inbox import router as inbox_router
from mailsift.api.routes.preferences import router as preferences_router
from mailsift.api.routes.summarize import router as summarize_router
from mailsift.api.routes.widget import router as widget_router
from mailsift.config import API_HOST, API_PORT, APP_VERSION, is_development
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter, log_event
from mailsift.orchestrator import InboxOrchestrator, build_orchestrator
from mailsift.utils.redaction import redact

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)

ALLOWED_ORIGINS = [
    "https://mail.google.com",
    "https://outlook.live.com",
    "https://outlook.office.com",
    "https://mail.yahoo.com",
]

DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8000",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:8000",
]


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Custom validation error handler that prevents leaking internal validation logic.
    """
    logger.warning("Validation error on %s: %s", redact(str(request.url)), exc.errors())
    counter("api.validation_errors")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


def create_app(orchestrator: InboxOrchestrator | None = None) -> FastAPI:
    """Build the API around one inbox session."""
    app = FastAPI(title="MailSift API", version=APP_VERSION)
    app.state.orchestrator = orchestrator or build_orchestrator()

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    origins = ALLOWED_ORIGINS + (DEV_ORIGINS if is_development() else [])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    app.include_router(health_router)
    app.include_router(inbox_router)
    app.include_router(widget_router)
    app.include_router(summarize_router)
    app.include_router(preferences_router)

    @app.get("/")
    def root() -> dict[str, Any]:
        return {
            "service": "MailSift API",
            "version": APP_VERSION,
            "status": "running",
            "endpoints": {
                "health": "/health",
                "inbox": "/api/inbox",
                "widget": "/api/widget",
                "summarize": "/api/summarize",
                "status": "/api/status",
                "keywords": "/api/keywords",
                "settings": "/api/settings",
                "consent": "/api/consent",
            },
        }

    log_event("api.startup", service="mailsift", version=APP_VERSION)
    return app


app = create_app()


def main() -> None:
    uvicorn.run(app, host=API_HOST, port=API_PORT)
