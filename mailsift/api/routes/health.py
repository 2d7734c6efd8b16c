"""Health check endpoint for MailSift API."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from mailsift.api.dependencies import get_orchestrator
from mailsift.config import APP_VERSION
from mailsift.observability.telemetry import snapshot
from mailsift.orchestrator import InboxOrchestrator

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Health check endpoint.

    Reports whether a summary credential is configured (presence only, no
    API call). Without one, summaries come from the local heuristic.
    """
    has_credential = orchestrator.client.backend.has_credential
    return {
        "status": "healthy",
        "service": "MailSift API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "telemetry": snapshot(),
        "llm": {
            "ready": has_credential,
            "mode": "remote" if has_credential else "local",
        },
    }
