"""Request-scoped access to the app's inbox session."""

from __future__ import annotations

from fastapi import Request

from mailsift.orchestrator import InboxOrchestrator


async def get_orchestrator(request: Request) -> InboxOrchestrator:
    return request.app.state.orchestrator
