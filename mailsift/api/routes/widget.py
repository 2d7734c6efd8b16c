"""Widget endpoints: rendered markup, expand/collapse and per-email summaries."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from mailsift.api.dependencies import get_orchestrator
from mailsift.errors import ConsentRequiredError
from mailsift.orchestrator import InboxOrchestrator

router = APIRouter(prefix="/api", tags=["widget"])


@router.get("/widget")
async def get_widget(
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return {
        "html": orchestrator.display.html,
        "state": orchestrator.display.state.to_dict(),
    }


@router.post("/widget/{email_id}/toggle")
async def toggle_summary(
    email_id: str,
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    expanded = orchestrator.toggle_expanded(email_id)
    return {"email_id": email_id, "expanded": expanded}


@router.post("/emails/{email_id}/summarize")
async def summarize_email(
    email_id: str,
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    try:
        summary = await orchestrator.summarize_email(email_id)
    except ConsentRequiredError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Email not found") from e
    return {"email_id": email_id, "summary": summary, "success": summary is not None}
