"""Summarization proxy endpoint and summary cache diagnostics."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from mailsift.api.dependencies import get_orchestrator
from mailsift.errors import ConsentRequiredError, EmptyInputError
from mailsift.observability.logging import get_logger
from mailsift.orchestrator import InboxOrchestrator
from mailsift.summarize.client import SummaryOptions

router = APIRouter(prefix="/api", tags=["summarize"])
logger = get_logger(__name__)


class SummarizeRequest(BaseModel):
    content: str = Field(..., max_length=100_000)
    options: SummaryOptions = Field(default_factory=SummaryOptions)


class SummarizeResponse(BaseModel):
    summary: str | None = None
    success: bool
    error: str | None = None


@router.post("/summarize", response_model=SummarizeResponse)
async def summarize(
    request: SummarizeRequest,
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> Any:
    try:
        summary = await orchestrator.summarize_text(request.content, request.options)
    except ConsentRequiredError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    except EmptyInputError as e:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=SummarizeResponse(success=False, error=str(e)).model_dump(),
        )
    return SummarizeResponse(summary=summary, success=True)


@router.get("/summaries/cache")
async def get_cache(
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return orchestrator.client.cache_stats()


@router.delete("/summaries/cache")
async def clear_cache(
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    orchestrator.client.clear_cache()
    return {"cleared": True, **orchestrator.client.cache_stats()}
