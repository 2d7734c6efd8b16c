"""Preference endpoints: keywords, feature toggles, consent and the summary credential."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from mailsift.api.dependencies import get_orchestrator
from mailsift.errors import KeywordError
from mailsift.orchestrator import InboxOrchestrator

router = APIRouter(prefix="/api", tags=["preferences"])


class KeywordsUpdate(BaseModel):
    keywords: list[str] = Field(..., max_length=100)


class SettingsUpdate(BaseModel):
    highlight_mode: bool | None = None
    summarization_enabled: bool | None = None
    widget_enabled: bool | None = None


class ConsentUpdate(BaseModel):
    granted: bool


class CredentialUpdate(BaseModel):
    credential: str | None = Field(default=None, max_length=200)


@router.put("/keywords")
async def put_keywords(
    update: KeywordsUpdate,
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    try:
        keywords = await orchestrator.update_keywords(update.keywords)
    except KeywordError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return {"keywords": keywords.to_list()}


@router.put("/settings")
async def put_settings(
    update: SettingsUpdate,
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    settings = await orchestrator.update_settings(**update.model_dump(exclude_none=True))
    return {"settings": settings.model_dump()}


@router.put("/consent")
async def put_consent(
    update: ConsentUpdate,
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    preferences = await orchestrator.set_consent(update.granted)
    return {
        "consent_given": preferences.consent_given,
        "settings": preferences.settings.model_dump(),
    }


@router.put("/credential")
async def put_credential(
    update: CredentialUpdate,
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    ready = await orchestrator.update_credential(update.credential)
    return {"llm": {"ready": ready, "mode": "remote" if ready else "local"}}
