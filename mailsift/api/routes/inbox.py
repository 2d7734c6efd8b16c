"""Inbox session endpoints: page snapshots, manual refresh and status.

The extension posts the inbox markup whenever it changes. A new URL starts a
fresh session; a snapshot of the current URL replaces the observed inbox
subtree, which goes through the same debounced watcher path a live host
re-render would. The response is sent once that cycle has rendered; the
background summaries it starts show up in `GET /api/widget` as they finish.
"""

from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mailsift.api.dependencies import get_orchestrator
from mailsift.inbox.document import InboxDocument
from mailsift.observability.logging import get_logger
from mailsift.orchestrator import InboxOrchestrator

router = APIRouter(prefix="/api", tags=["inbox"])
logger = get_logger(__name__)


class InboxSnapshot(BaseModel):
    url: str = Field(..., min_length=1)
    html: str


def _inbox_markup(html: str, inbox_locator: str) -> str:
    """Inner markup of the inbox container in a posted page, else the whole page."""
    page = BeautifulSoup(html, "html.parser")
    inbox = page.select_one(inbox_locator)
    return inbox.decode_contents() if inbox is not None else html


@router.post("/inbox")
async def post_inbox(
    snapshot: InboxSnapshot,
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    document = orchestrator.document
    same_page = (
        orchestrator.initialized
        and document is not None
        and orchestrator.profile is not None
        and document.url == snapshot.url
    )

    started = True
    if same_page:
        locator = orchestrator.profile.locators.inbox
        try:
            document.replace_subtree(locator, _inbox_markup(snapshot.html, locator))
        except LookupError:
            logger.info("Inbox container missing, restarting session")
            same_page = False

    if not same_page:
        started = await orchestrator.start(InboxDocument(snapshot.html, snapshot.url))

    # the cycle has rendered once the watcher is quiet; summaries keep arriving
    if orchestrator.watcher is not None:
        await orchestrator.watcher.settle()
    return {"started": started, "status": orchestrator.status()}


@router.post("/refresh")
async def refresh(
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    top = await orchestrator.refresh()
    return {"top_email_ids": [record.id for record in top], "status": orchestrator.status()}


@router.get("/status")
async def get_status(
    orchestrator: InboxOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return orchestrator.status()
