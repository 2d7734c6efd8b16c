"""
Summary backends - the single outbound call to the external text service.

A backend makes exactly one attempt per `complete()` call and reports failure
through two categories only: ServiceUnauthorizedError (the credential was
rejected) and ServiceTransportError (everything else). Retrying and fallback
are the client's decision, never the backend's.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from google.api_core.exceptions import PermissionDenied, Unauthenticated
from pydantic import BaseModel, Field

from mailsift.config import SUMMARY_MAX_LENGTH
from mailsift.errors import ServiceTransportError, ServiceUnauthorizedError
from mailsift.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_TEMPERATURE
from mailsift.llm.gemini import get_gemini_model, resolve_project
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter

logger = get_logger(__name__)


class SummaryRequest(BaseModel):
    """Request body for one summarization call (text is already sanitized)."""

    text: str = Field(..., min_length=1)
    style_hint: str = "concise"
    max_length: int = Field(default=SUMMARY_MAX_LENGTH, gt=0)


def build_prompt(request: SummaryRequest) -> str:
    return (
        f"Please provide a {request.style_hint} summary of the following email content "
        f"in {request.max_length} characters or less. Focus on the key points, action "
        "items, and important information:\n\n"
        f"Email Content:\n{request.text}\n\n"
        "Summary:"
    )


class SummaryBackend(Protocol):
    """External summarization service contract."""

    @property
    def has_credential(self) -> bool: ...

    def set_credential(self, credential: str | None) -> None: ...

    async def complete(self, request: SummaryRequest) -> str: ...


class GeminiSummaryBackend:
    """Summaries from Gemini on Vertex AI. The credential is a GCP project id."""

    def __init__(
        self,
        project: str | None = None,
        model_factory: Callable[[str | None], Any] = get_gemini_model,
    ):
        self._project = resolve_project(project)
        self._model_factory = model_factory

    @property
    def has_credential(self) -> bool:
        return bool(self._project)

    def set_credential(self, credential: str | None) -> None:
        resolved = resolve_project(credential)
        if resolved != self._project:
            logger.info("Summary credential %s", "updated" if resolved else "removed")
        self._project = resolved

    async def complete(self, request: SummaryRequest) -> str:
        """One Gemini call. Raises ServiceUnauthorizedError / ServiceTransportError."""
        if not self._project:
            raise ServiceUnauthorizedError("no Google Cloud project configured")

        generation_config = {
            "temperature": GEMINI_TEMPERATURE,
            "max_output_tokens": GEMINI_MAX_TOKENS,
        }
        try:
            model = self._model_factory(self._project)
            response = await model.generate_content_async(
                build_prompt(request), generation_config=generation_config
            )
            text = response.text
        except (Unauthenticated, PermissionDenied) as e:
            counter("summarize.gemini.unauthorized")
            logger.warning("Gemini rejected credential: %s", e)
            raise ServiceUnauthorizedError(str(e)) from e
        except Exception as e:
            # includes GeminiInitializationError and ValueError from a blocked response
            counter("summarize.gemini.transport_error")
            logger.warning("Gemini call failed: %s", e)
            raise ServiceTransportError(str(e) or type(e).__name__) from e

        summary = (text or "").strip()
        if not summary:
            counter("summarize.gemini.empty_response")
            raise ServiceTransportError("empty response from Gemini")
        return summary
