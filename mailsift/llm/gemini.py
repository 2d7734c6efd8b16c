"""
Gemini Model Manager - shared Vertex AI model instance for summarization.

The model is created lazily on first use and cached per Google Cloud project,
so a credential change from the settings store re-initializes the SDK once
instead of on every call.
"""

from __future__ import annotations

import os
from functools import lru_cache

from mailsift.infrastructure.settings import GEMINI_LOCATION, GEMINI_MODEL, GOOGLE_CLOUD_PROJECT
from mailsift.observability.logging import get_logger

logger = get_logger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a helpful email summarization assistant. Provide concise, accurate "
    "summaries focusing on key information and action items."
)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


def resolve_project(project: str | None = None) -> str | None:
    """Explicit project id, else the environment, else settings."""
    return project or os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT


@lru_cache(maxsize=1)
def get_gemini_model(project: str | None = None):
    """
    Get or create the shared Gemini model instance.

    Args:
        project: Google Cloud project id. Falls back to GOOGLE_CLOUD_PROJECT.

    Returns:
        GenerativeModel: Shared Gemini model with the summarization system
        instruction

    Raises:
        GeminiInitializationError: If model cannot be initialized
    """
    resolved = resolve_project(project)
    location = os.getenv("GEMINI_LOCATION", "") or GEMINI_LOCATION or "us-central1"

    if not resolved:
        raise GeminiInitializationError("GOOGLE_CLOUD_PROJECT not set")

    try:
        import vertexai
        from vertexai.generative_models import GenerativeModel

        vertexai.init(project=resolved, location=location)
        model = GenerativeModel(GEMINI_MODEL, system_instruction=SYSTEM_INSTRUCTION)
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

    logger.info(
        "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
        resolved,
        location,
        GEMINI_MODEL,
    )
    return model


def clear_model_cache() -> None:
    """
    Clear the cached model instance.

    Useful for testing or when reconfiguration is needed.
    """
    get_gemini_model.cache_clear()
    logger.info("Cleared Gemini model cache")
