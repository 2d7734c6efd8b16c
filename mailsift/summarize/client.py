"""
Summarization Service Client - cached, rate-limited, de-duplicated summaries.

Pipeline for `summarize(text)`:
  1. fingerprint the raw input
  2. cache hit -> return immediately (no limiter wait, no outbound call)
  3. a concurrent call for the same fingerprint -> share its result
  4. sanitize; without a credential use the local heuristic
  5. otherwise wait on the shared rate limiter, make exactly one call, and
     fall back to the local heuristic on any failure of that call
The result, remote or heuristic, is cached under the fingerprint either way.
"""

from __future__ import annotations

import asyncio
from typing import Any

from pydantic import BaseModel, Field

from mailsift.config import SUMMARY_MAX_LENGTH
from mailsift.errors import EmptyInputError, ServiceTransportError, ServiceUnauthorizedError
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter, log_event, time_block
from mailsift.summarize.backends import SummaryBackend, SummaryRequest
from mailsift.summarize.heuristic import local_summary
from mailsift.summarize.resources import SummarizerResources, get_shared_resources
from mailsift.summarize.text import fingerprint, sanitize

logger = get_logger(__name__)


class SummaryOptions(BaseModel):
    style_hint: str = "concise"
    max_length: int = Field(default=SUMMARY_MAX_LENGTH, gt=0)


class SummarizationClient:
    """Turns raw email text into a short summary string."""

    def __init__(self, backend: SummaryBackend, resources: SummarizerResources | None = None):
        self.backend = backend
        self.resources = resources or get_shared_resources()
        self._inflight: dict[str, asyncio.Future[str]] = {}

    @property
    def cache(self):
        return self.resources.cache

    async def summarize(self, text: str, options: SummaryOptions | None = None) -> str:
        """Return a summary for `text`.

        Raises:
            EmptyInputError: if `text` is blank (no call is made)
        """
        if not text or not text.strip():
            raise EmptyInputError("No content provided for summarization")
        options = options or SummaryOptions()

        key = fingerprint(text)
        cached = self.cache.get(key)
        if cached is not None:
            counter("summarize.cache_hit")
            return cached

        pending = self._inflight.get(key)
        if pending is not None:
            counter("summarize.deduplicated")
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._produce(key, text, options))
        self._inflight[key] = task
        task.add_done_callback(lambda _done: self._inflight.pop(key, None))
        return await asyncio.shield(task)

    async def _produce(self, key: str, text: str, options: SummaryOptions) -> str:
        cleaned = sanitize(text)
        if not cleaned or not self.backend.has_credential:
            counter("summarize.local")
            summary = local_summary(cleaned, options.max_length)
        else:
            summary = await self._remote(cleaned, options)

        self.cache.put(key, summary)
        log_event("summarize.done", key=key, chars=len(summary))
        return summary

    async def _remote(self, cleaned: str, options: SummaryOptions) -> str:
        request = SummaryRequest(
            text=cleaned, style_hint=options.style_hint, max_length=options.max_length
        )
        await self.resources.limiter.acquire()
        counter("summarize.remote_calls")
        try:
            with time_block("summarize.remote"):
                return await self.backend.complete(request)
        except ServiceUnauthorizedError as e:
            counter("summarize.fallback.unauthorized")
            logger.info("Summary service unauthorized, using local summary: %s", e)
        except ServiceTransportError as e:
            counter("summarize.fallback.transport")
            logger.warning("Summary service failed, using local summary: %s", e)
        except Exception as e:
            # backends outside this package may not map their errors
            counter("summarize.fallback.transport")
            logger.warning("Summary backend raised %s, using local summary: %s", type(e).__name__, e)
        return local_summary(cleaned, options.max_length)

    def cache_stats(self) -> dict[str, Any]:
        return {"size": self.cache.size(), "entries": list(self.cache.keys())}

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Summary cache cleared")
