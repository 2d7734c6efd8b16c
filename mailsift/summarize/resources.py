"""
Process-wide summarization resources: the summary cache and the rate limiter.

Both live for the whole process and are shared by every SummarizationClient
built on them, so all callers draw from one rate budget. They are injected
into the client rather than read as ambient globals; tests build a fresh
SummarizerResources instead of using the shared one.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import lru_cache

from mailsift.config import SUMMARY_MIN_INTERVAL_SECONDS
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter

logger = get_logger(__name__)


class SummaryCache:
    """Unbounded fingerprint -> summary mapping. Cleared only explicitly."""

    def __init__(self):
        self._entries: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def put(self, key: str, summary: str) -> None:
        self._entries[key] = summary

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class RateLimiter:
    """Minimum-interval gate: at most one call may start per interval.

    Reservations are serialised by an asyncio.Lock, so two waiters never
    compute their start time from the same `last_start`.
    """

    def __init__(
        self,
        min_interval: float = SUMMARY_MIN_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self.last_start: float | None = None

    async def acquire(self) -> float:
        """Suspend until a call may start; returns the recorded start time."""
        async with self._lock:
            now = self._clock()
            if self.last_start is not None:
                delay = self.last_start + self.min_interval - now
                if delay > 0:
                    counter("summarize.rate_limited")
                    logger.debug("Rate limiter waiting %.3fs", delay)
                    await self._sleep(delay)
                    now = self._clock()
            self.last_start = now
            return now

    def reset(self) -> None:
        self.last_start = None


@dataclass
class SummarizerResources:
    """Shared cache + limiter pair."""

    cache: SummaryCache = field(default_factory=SummaryCache)
    limiter: RateLimiter = field(default_factory=RateLimiter)


@lru_cache(maxsize=1)
def get_shared_resources() -> SummarizerResources:
    """Process-wide singleton used when no resources are injected."""
    return SummarizerResources()


def reset_shared_resources() -> None:
    get_shared_resources.cache_clear()
