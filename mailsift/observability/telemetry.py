"""
In-process telemetry for the inbox pipeline.

Nothing is exported to a metrics backend. Counters and latency samples live in
module-level dicts for the life of the process: tests assert on them and the
health endpoint reports a snapshot.

Counter names are dotted by component, e.g. `extractor.duplicate_ids`,
`watcher.events`, `summarize.cache_hit`, `store.unavailable`.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger("mailsift.telemetry")

_COUNTERS: dict[str, int] = {}
_LATENCIES: dict[str, list[float]] = {}


def log_event(event_name: str, **fields: Any) -> None:
    """
    Structured info-level event. Never pass subjects or bodies unredacted.
    """
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """Bump a named counter and return its new value."""
    value = _COUNTERS.get(name, 0) + increment
    _COUNTERS[name] = value
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


def snapshot() -> dict[str, Any]:
    """Copy of every counter plus sample count and mean per timed block."""
    latencies = {
        name: {"count": len(samples), "avg_seconds": sum(samples) / len(samples)}
        for name, samples in _LATENCIES.items()
        if samples
    }
    return {"counters": dict(sorted(_COUNTERS.items())), "latencies": latencies}


def reset_counters() -> None:
    """Forget all counters and latency samples."""
    _COUNTERS.clear()
    _LATENCIES.clear()


@contextlib.contextmanager
def time_block(metric_name: str) -> Iterator[None]:
    """Record the wall time of the enclosed block under `metric_name`."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        logger.debug("timing=%s seconds=%.6f", metric_name, elapsed)
        _LATENCIES.setdefault(metric_name, []).append(elapsed)


def get_latencies(metric_name: str) -> list[float]:
    return list(_LATENCIES.get(metric_name, []))
