"""
Mutation Watcher - turns raw tree notifications into debounced change events.

Raw notifications are filtered to those that add record containers, then
collapsed with a fixed debounce window: the first relevant notification opens
the window, later ones inside it are absorbed, and a single event fires when
the window closes. A tree that never stops mutating therefore still yields one
event per window.

On attach, an initial probe covers late-loading inboxes: while the probe finds
zero records it is retried a bounded number of times, then exactly one event
is emitted whatever the outcome.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from bs4 import Tag

from mailsift.config import (
    WATCH_DEBOUNCE_SECONDS,
    WATCH_RETRY_ATTEMPTS,
    WATCH_RETRY_DELAY_SECONDS,
)
from mailsift.inbox.document import InboxDocument, MutationRecord, Subscription
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter

logger = get_logger(__name__)

ChangeHandler = Callable[[], Awaitable[Any]]
Probe = Callable[[], list]
Sleep = Callable[[float], Awaitable[None]]


class MutationWatcher:
    """Observes the inbox subtree and emits debounced 'records changed' events."""

    def __init__(
        self,
        document: InboxDocument,
        container_locator: str,
        inbox_locator: str | None,
        probe: Probe,
        handler: ChangeHandler,
        debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
        retry_attempts: int = WATCH_RETRY_ATTEMPTS,
        retry_delay: float = WATCH_RETRY_DELAY_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.document = document
        self.container_locator = container_locator
        self.inbox_locator = inbox_locator
        self._probe = probe
        self._handler = handler
        self.debounce_seconds = debounce_seconds
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

        self._subscription: Subscription | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task] = set()
        self._window_open = False
        self.events_emitted = 0
        self.notifications_seen = 0

    @property
    def attached(self) -> bool:
        return self._subscription is not None

    def attach(self) -> None:
        """Subscribe to the inbox subtree and schedule the initial probe.

        Must be called from inside a running event loop.
        """
        if self.attached:
            self.detach()
        self._loop = asyncio.get_running_loop()
        self._subscription = self.document.subscribe(self.inbox_locator, self._on_mutation)
        self._spawn(self._initial_probe())

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._window_open = False

    @property
    def pending(self) -> bool:
        return bool(self._tasks)

    async def settle(self) -> None:
        """Wait for any pending probe or debounce window to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        if self._loop is None:
            coro.close()
            raise RuntimeError("watcher not attached")
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _initial_probe(self) -> None:
        attempt = 0
        while True:
            records = self._probe()
            if records or attempt >= self.retry_attempts:
                break
            attempt += 1
            counter("watcher.initial_retry")
            logger.debug("Inbox empty on attach, retry %d/%d", attempt, self.retry_attempts)
            await self._sleep(self.retry_delay)
        if not records:
            logger.info("No records found after %d retries", self.retry_attempts)
        await self._emit()

    def _on_mutation(self, record: MutationRecord) -> None:
        self.notifications_seen += 1
        if not self._adds_records(record):
            counter("watcher.irrelevant_mutation")
            return
        if self._window_open:
            counter("watcher.absorbed")
            return
        if self._loop is None:
            return
        self._window_open = True
        self._spawn(self._debounced_emit())

    def _adds_records(self, record: MutationRecord) -> bool:
        for node in record.added:
            if not isinstance(node, Tag):
                continue
            if node.css.match(self.container_locator) or node.select_one(self.container_locator):
                return True
        return False

    async def _debounced_emit(self) -> None:
        try:
            await self._sleep(self.debounce_seconds)
        finally:
            self._window_open = False
        await self._emit()

    async def _emit(self) -> None:
        self.events_emitted += 1
        counter("watcher.events")
        await self._handler()
