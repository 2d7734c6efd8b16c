"""
Inbox Orchestrator - wires extraction, scoring, display and summarization.

Cycle: Idle -> Extracting -> Scoring (+ highlight) -> Rendering -> Idle.
Cycles are serialised by a lock. After rendering, a bounded background task
summarizes the top few records one at a time with a fixed pacing delay.
Those tasks are never cancelled by a later cycle; their results are applied
by id through the display controller, which ignores ids that are no longer
listed.

Summarization of any kind requires consent. Scoring and highlighting do not.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import Any

from bs4 import Tag

from mailsift.config import AUTO_SUMMARIZE_COUNT, AUTO_SUMMARIZE_PACING_SECONDS, TOP_EMAILS_LIMIT
from mailsift.display.controller import DisplayStateController
from mailsift.errors import ConsentRequiredError
from mailsift.inbox.document import InboxDocument
from mailsift.inbox.extractor import RecordExtractor
from mailsift.inbox.models import EmailRecord, KeywordSet, Preferences, UserSettings
from mailsift.inbox.watcher import MutationWatcher
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter, log_event
from mailsift.priority.engine import PriorityEngine, select_top
from mailsift.priority.highlight import apply_highlighting, clear_highlighting
from mailsift.providers.profiles import ProviderProfile, detect_profile
from mailsift.storage.settings_store import InMemorySettingsStore, PreferencesRepository, SettingsStore
from mailsift.summarize.backends import GeminiSummaryBackend, SummaryBackend
from mailsift.summarize.client import SummarizationClient, SummaryOptions
from mailsift.summarize.resources import SummarizerResources

logger = get_logger(__name__)

CYCLE_ERROR_MESSAGE = "Failed to analyze emails. Please try again."
SUMMARY_ERROR_MESSAGE = "Failed to summarize email. Please try again."

Highlighter = Callable[..., int]
Sleep = Callable[[float], Awaitable[None]]
WatcherFactory = Callable[..., MutationWatcher]


class CycleState(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    SCORING = "scoring"
    RENDERING = "rendering"


class InboxOrchestrator:
    """One inbox session: a document, its provider profile and the pipeline."""

    def __init__(
        self,
        extractor: RecordExtractor,
        engine: PriorityEngine,
        client: SummarizationClient,
        display: DisplayStateController,
        repository: PreferencesRepository,
        highlighter: Highlighter = apply_highlighting,
        sleep: Sleep = asyncio.sleep,
        pacing: float = AUTO_SUMMARIZE_PACING_SECONDS,
        auto_summarize_count: int = AUTO_SUMMARIZE_COUNT,
        watcher_factory: WatcherFactory | None = None,
    ):
        self.extractor = extractor
        self.engine = engine
        self.client = client
        self.display = display
        self.repository = repository
        self._highlighter = highlighter
        self._sleep = sleep
        self.pacing = pacing
        self.auto_summarize_count = auto_summarize_count
        self._watcher_factory = watcher_factory or self._default_watcher

        self.document: InboxDocument | None = None
        self.profile: ProviderProfile | None = None
        self.watcher: MutationWatcher | None = None
        self.preferences = Preferences()
        self.records: list[EmailRecord] = []
        self.top: list[EmailRecord] = []
        self.state = CycleState.IDLE
        self.summarizing = 0
        self.initialized = False

        self._cycle_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._store_unsubscribe: Callable[[], None] | None = None
        self._own_write = False

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start(self, document: InboxDocument, profile: ProviderProfile | None = None) -> bool:
        """Attach to an inbox page. Returns False for unsupported or non-inbox pages."""
        profile = profile or detect_profile(document.url)
        if profile is None:
            logger.info("Not on a supported email service")
            return False
        if not profile.is_inbox_page(document.url):
            logger.info("Not on an inbox page of %s", profile.name)
            return False

        if self.initialized:
            self.stop()

        self.document = document
        self.profile = profile
        await self._load_preferences()
        self.display.set_visible(self.preferences.settings.widget_enabled)
        self._store_unsubscribe = self.repository.subscribe(self._on_store_change)

        self.watcher = self._watcher_factory(
            document,
            profile.locators.container,
            profile.locators.inbox,
            self._probe,
            self.run_cycle,
        )
        self.watcher.attach()
        self.initialized = True
        log_event("orchestrator.started", service=profile.kind.value)
        return True

    def stop(self) -> None:
        """Detach from the page. In-flight summaries are left to finish."""
        if self.watcher is not None:
            self.watcher.detach()
            self.watcher = None
        if self._store_unsubscribe is not None:
            self._store_unsubscribe()
            self._store_unsubscribe = None
        if self.document is not None:
            clear_highlighting(self.document)
        self.initialized = False
        logger.info("Orchestrator stopped")

    def _default_watcher(self, document, container_locator, inbox_locator, probe, handler):
        return MutationWatcher(
            document, container_locator, inbox_locator, probe, handler, sleep=self._sleep
        )

    def _probe(self) -> list[EmailRecord]:
        if self.document is None or self.profile is None:
            return []
        return self.extractor.extract(self.document, self.profile)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> list[EmailRecord]:
        """Extract, score, highlight and render once. Returns the top records."""
        if self.document is None or self.profile is None:
            return []

        async with self._cycle_lock:
            settings = self.preferences.settings
            try:
                self.state = CycleState.EXTRACTING
                records = self.extractor.extract(self.document, self.profile)

                self.state = CycleState.SCORING
                ranked = self.engine.prioritize(records, self.preferences.keyword_set(), settings)
                self._highlighter(self.document, ranked, settings)

                self.state = CycleState.RENDERING
                top = select_top(ranked, TOP_EMAILS_LIMIT)
                self.display.set_visible(settings.widget_enabled)
                self.display.set_top_emails(top)
                if self.display.state.error:
                    self.display.set_error(None)
            except Exception as e:
                counter("orchestrator.cycle_errors")
                logger.error("Cycle failed: %s", e, exc_info=True)
                self.display.set_error(CYCLE_ERROR_MESSAGE)
                return []
            finally:
                self.state = CycleState.IDLE

            self.records = records
            self.top = top
            counter("orchestrator.cycles")
            logger.info("Cycle done: %d records, %d prioritized", len(records), len(top))

        if self._summarization_allowed():
            self._spawn(self._auto_summarize(top))
        return top

    async def refresh(self) -> list[EmailRecord]:
        """Manual retry: reload preferences, clear any error, run a cycle."""
        await self._load_preferences()
        self.display.set_error(None)
        return await self.run_cycle()

    def _summarization_allowed(self) -> bool:
        return self.preferences.consent_given and self.preferences.settings.summarization_enabled

    async def _auto_summarize(self, top: list[EmailRecord]) -> None:
        self.summarizing += 1
        try:
            attempted = 0
            for record in top[: self.auto_summarize_count]:
                if not self._summarization_allowed():
                    break
                if self.display.has_summary(record.id):
                    continue
                if attempted:
                    await self._sleep(self.pacing)
                attempted += 1
                try:
                    summary = await self.client.summarize(record.content or record.subject)
                except Exception as e:
                    counter("orchestrator.auto_summary_errors")
                    logger.warning("Auto-summary failed for %s: %s", record.id, e)
                    continue
                self.display.set_summary(record.id, summary)
        finally:
            self.summarizing -= 1

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for background summarization tasks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def settle(self) -> None:
        """Wait until the watcher and every background task are quiet."""
        while True:
            if self.watcher is not None:
                await self.watcher.settle()
            await self.drain()
            if not self._tasks and (self.watcher is None or not self.watcher.pending):
                return

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def summarize_email(self, email_id: str) -> str | None:
        """Summarize one listed record on demand.

        Returns None (and shows the retry-able error state) when the
        summarization fails.

        Raises:
            ConsentRequiredError: if the user has not granted consent
            LookupError: if no current record has this id
        """
        if not self.preferences.consent_given:
            raise ConsentRequiredError("consent is required for summarization")
        record = self._find(email_id)
        if record is None:
            raise LookupError(f"unknown email id: {email_id}")

        self.display.set_loading(True)
        try:
            summary = await self.client.summarize(record.content or record.subject)
        except Exception as e:
            counter("orchestrator.summary_errors")
            logger.warning("Summary failed for %s: %s", email_id, e)
            self.display.set_error(SUMMARY_ERROR_MESSAGE)
            return None
        finally:
            if self.display.state.loading:
                self.display.set_loading(False)
        self.display.set_summary(email_id, summary)
        return summary

    async def summarize_text(self, text: str, options: SummaryOptions | None = None) -> str:
        """Consent-gated pass-through to the summarization client."""
        if not self.preferences.consent_given:
            raise ConsentRequiredError("consent is required for summarization")
        return await self.client.summarize(text, options)

    def toggle_expanded(self, email_id: str) -> bool:
        return self.display.toggle_expanded(email_id)

    def locate(self, email_id: str) -> Tag | None:
        """Current tree node for a record, or None if the host re-rendered it."""
        record = self._find(email_id)
        if record is None or self.document is None:
            return None
        node = record.source_ref
        return node if self.document.contains(node) else None

    def _find(self, email_id: str) -> EmailRecord | None:
        for record in self.records:
            if record.id == email_id:
                return record
        return None

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def update_keywords(self, values: Iterable[str]) -> KeywordSet:
        """Replace the keyword set. Raises KeywordError for an invalid keyword."""
        keywords = KeywordSet(values)
        await self._write(self.repository.save_keywords(keywords))
        self.preferences = self.preferences.model_copy(update={"keywords": keywords.to_list()})
        await self.run_cycle()
        return keywords

    async def update_settings(self, **changes: bool) -> UserSettings:
        settings = self.preferences.settings.merged(**changes)
        await self._write(self.repository.save_settings(settings))
        self.preferences = self.preferences.model_copy(update={"settings": settings})
        await self.run_cycle()
        return settings

    async def set_consent(self, granted: bool) -> Preferences:
        """Record the consent decision. Declining also turns summarization off."""
        await self._write(self.repository.save_consent(granted))
        update: dict[str, Any] = {"consent_given": granted}
        if not granted:
            settings = self.preferences.settings.merged(summarization_enabled=False)
            await self._write(self.repository.save_settings(settings))
            update["settings"] = settings
        self.preferences = self.preferences.model_copy(update=update)
        log_event("orchestrator.consent", granted=granted)
        await self.run_cycle()
        return self.preferences

    async def update_credential(self, credential: str | None) -> bool:
        """Store the summary service credential and hand it to the backend.

        Returns whether the backend now has a credential. A blank value
        removes the stored one.
        """
        credential = (credential or "").strip() or None
        await self._write(self.repository.save_credential(credential))
        self.preferences = self.preferences.model_copy(update={"summary_credential": credential})
        self.client.backend.set_credential(credential)
        log_event("orchestrator.credential", configured=credential is not None)
        return self.client.backend.has_credential

    async def _write(self, save: Awaitable[bool]) -> bool:
        self._own_write = True
        try:
            return await save
        finally:
            self._own_write = False

    async def _load_preferences(self) -> None:
        self.preferences = await self.repository.load()
        self.client.backend.set_credential(self.preferences.summary_credential)

    def _on_store_change(self, changes: dict[str, Any]) -> None:
        if self._own_write or not self.initialized:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Store change outside event loop ignored: %s", sorted(changes))
            return
        logger.info("Settings changed externally: %s", sorted(changes))
        self._spawn(self.refresh())

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        return {
            "service": self.profile.name if self.profile else None,
            "initialized": self.initialized,
            "consent_given": self.preferences.consent_given,
            "settings": self.preferences.settings.model_dump(),
            "keywords": list(self.preferences.keywords),
            "state": self.state.value,
            "email_count": len(self.records),
            "top_email_ids": [record.id for record in self.top],
            "summarizing": self.summarizing,
            "cache_size": self.client.cache.size(),
        }


def build_orchestrator(
    store: SettingsStore | None = None,
    backend: SummaryBackend | None = None,
    resources: SummarizerResources | None = None,
    sink: Callable[[str], None] | None = None,
) -> InboxOrchestrator:
    """Production wiring: Gemini backend, shared resources, in-memory store."""
    return InboxOrchestrator(
        extractor=RecordExtractor(),
        engine=PriorityEngine(),
        client=SummarizationClient(backend or GeminiSummaryBackend(), resources),
        display=DisplayStateController(sink=sink),
        repository=PreferencesRepository(store or InMemorySettingsStore()),
    )
