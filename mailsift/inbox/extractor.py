"""
Record Extractor - converts inbox rows in the document tree into EmailRecords.

Walks every element matching the provider's container locator in document
order. Each field is read from an ordered list of candidate locators (first
non-empty wins). Failures are contained per row: a row that raises is logged
and skipped, so `extract` itself never raises. Extraction only reads the tree.

Identity, in priority order:
  1. the row's own `id` attribute
  2. a provider data attribute (thread / message id)
  3. a fingerprint of the row's flattened text
Inserted presentation markers are ignored throughout, so highlighting a row
never changes the record extracted from it.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from hashlib import sha256

from bs4 import Tag

from mailsift.config import FINGERPRINT_HEX_CHARS, FINGERPRINT_PREFIX_CHARS
from mailsift.errors import ExtractionNodeError
from mailsift.inbox.document import InboxDocument, flattened_text, inside_marker
from mailsift.inbox.models import DEFAULT_SENDER, DEFAULT_SUBJECT, EmailRecord, utc_now
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter, log_event
from mailsift.providers.profiles import ProviderProfile
from mailsift.utils.redaction import redact_subject

logger = get_logger(__name__)

SUBJECT_FALLBACKS = ('[data-test-id="message-subject"]', "[title]", ".subject", ".email-subject")
SENDER_FALLBACKS = ('[data-test-id="message-sender"]', "[email]", ".sender", ".from")
CONTENT_FALLBACKS = (".snippet", ".preview", ".email-preview", '[data-test-id="message-snippet"]')
TIMESTAMP_FALLBACKS = ('[data-test-id="message-time"]', ".time", ".timestamp", '[title*=":"]')
UNREAD_FALLBACKS = (".unread", '[data-test-id="unread"]', ".email-unread")

# data-test-id is deliberately absent: it names a widget type, shared by every row.
IDENTITY_ATTRIBUTES = (
    "data-thread-perm-id",
    "data-legacy-thread-id",
    "data-thread-id",
    "data-message-id",
    "data-convid",
)

TIMESTAMP_FORMATS = (
    "%a, %b %d, %Y, %I:%M %p",
    "%b %d, %Y, %I:%M %p",
    "%a, %b %d, %Y at %I:%M %p",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y",
)


def parse_timestamp(value: str) -> datetime | None:
    """Parse the timestamp shapes mail clients render. Naive values are UTC."""
    text = " ".join(value.split())
    if not text:
        return None
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        pass
    if parsed is None:
        for fmt in TIMESTAMP_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    # after the client formats: parsedate silently drops an AM/PM suffix
    if parsed is None:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            parsed = None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def fingerprint_id(node: Tag) -> str:
    """Content-derived identity for rows that expose no stable attribute."""
    text = flattened_text(node)[:FINGERPRINT_PREFIX_CHARS]
    digest = sha256(text.encode("utf-8")).hexdigest()[:FINGERPRINT_HEX_CHARS]
    return f"fp-{digest}"


class RecordExtractor:
    """Derives EmailRecords from the current state of an InboxDocument."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock

    def extract(self, document: InboxDocument, profile: ProviderProfile) -> list[EmailRecord]:
        """Extract every meaningful row, in document order. Never raises."""
        try:
            nodes = document.select(profile.locators.container)
        except Exception as exc:
            logger.warning("Container locator failed for %s: %s", profile.name, exc)
            counter("extractor.container_errors")
            return []

        records: list[EmailRecord] = []
        seen_ids: set[str] = set()
        for position, node in enumerate(nodes):
            try:
                record = self._extract_node(node, profile, position)
            except ExtractionNodeError as exc:
                logger.warning("Skipping row %s: %s", exc.position, exc)
                counter("extractor.node_errors")
                continue
            if record is None:
                counter("extractor.rows_without_signal")
                continue
            if record.id in seen_ids:
                logger.debug("Dropping duplicate row id %s at position %d", record.id, position)
                counter("extractor.duplicate_ids")
                continue
            seen_ids.add(record.id)
            records.append(record)

        log_event("extractor.pass", provider=profile.kind.value, rows=len(nodes), records=len(records))
        return records

    def _extract_node(
        self, node: Tag, profile: ProviderProfile, position: int
    ) -> EmailRecord | None:
        try:
            locators = profile.locators
            subject = self._first_value(node, (locators.subject, *SUBJECT_FALLBACKS))
            sender = self._first_value(node, (locators.sender, *SENDER_FALLBACKS))
            content = self._first_value(node, (locators.content, *CONTENT_FALLBACKS), use_title=False)
            raw_timestamp = self._timestamp_value(node, (locators.timestamp, *TIMESTAMP_FALLBACKS))
            is_read = not self._is_unread(node, locators.read_indicator)
            record_id = self._derive_id(node)
        except Exception as exc:
            raise ExtractionNodeError(str(exc) or type(exc).__name__, position=position) from exc

        if not subject and not sender:
            return None

        record = EmailRecord(
            id=record_id,
            subject=subject or DEFAULT_SUBJECT,
            sender=sender or DEFAULT_SENDER,
            content=content,
            timestamp=self._normalize_timestamp(raw_timestamp),
            is_read=is_read,
            priority=0,
            position=position,
            source_ref=node,
        )
        logger.debug(
            "Extracted %s subject=%s content_chars=%d read=%s",
            record.id,
            redact_subject(record.subject),
            len(record.content),
            record.is_read,
        )
        return record

    @staticmethod
    def _first_value(node: Tag, selectors: tuple[str, ...], use_title: bool = True) -> str:
        for selector in selectors:
            for match in node.select(selector):
                if inside_marker(match, stop=node):
                    continue
                text = match.get_text(" ", strip=True)
                if not text and use_title:
                    text = str(match.get("title") or "").strip()
                if text:
                    return " ".join(text.split())
                # first non-marker element decides for this selector
                break
        return ""

    @staticmethod
    def _timestamp_value(node: Tag, selectors: tuple[str, ...]) -> str:
        # Clients show a short label ("10:42 AM") and keep the full date in `title`.
        for selector in selectors:
            for match in node.select(selector):
                if inside_marker(match, stop=node):
                    continue
                candidates = [
                    str(match.get("title") or "").strip(),
                    str(match.get("datetime") or "").strip(),
                    match.get_text(" ", strip=True),
                ]
                present = [candidate for candidate in candidates if candidate]
                for candidate in present:
                    if parse_timestamp(candidate) is not None:
                        return candidate
                if present:
                    return present[0]
                break
        return ""

    @staticmethod
    def _is_unread(node: Tag, indicator: str) -> bool:
        for selector in (indicator, *UNREAD_FALLBACKS):
            if node.css.match(selector):
                return True
            if any(not inside_marker(match, stop=node) for match in node.select(selector)):
                return True
        return False

    @staticmethod
    def _derive_id(node: Tag) -> str:
        element_id = str(node.get("id") or "").strip()
        if element_id:
            return element_id
        for attribute in IDENTITY_ATTRIBUTES:
            value = str(node.get(attribute) or "").strip()
            if value:
                return value
        return fingerprint_id(node)

    def _normalize_timestamp(self, raw: str) -> str:
        if not raw:
            return self._clock().isoformat()
        parsed = parse_timestamp(raw)
        if parsed is None:
            # kept verbatim; scores as "not recent"
            return raw
        return parsed.isoformat()
