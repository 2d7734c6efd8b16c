"""
Priority Engine - keyword and recency scoring for inbox records.

Scoring rule (additive per keyword, then clamped to 0..100):
  +30 keyword in subject, +20 in sender, +10 in content (case-insensitive;
  one keyword may earn all three), +5 unread, +10 received within 24h.

`prioritize` is a stable sort on score, so equal scores keep their input
(document) order. The engine never mutates the records it is given; it
returns scored copies that keep the original non-owning `source_ref`.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta

from mailsift.config import (
    CONTENT_MATCH_POINTS,
    MAX_PRIORITY,
    MAX_TIER,
    RECENT_POINTS,
    RECENT_WINDOW_HOURS,
    SENDER_MATCH_POINTS,
    SUBJECT_MATCH_POINTS,
    TIER_WIDTH,
    TOP_EMAILS_LIMIT,
    UNREAD_POINTS,
)
from mailsift.inbox.extractor import parse_timestamp
from mailsift.inbox.models import EmailRecord, KeywordSet, UserSettings, utc_now
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter

logger = get_logger(__name__)

Keywords = KeywordSet | Iterable[str]


def priority_tier(score: int) -> int:
    """Coarse presentation bucket 0..4 for a score."""
    return min(max(score, 0) // TIER_WIDTH, MAX_TIER)


def select_top(ranked: Sequence[EmailRecord], k: int = TOP_EMAILS_LIMIT) -> list[EmailRecord]:
    """First k of an already-ranked sequence, keeping only positive scores."""
    return [record for record in ranked[:k] if record.priority > 0]


def _lowered(keywords: Keywords) -> list[str]:
    if isinstance(keywords, KeywordSet):
        return keywords.lowered()
    return [k.strip().lower() for k in keywords if isinstance(k, str) and k.strip()]


class PriorityEngine:
    """Scores and ranks EmailRecords against a keyword set."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock

    def score(
        self,
        record: EmailRecord,
        keywords: Keywords,
        settings: UserSettings | None = None,
    ) -> int:
        """Score one record. `settings` is accepted for the cycle contract;
        no toggle currently changes the formula."""
        return self._score(record, _lowered(keywords), self._clock())

    def _score(self, record: EmailRecord, keywords: list[str], now: datetime) -> int:
        subject = record.subject.lower()
        sender = record.sender.lower()
        content = record.content.lower()

        total = 0
        for keyword in keywords:
            if keyword in subject:
                total += SUBJECT_MATCH_POINTS
            if keyword in sender:
                total += SENDER_MATCH_POINTS
            if keyword in content:
                total += CONTENT_MATCH_POINTS

        if not record.is_read:
            total += UNREAD_POINTS
        if self._is_recent(record.timestamp, now):
            total += RECENT_POINTS

        return min(total, MAX_PRIORITY)

    @staticmethod
    def _is_recent(timestamp: str, now: datetime) -> bool:
        received = parse_timestamp(timestamp) if timestamp else None
        if received is None:
            return False
        return now - received < timedelta(hours=RECENT_WINDOW_HOURS)

    def prioritize(
        self,
        records: Sequence[EmailRecord],
        keywords: Keywords,
        settings: UserSettings | None = None,
    ) -> list[EmailRecord]:
        """Return scored copies sorted by score descending (stable)."""
        lowered = _lowered(keywords)
        now = self._clock()
        scored = [
            dataclasses.replace(record, priority=self._score(record, lowered, now))
            for record in records
        ]
        ranked = sorted(scored, key=lambda r: r.priority, reverse=True)
        counter("priority.records_scored", len(ranked))
        return ranked

    def top_emails(
        self,
        records: Sequence[EmailRecord],
        keywords: Keywords,
        settings: UserSettings | None = None,
        k: int = TOP_EMAILS_LIMIT,
    ) -> list[EmailRecord]:
        """First k ranked records with a positive score (possibly fewer)."""
        top = select_top(self.prioritize(records, keywords, settings), k)
        logger.debug(
            "Top emails: %s",
            [(record.id, record.priority) for record in top],
        )
        return top
