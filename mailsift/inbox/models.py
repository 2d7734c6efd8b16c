"""
Inbox domain models.

EmailRecord is one inbox row at a point in time. Its `id` is derived from
observable element state only, so two extraction passes over an unchanged tree
produce equal records. `source_ref` is a non-owning pointer back into the
document tree used for highlighting and scroll-into-view; it never takes part
in equality and is never serialized.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mailsift.config import DEFAULT_KEYWORDS, KEYWORD_MAX_LENGTH
from mailsift.errors import KeywordError
from mailsift.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SUBJECT = "No Subject"
DEFAULT_SENDER = "Unknown Sender"


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


@dataclass
class EmailRecord:
    """A single extracted inbox entry."""

    id: str
    subject: str = DEFAULT_SUBJECT
    sender: str = DEFAULT_SENDER
    content: str = ""
    timestamp: str = ""
    is_read: bool = True
    priority: int = 0
    position: int = 0
    source_ref: Any = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Serialise record fields (source_ref is intentionally absent)."""
        return {
            "id": self.id,
            "subject": self.subject,
            "sender": self.sender,
            "content": self.content,
            "timestamp": self.timestamp,
            "is_read": self.is_read,
            "priority": self.priority,
            "position": self.position,
        }


class KeywordSet:
    """Ordered, case-insensitively unique set of user keywords."""

    def __init__(self, keywords: Iterable[str] = ()):
        self._keywords: list[str] = []
        for keyword in keywords:
            self.add(keyword)

    @classmethod
    def from_values(cls, values: Iterable[Any] | None) -> KeywordSet:
        """Build a set from untrusted values, skipping anything invalid."""
        keyword_set = cls()
        for value in values or ():
            if not isinstance(value, str):
                logger.warning("Skipping non-string keyword: %r", type(value).__name__)
                continue
            try:
                keyword_set.add(value)
            except KeywordError as exc:
                logger.warning("Skipping keyword: %s", exc)
        return keyword_set

    @classmethod
    def defaults(cls) -> KeywordSet:
        return cls(DEFAULT_KEYWORDS)

    def add(self, keyword: str) -> None:
        cleaned = keyword.strip()
        if not cleaned:
            raise KeywordError("keyword cannot be empty")
        if len(cleaned) > KEYWORD_MAX_LENGTH:
            raise KeywordError(f"keyword is too long (max {KEYWORD_MAX_LENGTH} characters)")
        if cleaned in self:
            raise KeywordError(f"keyword already exists: {cleaned}")
        self._keywords.append(cleaned)

    def remove(self, keyword: str) -> bool:
        """Remove a keyword (case-insensitive). Returns False if absent."""
        lowered = keyword.strip().lower()
        for index, existing in enumerate(self._keywords):
            if existing.lower() == lowered:
                del self._keywords[index]
                return True
        return False

    def lowered(self) -> list[str]:
        return [keyword.lower() for keyword in self._keywords]

    def to_list(self) -> list[str]:
        return list(self._keywords)

    def __contains__(self, keyword: object) -> bool:
        if not isinstance(keyword, str):
            return False
        return keyword.strip().lower() in self.lowered()

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._keywords))

    def __len__(self) -> int:
        return len(self._keywords)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeywordSet):
            return NotImplemented
        return self._keywords == other._keywords

    def __repr__(self) -> str:
        return f"KeywordSet({self._keywords!r})"


class UserSettings(BaseModel):
    """Feature toggles read on every scoring/render cycle."""

    model_config = ConfigDict(frozen=True)

    highlight_mode: bool = True
    summarization_enabled: bool = True
    widget_enabled: bool = True

    def merged(self, **changes: bool) -> UserSettings:
        """Return a copy with the given toggles replaced."""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"unknown settings: {', '.join(sorted(unknown))}")
        return self.model_copy(update=changes)


class Preferences(BaseModel):
    """Everything the pipeline reads from the settings store."""

    keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_KEYWORDS))
    settings: UserSettings = Field(default_factory=UserSettings)
    consent_given: bool = False
    summary_credential: str | None = None

    def keyword_set(self) -> KeywordSet:
        return KeywordSet.from_values(self.keywords)
