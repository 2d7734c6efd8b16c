"""
Local heuristic summary used when the external service is unavailable.

Deterministic and side-effect free: the same sanitized text always yields
the same summary, and the result is never empty.
"""

from __future__ import annotations

import re

from mailsift.config import (
    SUMMARY_FALLBACK_WORDS,
    SUMMARY_MAX_LENGTH,
    SUMMARY_MIN_SENTENCE_CHARS,
)

PLACEHOLDER = "Email content available for summarization."

URGENCY_WORDS = (
    "urgent",
    "important",
    "meeting",
    "deadline",
    "action",
    "required",
    "please",
    "need",
    "update",
    "review",
    "confirm",
)

_SENTENCE_BREAK = re.compile(r"[.!?]+")
_ELLIPSIS = "..."
# word fallback only marks truncation on texts longer than this
_WORD_FALLBACK_ELLIPSIS_AFTER = 50


def split_sentences(text: str) -> list[str]:
    parts = (part.strip() for part in _SENTENCE_BREAK.split(text))
    return [part for part in parts if len(part) >= SUMMARY_MIN_SENTENCE_CHARS]


def local_summary(text: str, max_length: int = SUMMARY_MAX_LENGTH) -> str:
    """Pick the most action-oriented sentence of `text` (already sanitized)."""
    text = text.strip()
    if not text:
        return PLACEHOLDER

    sentences = split_sentences(text)
    summary = ""
    for sentence in sentences:
        lowered = sentence.lower()
        if any(word in lowered for word in URGENCY_WORDS):
            summary = f"{sentence}."
            break
    if not summary and sentences:
        summary = f"{sentences[0]}."
    if not summary:
        words = text.split()[:SUMMARY_FALLBACK_WORDS]
        summary = " ".join(words)
        if len(text) > _WORD_FALLBACK_ELLIPSIS_AFTER:
            summary += _ELLIPSIS

    if len(summary) > max_length:
        summary = summary[: max_length - len(_ELLIPSIS)] + _ELLIPSIS
    return summary or PLACEHOLDER
