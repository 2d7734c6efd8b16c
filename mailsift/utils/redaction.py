"""
Redaction for log lines that would otherwise carry inbox content.

Subjects, senders and request URLs go through these helpers before they reach
a logger. The short SHA-256 prefix lets two log lines about the same row be
correlated without printing the value itself.
"""

from __future__ import annotations

from hashlib import sha256

_MISSING = "hash:missing"


def _digest(value: str, chars: int) -> str:
    return sha256(value.encode("utf-8")).hexdigest()[:chars]


def redact(value: str | None) -> str:
    """Opaque, stable token for a sensitive string."""
    if not value:
        return _MISSING
    return f"hash:{_digest(value, 12)}"


def redact_subject(subject: str | None, max_length: int = 30) -> str:
    """Leading characters of a subject plus a short hash.

    "Quarterly budget review needs your sign-off" logs as
    "Quarterly budget review needs ... (hash:7a8b9c)".
    """
    if not subject:
        return "(no subject)"
    shown = subject if len(subject) <= max_length else f"{subject[:max_length]}..."
    return f"{shown} (hash:{_digest(subject, 6)})"
