"""
Error taxonomy for the extraction, scoring and summarization pipeline.

Handling policy:
- ExtractionNodeError: one container failed; caught by the extractor, node skipped.
- EmptyInputError: blank text handed to the summarizer; surfaced, never retried.
- ServiceUnauthorizedError / ServiceTransportError: raised by summary backends,
  degraded by the client to the local heuristic.
- StoreUnavailableError: settings store failed; caller continues on last-known
  or default preferences.
- ConsentRequiredError: a summarization was requested without user consent.
"""

from __future__ import annotations


class MailSiftError(Exception):
    """Base class for all pipeline errors."""


class ExtractionNodeError(MailSiftError):
    """Raised when a single record container cannot be converted."""

    def __init__(self, message: str, position: int | None = None):
        super().__init__(message)
        self.position = position


class EmptyInputError(MailSiftError, ValueError):
    """Raised when summarization is requested for blank text."""


class ServiceUnauthorizedError(MailSiftError):
    """The summarization service rejected our credential (401/403)."""


class ServiceTransportError(MailSiftError):
    """The summarization call failed in transit or returned an unusable response."""


class StoreUnavailableError(MailSiftError):
    """The key-value settings store could not be read or written."""


class ConsentRequiredError(MailSiftError):
    """Summarization was requested before the user granted consent."""


class KeywordError(MailSiftError, ValueError):
    """A keyword is blank, too long, or a case-insensitive duplicate."""
