"""Centralized configuration for MailSift.

Re-exports everything from mailsift.infrastructure.settings so callers have a
single import point, then adds typed tunables for extraction, watching,
scoring, summarization and display.  Environment variable overrides use safe
defaults so the pipeline runs without extra env configuration.
"""

from __future__ import annotations

import os

from mailsift.infrastructure.settings import *  # noqa: F401, F403


def _env(key: str, default: str) -> str:
    """Read a MAILSIFT_* env var with a string default."""
    return os.getenv(key, default)


# --- App ---
APP_VERSION: str = "1.0.0"

# --- Extraction ---
FINGERPRINT_PREFIX_CHARS: int = 200
FINGERPRINT_HEX_CHARS: int = 16

# --- Mutation Watcher ---
WATCH_DEBOUNCE_SECONDS: float = float(_env("MAILSIFT_WATCH_DEBOUNCE", "0.5"))
WATCH_RETRY_ATTEMPTS: int = int(_env("MAILSIFT_WATCH_RETRY_ATTEMPTS", "3"))
WATCH_RETRY_DELAY_SECONDS: float = float(_env("MAILSIFT_WATCH_RETRY_DELAY", "1.0"))

# --- Priority Engine ---
SUBJECT_MATCH_POINTS: int = 30
SENDER_MATCH_POINTS: int = 20
CONTENT_MATCH_POINTS: int = 10
UNREAD_POINTS: int = 5
RECENT_POINTS: int = 10
RECENT_WINDOW_HOURS: int = 24
MAX_PRIORITY: int = 100
TOP_EMAILS_LIMIT: int = int(_env("MAILSIFT_TOP_EMAILS", "5"))
HIGHLIGHT_LIMIT: int = 5
TIER_WIDTH: int = 20
MAX_TIER: int = 4

# --- Keywords ---
KEYWORD_MAX_LENGTH: int = 50
DEFAULT_KEYWORDS: tuple[str, ...] = ("urgent", "important", "meeting", "deadline")

# --- Summarization ---
SUMMARY_MIN_INTERVAL_SECONDS: float = float(_env("MAILSIFT_SUMMARY_INTERVAL", "1.0"))
SUMMARY_MAX_INPUT_CHARS: int = int(_env("MAILSIFT_SUMMARY_MAX_INPUT", "2000"))
SUMMARY_MAX_LENGTH: int = 150
SUMMARY_MIN_SENTENCE_CHARS: int = 10
SUMMARY_FALLBACK_WORDS: int = 10
AUTO_SUMMARIZE_COUNT: int = int(_env("MAILSIFT_AUTO_SUMMARIZE_COUNT", "3"))
AUTO_SUMMARIZE_PACING_SECONDS: float = float(_env("MAILSIFT_AUTO_SUMMARIZE_PACING", "1.0"))

# --- Display ---
DISPLAY_SUBJECT_CHARS: int = 50
DISPLAY_SENDER_CHARS: int = 25
DISPLAY_SNIPPET_CHARS: int = 60
DISPLAY_SUMMARY_PREVIEW_CHARS: int = 100
