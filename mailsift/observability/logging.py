"""
Logging setup for MailSift.

One stream handler on the root logger, attached the first time any module asks
for a logger. The level comes from MAILSIFT_LOG_LEVEL and is re-read on every
call so a test or the API can change it at runtime. Chatty SDK loggers used by
the summary backend and the HTTP layer are capped at WARNING.
"""

from __future__ import annotations

import logging
import os
from typing import Final

_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
_QUIET_LOGGERS: Final[tuple[str, ...]] = (
    "google.auth",
    "google.cloud.aiplatform",
    "urllib3",
    "httpx",
    "httpcore",
)

_configured: bool = False


def _resolve_level() -> int:
    level_name = os.getenv("MAILSIFT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _configure_root(level: int) -> None:
    global _configured

    root = logging.getLogger()
    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        root.addHandler(handler)
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        _configured = True
    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Module logger; the first call installs the shared handler."""
    level = _resolve_level()
    _configure_root(level)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
