"""Text helpers for summarization: cache fingerprint and input sanitizing."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from mailsift.config import SUMMARY_MAX_INPUT_CHARS

_UNSAFE_CHARS = re.compile(r"[^\w\s.,!?-]")
_MASK_32 = 0xFFFFFFFF


def fingerprint(text: str) -> str:
    """Fast, collision-tolerant cache key for raw input text.

    32-bit polynomial rolling hash (x31) plus the input length, so two texts
    must collide on both to share a cache entry.
    """
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & _MASK_32
    return f"{value:08x}-{len(text)}"


def sanitize(text: str, max_chars: int = SUMMARY_MAX_INPUT_CHARS) -> str:
    """Strip markup, collapse whitespace, drop unsafe characters, cap length."""
    if "<" in text:
        text = BeautifulSoup(text, "html.parser").get_text(" ")
    collapsed = " ".join(text.split())
    cleaned = " ".join(_UNSAFE_CHARS.sub("", collapsed).split())
    return cleaned[:max_chars].strip()
