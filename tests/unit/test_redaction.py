"""Unit tests for log redaction helpers"""

from __future__ import annotations

from mailsift.utils.redaction import redact, redact_subject


def test_redact_is_stable_and_opaque():
    token = redact("alice@example.com")
    assert token == redact("alice@example.com")
    assert token.startswith("hash:")
    assert len(token) == len("hash:") + 12
    assert "alice" not in token


def test_redact_missing():
    assert redact(None) == "hash:missing"
    assert redact("") == "hash:missing"


def test_redact_subject_truncates_long_subjects():
    redacted = redact_subject("Quarterly budget review needs your sign-off")
    assert redacted.startswith("Quarterly budget review needs ...")
    assert "sign-off" not in redacted


def test_redact_subject_short_and_missing():
    assert redact_subject("Lunch?").startswith("Lunch? (hash:")
    assert redact_subject(None) == "(no subject)"
