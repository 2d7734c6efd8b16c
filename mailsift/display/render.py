"""
Widget Renderer - DisplayState to escaped HTML.

Pure function of (state, now): the same state always renders byte-identical
markup, which is what lets the controller skip redundant pushes. Precedence:
hidden > error > loading > empty list > list.
"""

from __future__ import annotations

import html
from datetime import datetime

from mailsift.config import (
    DISPLAY_SENDER_CHARS,
    DISPLAY_SNIPPET_CHARS,
    DISPLAY_SUBJECT_CHARS,
    DISPLAY_SUMMARY_PREVIEW_CHARS,
)
from mailsift.display.state import DisplayState
from mailsift.inbox.extractor import parse_timestamp
from mailsift.inbox.models import EmailRecord

LOADING_TEXT = "Analyzing emails..."
EMPTY_TEXT = "No priority emails found"
EMPTY_HINT = "Add keywords in settings to prioritize emails"


def truncate_text(text: str, max_length: int) -> str:
    if not text:
        return ""
    return text[:max_length] + "..." if len(text) > max_length else text


def format_relative_time(timestamp: str, now: datetime) -> str:
    """"now" under an hour, "{H}h" under a day, else the locale date."""
    received = parse_timestamp(timestamp) if timestamp else None
    if received is None:
        return ""
    hours = (now - received).total_seconds() / 3600
    if hours < 1:
        return "now"
    if hours < 24:
        return f"{int(hours)}h"
    return received.strftime("%x")


def _esc(value: str) -> str:
    return html.escape(value, quote=True)


def _render_summary(email_id: str, summary: str, expanded: bool) -> str:
    preview = truncate_text(summary, DISPLAY_SUMMARY_PREVIEW_CHARS)
    state_class = " expanded" if expanded else ""
    body = (
        f'<span class="mailsift-summary-full">{_esc(summary)}</span>'
        if expanded
        else f'<span class="mailsift-summary-preview">{_esc(preview)}</span>'
    )
    toggle_text = "Show less" if expanded else "Show more"
    return (
        '<div class="mailsift-email-summary">'
        f'<div class="mailsift-summary-toggle{state_class}" data-email-id="{_esc(email_id)}"'
        f' data-expanded="{str(expanded).lower()}">'
        f"{body}"
        f'<span class="mailsift-toggle-text">{toggle_text}</span>'
        "</div></div>"
    )


def _render_item(rank: int, email: EmailRecord, state: DisplayState, now: datetime) -> str:
    summary = state.summaries.get(email.id, "")
    email_id = _esc(email.id)
    if summary:
        detail = _render_summary(email.id, summary, bool(state.expanded.get(email.id)))
        actions = (
            f'<button class="mailsift-action-btn mailsift-goto-btn" data-email-id="{email_id}"'
            ' title="Go to email">Go</button>'
        )
    else:
        detail = (
            '<div class="mailsift-email-snippet">'
            f"{_esc(truncate_text(email.content, DISPLAY_SNIPPET_CHARS))}</div>"
        )
        actions = (
            f'<button class="mailsift-action-btn mailsift-goto-btn" data-email-id="{email_id}"'
            ' title="Go to email">Go</button>'
            f'<button class="mailsift-action-btn mailsift-summarize-btn" data-email-id="{email_id}"'
            ' title="Summarize">Summarize</button>'
        )

    return (
        f'<div class="mailsift-email-item" data-email-id="{email_id}">'
        '<div class="mailsift-email-header">'
        f'<span class="mailsift-email-rank">#{rank}</span>'
        f'<span class="mailsift-email-sender">{_esc(truncate_text(email.sender, DISPLAY_SENDER_CHARS))}</span>'
        f'<span class="mailsift-email-time">{_esc(format_relative_time(email.timestamp, now))}</span>'
        "</div>"
        f'<div class="mailsift-email-subject">{_esc(truncate_text(email.subject, DISPLAY_SUBJECT_CHARS))}</div>'
        f"{detail}"
        f'<div class="mailsift-email-actions">{actions}</div>'
        "</div>"
    )


def render_content(state: DisplayState, now: datetime) -> str:
    if state.error:
        return (
            '<div class="mailsift-error">'
            f"<p>{_esc(state.error)}</p>"
            '<button class="mailsift-retry-btn">Retry</button>'
            "</div>"
        )
    if state.loading:
        return f'<div class="mailsift-loading">{LOADING_TEXT}</div>'
    if not state.top_emails:
        return (
            '<div class="mailsift-no-emails">'
            f"<p>{EMPTY_TEXT}</p>"
            f'<p class="mailsift-hint">{EMPTY_HINT}</p>'
            "</div>"
        )
    return "".join(
        _render_item(rank, email, state, now)
        for rank, email in enumerate(state.top_emails, start=1)
    )


def render_widget(state: DisplayState, now: datetime) -> str:
    """Full widget markup for `state`; empty string when hidden."""
    if not state.visible:
        return ""
    return (
        '<div id="mailsift-widget" class="mailsift-widget">'
        '<div class="mailsift-widget-header">'
        '<span class="mailsift-widget-title">MailSift</span>'
        '<span class="mailsift-widget-subtitle">Top Priority Emails</span>'
        "</div>"
        f'<div class="mailsift-widget-content">{render_content(state, now)}</div>'
        "</div>"
    )
