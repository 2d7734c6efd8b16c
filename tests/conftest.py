"""
Pytest configuration for MailSift tests

Provides inbox markup builders and fakes for the clock, sleep and summary
backend shared across all test files.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from html import escape

import pytest

from mailsift.errors import ServiceTransportError
from mailsift.observability.telemetry import reset_counters
from mailsift.summarize.backends import SummaryRequest
from mailsift.summarize.resources import RateLimiter, SummarizerResources, SummaryCache

GMAIL_URL = "https://mail.google.com/mail/u/0/#inbox"
NOW = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)


def gmail_row(
    row_id: str | None,
    subject: str,
    sender: str,
    snippet: str = "",
    received: datetime | str | None = None,
    unread: bool = False,
) -> str:
    """One Gmail inbox row as the web client renders it."""
    classes = "zA zE" if unread else "zA yO"
    id_attr = f' id="{row_id}"' if row_id else ""
    if isinstance(received, datetime):
        received = received.isoformat()
    time_cell = (
        f'<td class="xW xY"><span title="{escape(received)}">10:42 AM</span></td>'
        if received
        else '<td class="xW xY"></td>'
    )
    snippet_html = f'<span class="y2"> - {escape(snippet)}</span>' if snippet else ""
    return (
        f'<tr class="{classes}"{id_attr}>'
        f'<td class="yX xY"><span class="yP" email="x@example.com">{escape(sender)}</span></td>'
        f'<td class="xY a4W"><span class="bog">{escape(subject)}</span>{snippet_html}</td>'
        f"{time_cell}"
        "</tr>"
    )


def gmail_page(*rows: str) -> str:
    return (
        "<html><body>"
        '<div role="navigation">Inbox</div>'
        f'<div role="main"><table><tbody>{"".join(rows)}</tbody></table></div>'
        "</body></html>"
    )


def default_rows() -> list[str]:
    return [
        gmail_row("r1", "Lunch next week?", "Bob", "Are you free on Thursday", NOW - timedelta(days=3)),
        gmail_row(
            "r2",
            "URGENT: contract deadline",
            "Legal Team",
            "Please sign the contract before the deadline today",
            NOW - timedelta(hours=2),
            unread=True,
        ),
        gmail_row("r3", "Weekly newsletter", "News", "Top stories this week", NOW - timedelta(days=10)),
        gmail_row(
            "r4",
            "Team meeting moved",
            "Carol",
            "The meeting is now at 3pm",
            NOW - timedelta(hours=30),
        ),
    ]


class FakeMonotonic:
    """Monotonic clock advanced only by FakeSleep."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class FakeSleep:
    """Records requested delays and advances the paired clock instantly."""

    def __init__(self, clock: FakeMonotonic | None = None):
        self.clock = clock
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.clock is not None:
            self.clock.now += delay
        await asyncio.sleep(0)


class FakeBackend:
    """SummaryBackend double: scripted replies, recorded calls."""

    def __init__(self, has_credential: bool = True, clock: FakeMonotonic | None = None):
        self._has_credential = has_credential
        self.clock = clock
        self.requests: list[SummaryRequest] = []
        self.call_times: list[float] = []
        self.error: Exception | None = None
        self.fail_next: list[Exception] = []
        self.reply: str | None = None

    @property
    def has_credential(self) -> bool:
        return self._has_credential

    def set_credential(self, credential: str | None) -> None:
        if credential:
            self._has_credential = True

    async def complete(self, request: SummaryRequest) -> str:
        self.requests.append(request)
        if self.clock is not None:
            self.call_times.append(self.clock())
        await asyncio.sleep(0)
        if self.fail_next:
            raise self.fail_next.pop(0)
        if self.error is not None:
            raise self.error
        if self.reply is not None:
            return self.reply
        if not request.text:
            raise ServiceTransportError("empty")
        return f"Summary: {request.text[:40]}"


@pytest.fixture(autouse=True)
def _reset_telemetry():
    reset_counters()
    yield
    reset_counters()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def fake_sleep(monotonic) -> FakeSleep:
    return FakeSleep(monotonic)


@pytest.fixture
def backend(monotonic) -> FakeBackend:
    return FakeBackend(clock=monotonic)


@pytest.fixture
def resources(monotonic, fake_sleep) -> SummarizerResources:
    """Fresh cache + limiter on the fake clock (never the process-wide pair)."""
    return SummarizerResources(
        cache=SummaryCache(),
        limiter=RateLimiter(min_interval=1.0, clock=monotonic, sleep=fake_sleep),
    )


@pytest.fixture
def inbox_html() -> str:
    return gmail_page(*default_rows())


@pytest.fixture
def offline_backend(monotonic) -> FakeBackend:
    """Backend with no credential configured."""
    return FakeBackend(has_credential=False, clock=monotonic)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_row():
    return gmail_row


@pytest.fixture
def make_page():
    return gmail_page


@pytest.fixture
def gmail_url() -> str:
    return GMAIL_URL
