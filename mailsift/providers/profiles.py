"""
Provider profiles: per-service URL predicates and structural locators.

Each supported web mail service is a closed, frozen configuration record.
Every locator is required, so a profile with a missing locator fails
validation when this module is imported instead of yielding a silent None
at extraction time. Locators are CSS selectors.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from mailsift.observability.logging import get_logger

logger = get_logger(__name__)

_COMPOSE_MARKER = "/compose/"


class ProviderKind(str, Enum):
    """Supported web mail services."""

    GMAIL = "gmail"
    OUTLOOK = "outlook"
    YAHOO = "yahoo"


class Locators(BaseModel):
    """CSS locators for one provider. All fields are required."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    inbox: str = Field(..., min_length=1, description="Subtree observed for changes")
    container: str = Field(..., min_length=1, description="One element per inbox row")
    subject: str = Field(..., min_length=1)
    sender: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, description="Body preview / snippet")
    timestamp: str = Field(..., min_length=1)
    read_indicator: str = Field(..., min_length=1, description="Matches only unread rows")


class ProviderProfile(BaseModel):
    """Static descriptor for one supported service."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: ProviderKind
    name: str
    url_patterns: tuple[str, ...] = Field(..., min_length=1)
    inbox_markers: tuple[str, ...] = Field(..., min_length=1)
    locators: Locators

    def matches_url(self, url: str) -> bool:
        return any(pattern in url for pattern in self.url_patterns)

    def is_inbox_page(self, url: str) -> bool:
        """True when the URL is this service's message list (not a compose view)."""
        if not self.matches_url(url) or _COMPOSE_MARKER in url:
            return False
        return any(marker in url for marker in self.inbox_markers)


GMAIL = ProviderProfile(
    kind=ProviderKind.GMAIL,
    name="Gmail",
    url_patterns=("mail.google.com",),
    inbox_markers=("/mail/u/",),
    locators=Locators(
        inbox='[role="main"]',
        container="tr.zA",
        subject="span.bog, h2.hP",
        sender="span.yX.xY, span.yP, span.zF",
        content=".y2",
        timestamp="td.xW span",
        read_indicator=".zE",
    ),
)

OUTLOOK = ProviderProfile(
    kind=ProviderKind.OUTLOOK,
    name="Outlook",
    url_patterns=("outlook.live.com", "outlook.office.com"),
    inbox_markers=("/mail/",),
    locators=Locators(
        inbox='[role="main"]',
        container='[role="row"]',
        subject='[data-testid="subject"], [title]',
        sender='[data-testid="sender"], [title]',
        content='[data-testid="preview"]',
        timestamp='[data-testid="timestamp"]',
        read_indicator='[aria-label^="Unread"]',
    ),
)

YAHOO = ProviderProfile(
    kind=ProviderKind.YAHOO,
    name="Yahoo Mail",
    url_patterns=("mail.yahoo.com",),
    inbox_markers=("/inbox", "/n/inbox"),
    locators=Locators(
        inbox=".mail-app",
        container='[data-test-id="message-list-item"]',
        subject='[data-test-id="message-subject"]',
        sender='[data-test-id="message-sender"]',
        content='[data-test-id="snippet"], .message-body',
        timestamp='[data-test-id="message-date"] time, time',
        read_indicator='[data-test-id="icon-btn-unread"], .unread',
    ),
)

PROFILES: dict[ProviderKind, ProviderProfile] = {
    profile.kind: profile for profile in (GMAIL, OUTLOOK, YAHOO)
}


def get_profile(kind: ProviderKind | str) -> ProviderProfile:
    return PROFILES[ProviderKind(kind)]


def detect_profile(url: str) -> ProviderProfile | None:
    """Return the first profile whose URL pattern occurs in `url`."""
    for profile in PROFILES.values():
        if profile.matches_url(url):
            return profile
    logger.debug("No provider profile matches URL")
    return None
