"""
Document tree adapter over BeautifulSoup.

Wraps the host page's markup so the rest of the pipeline can query it by CSS
locator, observe structural changes scoped to a subtree, and write
presentation-only markers. Host-side re-rendering is modelled by
`replace_subtree` / `append_html`, which deliver a MutationRecord to every
subscriber whose scope contains the changed element. Presentation writes made
through plain Tag manipulation never notify subscribers.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup, Tag

from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter

logger = get_logger(__name__)

_PARSER = "html.parser"

# Class carried by every element this system inserts into the host tree.
MARKER_CLASS = "mailsift-marker"


@dataclass(frozen=True)
class MutationRecord:
    """One structural change: `added` elements were inserted under `target`."""

    target: Tag
    added: tuple[Tag, ...]


MutationCallback = Callable[[MutationRecord], None]


class Subscription:
    """Handle returned by InboxDocument.subscribe()."""

    def __init__(self, document: InboxDocument, scope: Tag, callback: MutationCallback):
        self._document = document
        self.scope = scope
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._document._remove_subscription(self)


def class_list(tag: Tag) -> list[str]:
    """Return the tag's classes as a list regardless of how they were stored."""
    value = tag.get("class")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


def is_marker(tag: Tag) -> bool:
    return MARKER_CLASS in class_list(tag)


def inside_marker(node: Any, stop: Tag | None = None) -> bool:
    """True if the node is, or sits below, an inserted marker element."""
    current = node if isinstance(node, Tag) else node.parent
    while current is not None and current is not stop:
        if isinstance(current, Tag) and is_marker(current):
            return True
        current = current.parent
    return False


def flattened_text(tag: Tag) -> str:
    """Whitespace-normalized text of a subtree, ignoring inserted markers."""
    parts = []
    for text in tag.find_all(string=True):
        if inside_marker(text, stop=tag):
            continue
        stripped = text.strip()
        if stripped:
            parts.append(stripped)
    return " ".join(" ".join(parts).split())


class InboxDocument:
    """A queryable, observable document tree for one inbox page."""

    def __init__(self, html: str, url: str = ""):
        self.url = url
        self.soup = BeautifulSoup(html, _PARSER)
        self._subscriptions: list[Subscription] = []

    @property
    def root(self) -> Tag:
        return self.soup

    def select(self, locator: str) -> list[Tag]:
        return list(self.soup.select(locator))

    def select_one(self, locator: str) -> Tag | None:
        return self.soup.select_one(locator)

    def contains(self, tag: Any) -> bool:
        """True if the tag is still attached to this document."""
        if not isinstance(tag, Tag):
            return False
        current: Any = tag
        while current is not None:
            if current is self.soup:
                return True
            current = current.parent
        return False

    def new_tag(self, name: str, **attrs: Any) -> Tag:
        return self.soup.new_tag(name, attrs=attrs)

    def subscribe(self, scope_locator: str | None, callback: MutationCallback) -> Subscription:
        """Observe structural changes under the element matched by scope_locator.

        Falls back to the whole document when the locator matches nothing.
        """
        scope = self.select_one(scope_locator) if scope_locator else None
        if scope is None:
            if scope_locator:
                logger.debug("Scope %r not found, observing whole document", scope_locator)
            scope = self.soup
        subscription = Subscription(self, scope, callback)
        self._subscriptions.append(subscription)
        return subscription

    def replace_subtree(self, locator: str, html: str) -> MutationRecord:
        """Host re-render: replace the children of the element at `locator`."""
        target = self._require(locator)
        target.clear()
        return self._insert(target, html)

    def append_html(self, locator: str, html: str) -> MutationRecord:
        """Host lazy-load: append markup under the element at `locator`."""
        return self._insert(self._require(locator), html)

    def _require(self, locator: str) -> Tag:
        target = self.select_one(locator)
        if target is None:
            raise LookupError(f"no element matches {locator!r}")
        return target

    def _insert(self, target: Tag, html: str) -> MutationRecord:
        fragment = BeautifulSoup(html, _PARSER)
        added: list[Tag] = []
        for child in list(fragment.contents):
            extracted = child.extract()
            target.append(extracted)
            if isinstance(extracted, Tag):
                added.append(extracted)
        record = MutationRecord(target=target, added=tuple(added))
        self._notify(record)
        return record

    def _notify(self, record: MutationRecord) -> None:
        counter("document.mutations")
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            if _is_within(record.target, subscription.scope):
                subscription.callback(record)

    def _remove_subscription(self, subscription: Subscription) -> None:
        self._subscriptions = [s for s in self._subscriptions if s is not subscription]

    def __str__(self) -> str:
        return str(self.soup)


def _is_within(tag: Tag, scope: Tag) -> bool:
    # identity walk; bs4 Tag equality is structural
    current: Any = tag
    while current is not None:
        if current is scope:
            return True
        current = current.parent
    return False
