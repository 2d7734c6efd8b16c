"""
Highlight projection of ranked records onto the host document.

Every pass first removes all markers this system ever applied anywhere in the
document, then marks the top positively-scored rows with a tier class and an
ordinal badge. Rows whose node has been regenerated by the host since
extraction are skipped: their `source_ref` no longer belongs to the tree.
"""

from __future__ import annotations

from collections.abc import Sequence

from bs4 import Tag

from mailsift.config import HIGHLIGHT_LIMIT, MAX_TIER
from mailsift.inbox.document import MARKER_CLASS, InboxDocument, class_list
from mailsift.inbox.models import EmailRecord, UserSettings
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter
from mailsift.priority.engine import priority_tier

logger = get_logger(__name__)

HIGHLIGHT_CLASS = "mailsift-highlighted"
BADGE_CLASS = "mailsift-priority-badge"
TIER_CLASSES = tuple(f"mailsift-priority-{tier}" for tier in range(MAX_TIER + 1))


def _set_classes(tag: Tag, classes: list[str]) -> None:
    if classes:
        tag["class"] = classes
    elif tag.has_attr("class"):
        del tag["class"]


def clear_highlighting(document: InboxDocument) -> int:
    """Remove every highlight class and badge. Safe on an already-clean tree."""
    cleared = 0
    for tag in document.select(f".{HIGHLIGHT_CLASS}"):
        remaining = [c for c in class_list(tag) if c != HIGHLIGHT_CLASS and c not in TIER_CLASSES]
        _set_classes(tag, remaining)
        cleared += 1
    for badge in document.select(f".{BADGE_CLASS}"):
        badge.decompose()
    return cleared


def apply_highlighting(
    document: InboxDocument,
    ranked: Sequence[EmailRecord],
    settings: UserSettings,
    limit: int = HIGHLIGHT_LIMIT,
) -> int:
    """Mark the top `limit` positively-scored rows. Returns rows marked.

    With highlight mode off the document is only cleared.
    """
    clear_highlighting(document)
    if not settings.highlight_mode:
        return 0

    marked = 0
    for rank, record in enumerate(ranked[:limit], start=1):
        if record.priority <= 0:
            continue
        node = record.source_ref
        if not document.contains(node):
            counter("highlight.stale_ref")
            logger.debug("Row %s no longer in document, not highlighting", record.id)
            continue
        _mark(document, node, rank, record.priority)
        marked += 1
    return marked


def _mark(document: InboxDocument, node: Tag, rank: int, score: int) -> None:
    tier_class = TIER_CLASSES[priority_tier(score)]
    classes = class_list(node)
    for name in (HIGHLIGHT_CLASS, tier_class):
        if name not in classes:
            classes.append(name)
    _set_classes(node, classes)

    badge = document.new_tag(
        "div",
        **{"class": [BADGE_CLASS, MARKER_CLASS], "title": f"Priority Score: {score}"},
    )
    badge.string = f"#{rank}"
    node.insert(0, badge)
