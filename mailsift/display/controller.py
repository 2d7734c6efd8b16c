"""
Display State Controller - sole owner of DisplayState.

Every mutation re-renders the whole widget from state; there are no partial
patches that could drift from `expanded` or `loading`. A render that produces
the same markup as the last one is not pushed to the sink, so repeating a
mutation with the same input has no visible effect.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime

from mailsift.display.render import render_widget
from mailsift.display.state import DisplayState
from mailsift.inbox.models import EmailRecord, utc_now
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter

logger = get_logger(__name__)

Renderer = Callable[[DisplayState, datetime], str]
Sink = Callable[[str], None]


class DisplayStateController:
    def __init__(
        self,
        renderer: Renderer = render_widget,
        clock: Callable[[], datetime] = utc_now,
        sink: Sink | None = None,
    ):
        self._renderer = renderer
        self._clock = clock
        self._sink = sink
        self._state = DisplayState()
        self._html = ""
        self.render_count = 0

    @property
    def state(self) -> DisplayState:
        """Copy of the current state; mutate only through controller methods."""
        return self._state.copy()

    @property
    def html(self) -> str:
        return self._html

    def set_top_emails(self, records: Sequence[EmailRecord]) -> None:
        # summaries and expanded flags are keyed by id and survive re-ranking
        self._state.top_emails = list(records)
        self._render()

    def set_summary(self, email_id: str, text: str) -> None:
        self._state.summaries[email_id] = text
        self._render()

    def has_summary(self, email_id: str) -> bool:
        return bool(self._state.summaries.get(email_id))

    def summary_for(self, email_id: str) -> str | None:
        return self._state.summaries.get(email_id)

    def toggle_expanded(self, email_id: str) -> bool:
        expanded = not self._state.expanded.get(email_id, False)
        self._state.expanded[email_id] = expanded
        self._render()
        return expanded

    def set_loading(self, loading: bool) -> None:
        self._state.loading = loading
        if loading:
            self._state.error = None
        self._render()

    def set_error(self, message: str | None) -> None:
        self._state.error = message or None
        if self._state.error:
            self._state.loading = False
        self._render()

    def set_visible(self, visible: bool) -> None:
        self._state.visible = visible
        self._render()

    def _render(self) -> bool:
        markup = self._renderer(self._state, self._clock())
        if markup == self._html and self.render_count:
            counter("display.render_skipped")
            return False
        self._html = markup
        self.render_count += 1
        if self._sink is not None:
            self._sink(markup)
        return True
