"""Unit tests for widget rendering and the display state controller"""

from __future__ import annotations

from datetime import timedelta

import pytest
from bs4 import BeautifulSoup

from mailsift.display.controller import DisplayStateController
from mailsift.display.render import (
    EMPTY_TEXT,
    LOADING_TEXT,
    format_relative_time,
    render_widget,
    truncate_text,
)
from mailsift.display.state import DisplayState
from mailsift.inbox.models import EmailRecord
from mailsift.observability.telemetry import get_counter


def email(now, email_id="e1", **fields):
    defaults = {
        "subject": "Contract review",
        "sender": "Legal Team",
        "content": "Please sign the contract",
        "timestamp": (now - timedelta(hours=3)).isoformat(),
        "priority": 60,
    }
    defaults.update(fields)
    return EmailRecord(id=email_id, **defaults)


def parse(markup):
    return BeautifulSoup(markup, "html.parser")


class TestHelpers:
    def test_truncate_text(self):
        assert truncate_text("short", 10) == "short"
        assert truncate_text("exactly10!", 10) == "exactly10!"
        assert truncate_text("this is too long", 4) == "this..."
        assert truncate_text("", 5) == ""

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(minutes=59), "now"),
            (timedelta(hours=-2), "now"),
            (timedelta(hours=1), "1h"),
            (timedelta(hours=23, minutes=59), "23h"),
        ],
    )
    def test_relative_time(self, now, delta, expected):
        assert format_relative_time((now - delta).isoformat(), now) == expected

    def test_relative_time_older_than_a_day_uses_date(self, now):
        received = now - timedelta(days=3)
        assert format_relative_time(received.isoformat(), now) == received.strftime("%x")

    def test_relative_time_unparseable(self, now):
        assert format_relative_time("whenever", now) == ""
        assert format_relative_time("", now) == ""


class TestRenderWidget:
    def test_hidden_renders_nothing(self, now):
        assert render_widget(DisplayState(visible=False, error="boom"), now) == ""

    def test_error_takes_precedence(self, now):
        state = DisplayState(top_emails=[email(now)], loading=True, error="Failed")
        soup = parse(render_widget(state, now))
        assert soup.select_one(".mailsift-error p").get_text() == "Failed"
        assert soup.select_one(".mailsift-retry-btn")
        assert not soup.select(".mailsift-email-item")
        assert LOADING_TEXT not in soup.get_text()

    def test_loading_before_list(self, now):
        soup = parse(render_widget(DisplayState(top_emails=[email(now)], loading=True), now))
        assert soup.select_one(".mailsift-loading").get_text() == LOADING_TEXT
        assert not soup.select(".mailsift-email-item")

    def test_empty_list(self, now):
        soup = parse(render_widget(DisplayState(), now))
        assert EMPTY_TEXT in soup.select_one(".mailsift-no-emails").get_text()

    def test_list_items_ranked_with_snippet_and_summarize_button(self, now):
        state = DisplayState(top_emails=[email(now, "a"), email(now, "b", subject="Second")])
        soup = parse(render_widget(state, now))
        items = soup.select(".mailsift-email-item")
        assert [item["data-email-id"] for item in items] == ["a", "b"]
        assert [i.select_one(".mailsift-email-rank").get_text() for i in items] == ["#1", "#2"]

        first = items[0]
        assert first.select_one(".mailsift-email-sender").get_text() == "Legal Team"
        assert first.select_one(".mailsift-email-time").get_text() == "3h"
        assert first.select_one(".mailsift-email-snippet").get_text() == "Please sign the contract"
        assert first.select_one(".mailsift-summarize-btn")["data-email-id"] == "a"

    def test_fields_truncated(self, now):
        record = email(now, subject="S" * 80, sender="N" * 40, content="C" * 100)
        soup = parse(render_widget(DisplayState(top_emails=[record]), now))
        assert soup.select_one(".mailsift-email-subject").get_text() == "S" * 50 + "..."
        assert soup.select_one(".mailsift-email-sender").get_text() == "N" * 25 + "..."
        assert soup.select_one(".mailsift-email-snippet").get_text() == "C" * 60 + "..."

    def test_summary_replaces_snippet_and_button(self, now):
        long_summary = "Sign the contract. " * 10
        state = DisplayState(top_emails=[email(now, "a")], summaries={"a": long_summary})
        soup = parse(render_widget(state, now))
        assert not soup.select(".mailsift-summarize-btn")
        assert not soup.select(".mailsift-email-snippet")

        toggle = soup.select_one(".mailsift-summary-toggle")
        assert toggle["data-expanded"] == "false"
        assert toggle.select_one(".mailsift-summary-preview").get_text() == long_summary[:100] + "..."
        assert toggle.select_one(".mailsift-toggle-text").get_text() == "Show more"

    def test_expanded_summary_shows_full_text(self, now):
        summary = "Sign the contract. " * 10
        state = DisplayState(
            top_emails=[email(now, "a")], summaries={"a": summary}, expanded={"a": True}
        )
        soup = parse(render_widget(state, now))
        toggle = soup.select_one(".mailsift-summary-toggle")
        assert "expanded" in toggle["class"]
        assert toggle.select_one(".mailsift-summary-full").get_text() == summary
        assert toggle.select_one(".mailsift-toggle-text").get_text() == "Show less"

    def test_host_text_is_escaped(self, now):
        record = email(now, subject="<script>alert(1)</script>", sender='"><img src=x>')
        markup = render_widget(DisplayState(top_emails=[record]), now)
        assert "<script>" not in markup
        assert "<img" not in markup
        assert "&lt;script&gt;" in markup

    def test_deterministic(self, now):
        state = DisplayState(top_emails=[email(now)], summaries={"e1": "Short"})
        assert render_widget(state, now) == render_widget(state.copy(), now)


class TestController:
    @pytest.fixture
    def pushed(self):
        return []

    @pytest.fixture
    def controller(self, now, pushed):
        return DisplayStateController(clock=lambda: now, sink=pushed.append)

    def test_toggle_twice_restores_state_and_markup(self, controller, now):
        controller.set_top_emails([email(now, "a")])
        controller.set_summary("a", "Sign by Friday")
        before = controller.html

        assert controller.toggle_expanded("a") is True
        assert controller.html != before
        assert controller.toggle_expanded("a") is False
        assert controller.html == before
        assert controller.state.expanded == {"a": False}

    def test_identical_render_not_pushed(self, controller, now, pushed):
        records = [email(now, "a")]
        controller.set_top_emails(records)
        count = controller.render_count
        controller.set_top_emails(records)

        assert controller.render_count == count
        assert len(pushed) == count
        assert get_counter("display.render_skipped") == 1

    def test_loading_clears_error(self, controller):
        controller.set_error("Failed")
        controller.set_loading(True)
        state = controller.state
        assert state.loading is True
        assert state.error is None

    def test_error_clears_loading(self, controller):
        controller.set_loading(True)
        controller.set_error("Failed")
        state = controller.state
        assert state.loading is False
        assert state.error == "Failed"
        assert "Failed" in controller.html

    def test_clearing_error(self, controller):
        controller.set_error("Failed")
        controller.set_error(None)
        assert controller.state.error is None
        assert EMPTY_TEXT in controller.html

    def test_summaries_survive_new_ranking(self, controller, now):
        controller.set_top_emails([email(now, "a"), email(now, "b")])
        controller.set_summary("b", "Keep me")
        controller.toggle_expanded("b")
        controller.set_top_emails([email(now, "b")])

        assert controller.has_summary("b")
        assert controller.summary_for("b") == "Keep me"
        assert controller.state.expanded["b"] is True
        assert "Keep me" in controller.html

    def test_state_is_a_copy(self, controller, now):
        controller.set_top_emails([email(now, "a")])
        controller.state.summaries["a"] = "sneaky"
        assert not controller.has_summary("a")

    def test_hidden_pushes_empty_markup(self, controller, pushed):
        controller.set_visible(False)
        assert controller.html == ""
        assert pushed[-1] == ""

    def test_first_render_pushes_even_when_empty(self, now, pushed):
        controller = DisplayStateController(clock=lambda: now, sink=pushed.append)
        controller.set_visible(False)
        assert controller.render_count == 1
        assert pushed == [""]
