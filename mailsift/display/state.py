"""Display state owned by the DisplayStateController."""

from __future__ import annotations

from dataclasses import dataclass, field

from mailsift.inbox.models import EmailRecord


@dataclass
class DisplayState:
    top_emails: list[EmailRecord] = field(default_factory=list)
    summaries: dict[str, str] = field(default_factory=dict)
    expanded: dict[str, bool] = field(default_factory=dict)
    loading: bool = False
    error: str | None = None
    visible: bool = True

    def copy(self) -> DisplayState:
        return DisplayState(
            top_emails=list(self.top_emails),
            summaries=dict(self.summaries),
            expanded=dict(self.expanded),
            loading=self.loading,
            error=self.error,
            visible=self.visible,
        )

    def to_dict(self) -> dict:
        return {
            "top_emails": [record.to_dict() for record in self.top_emails],
            "summaries": dict(self.summaries),
            "expanded": dict(self.expanded),
            "loading": self.loading,
            "error": self.error,
            "visible": self.visible,
        }
