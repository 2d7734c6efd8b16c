"""MailSift - keyword prioritization and summaries for web mail inboxes"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports so `import mailsift` stays cheap
def __getattr__(name: str):
    """
    Lazy imports to avoid loading the pipeline when only importing lightweight modules.
    """
    if name in ("EmailRecord", "KeywordSet", "UserSettings"):
        from mailsift.inbox import models

        return getattr(models, name)

    if name in ("InboxOrchestrator", "build_orchestrator"):
        from mailsift import orchestrator

        return getattr(orchestrator, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "EmailRecord",
    "KeywordSet",
    "UserSettings",
    "InboxOrchestrator",
    "build_orchestrator",
]
