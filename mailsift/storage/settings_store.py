"""
Settings store access.

The persisted configuration lives in an external asynchronous key-value
store (`SettingsStore`). `PreferencesRepository` is the only reader/writer
the pipeline uses: it maps store keys to typed Preferences, and when the
store fails it logs a StoreUnavailableError and keeps going on the
last-known preferences (or the built-in defaults before the first read).

Store keys:
    keywords          list[str]
    settings          {"highlightMode", "summarizationEnabled", "widgetEnabled"}
    consentGiven      bool
    summaryCredential str | None
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from pydantic import ValidationError

from mailsift.errors import StoreUnavailableError
from mailsift.inbox.models import KeywordSet, Preferences, UserSettings
from mailsift.observability.logging import get_logger
from mailsift.observability.telemetry import counter

logger = get_logger(__name__)

KEYWORDS_KEY = "keywords"
SETTINGS_KEY = "settings"
CONSENT_KEY = "consentGiven"
CREDENTIAL_KEY = "summaryCredential"
STORE_KEYS = (KEYWORDS_KEY, SETTINGS_KEY, CONSENT_KEY, CREDENTIAL_KEY)

# store field name -> UserSettings attribute
_SETTINGS_FIELDS = {
    "highlightMode": "highlight_mode",
    "summarizationEnabled": "summarization_enabled",
    "widgetEnabled": "widget_enabled",
}

ChangeCallback = Callable[[dict[str, Any]], None]
Unsubscribe = Callable[[], None]


class SettingsStore(Protocol):
    async def get(self, keys: Iterable[str]) -> dict[str, Any]: ...

    async def set(self, values: Mapping[str, Any]) -> None: ...

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe: ...


class InMemorySettingsStore:
    """Process-local SettingsStore. Notifies subscribers with the changed keys."""

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})
        self._subscribers: list[ChangeCallback] = []

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return {key: self._data[key] for key in keys if key in self._data}

    async def set(self, values: Mapping[str, Any]) -> None:
        changes = dict(values)
        self._data.update(changes)
        for callback in list(self._subscribers):
            callback(changes)

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe


def settings_to_store(settings: UserSettings) -> dict[str, bool]:
    return {store_key: getattr(settings, attr) for store_key, attr in _SETTINGS_FIELDS.items()}


def settings_from_store(value: Any) -> UserSettings:
    if not isinstance(value, Mapping):
        return UserSettings()
    fields = {attr: value[key] for key, attr in _SETTINGS_FIELDS.items() if key in value}
    try:
        return UserSettings(**fields)
    except ValidationError as e:
        logger.warning("Invalid stored settings, using defaults: %s", e)
        return UserSettings()


class PreferencesRepository:
    """Typed, failure-tolerant view over a SettingsStore."""

    def __init__(self, store: SettingsStore):
        self.store = store
        self._last: Preferences | None = None

    @property
    def current(self) -> Preferences:
        """Last-known preferences, or defaults before the first load."""
        return self._last.model_copy() if self._last is not None else Preferences()

    async def load(self) -> Preferences:
        try:
            data = await self.store.get(STORE_KEYS)
        except Exception as e:
            self._degraded("read", e)
            return self.current

        keywords = data.get(KEYWORDS_KEY)
        credential = data.get(CREDENTIAL_KEY)
        preferences = Preferences(
            keywords=(
                KeywordSet.from_values(keywords).to_list()
                if isinstance(keywords, list)
                else KeywordSet.defaults().to_list()
            ),
            settings=settings_from_store(data.get(SETTINGS_KEY)),
            consent_given=data.get(CONSENT_KEY) is True,
            summary_credential=credential if isinstance(credential, str) and credential else None,
        )
        self._last = preferences
        return preferences.model_copy()

    async def save_keywords(self, keywords: KeywordSet) -> bool:
        return await self._save(
            {KEYWORDS_KEY: keywords.to_list()}, keywords=keywords.to_list()
        )

    async def save_settings(self, settings: UserSettings) -> bool:
        return await self._save({SETTINGS_KEY: settings_to_store(settings)}, settings=settings)

    async def save_consent(self, granted: bool) -> bool:
        return await self._save({CONSENT_KEY: granted}, consent_given=granted)

    async def save_credential(self, credential: str | None) -> bool:
        return await self._save({CREDENTIAL_KEY: credential}, summary_credential=credential)

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe | None:
        try:
            return self.store.subscribe(callback)
        except Exception as e:
            self._degraded("subscribe", e)
            return None

    async def _save(self, values: dict[str, Any], **fields: Any) -> bool:
        """Persist `values`; the in-memory view is updated even if the store fails."""
        self._last = self.current.model_copy(update=fields)
        try:
            await self.store.set(values)
        except Exception as e:
            self._degraded("write", e)
            return False
        return True

    def _degraded(self, operation: str, cause: Exception) -> StoreUnavailableError:
        error = StoreUnavailableError(f"settings store {operation} failed: {cause}")
        error.__cause__ = cause
        counter("store.unavailable")
        logger.warning("%s; continuing with last-known preferences", error)
        return error
