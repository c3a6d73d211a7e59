"""
Preferences Store

A single UserPreferences value, persisted on every change.
Invalid changes are rejected and leave the preferences untouched.
"""

from typing import Any, Callable, Union

from pydantic import ValidationError

from expense_manager.audit import get_logger
from expense_manager.models import DateFormat, Theme, UserPreferences
from expense_manager.storage import LocalStore
from expense_manager.stores.observable import Observable, Unsubscribe


logger = get_logger(__name__)


class PreferencesStore:
    """Display preferences backed by the local store."""

    def __init__(self, local_store: LocalStore):
        self._local_store = local_store
        self._prefs: Observable[UserPreferences] = Observable(self._load())
        self._prefs.subscribe(self._local_store.save_preferences, immediate=False)

    def _load(self) -> UserPreferences:
        return self._local_store.load().preferences

    @property
    def value(self) -> UserPreferences:
        return self._prefs.value

    def current(self) -> UserPreferences:
        return self._prefs.value

    def subscribe(self, callback: Callable[[UserPreferences], None], immediate: bool = True) -> Unsubscribe:
        return self._prefs.subscribe(callback, immediate)

    def init(self) -> None:
        self._prefs.set(self._load())

    def update(self, **changes: Any) -> bool:
        """Apply `changes`; False if they would produce invalid preferences."""
        try:
            updated = UserPreferences.model_validate(
                {**self._prefs.value.model_dump(), **changes}
            )
        except ValidationError as e:
            logger.warning("preferences_rejected", error_count=e.error_count())
            return False
        self._prefs.set(updated)
        return True

    def set_currency(self, currency: str) -> bool:
        return self.update(currency=currency)

    def set_date_format(self, date_format: Union[DateFormat, str]) -> bool:
        return self.update(date_format=date_format)

    def set_theme(self, theme: Union[Theme, str]) -> bool:
        return self.update(theme=theme)

    def set_language(self, language: str) -> bool:
        return self.update(language=language)

    def reset_to_defaults(self) -> None:
        self._prefs.set(UserPreferences())
