"""
App State Store

Application-level flags: loading, online, last sync time and the
last error message.
"""

from typing import Callable, Optional

from expense_manager.models import AppState
from expense_manager.stores.observable import Derived, Observable, Unsubscribe
from expense_manager.utils import current_timestamp


class AppStateStore:

    def __init__(self):
        self._state: Observable[AppState] = Observable(AppState())
        self.is_ready = Derived([self._state], lambda state: not state.is_loading)
        self.has_error = Derived([self._state], lambda state: bool(state.error))

    @property
    def value(self) -> AppState:
        return self._state.value

    def subscribe(self, callback: Callable[[AppState], None], immediate: bool = True) -> Unsubscribe:
        return self._state.subscribe(callback, immediate)

    def _patch(self, **changes) -> None:
        self._state.update(lambda state: state.model_copy(update=changes))

    def set_loading(self, is_loading: bool) -> None:
        self._patch(is_loading=is_loading)

    def set_error(self, error: Optional[str]) -> None:
        self._patch(error=error)

    def clear_error(self) -> None:
        self._patch(error=None)

    def set_online(self, is_online: bool) -> None:
        self._patch(is_online=is_online)

    def update_last_sync(self) -> None:
        self._patch(last_sync_at=current_timestamp())
