"""
Application Context

This module wires every component together once at startup:
local store -> entity stores -> sync bridge -> activity logging.

DESIGN DECISION: There are no module-level store singletons.
Consumers receive the AppContext and reach every store through it,
so tests and multiple sessions never share hidden state.

Remote sync is optional: without a Google Sheets configuration the
context runs local-only.
"""

from datetime import date
from typing import Callable, Mapping, Optional

from pydantic import ValidationError

from expense_manager.audit import ActivityLogger, configure_logging, get_logger
from expense_manager.config import AppSettings, get_settings
from expense_manager.models import ImportResult
from expense_manager.services.remote import (
    AuthProvider,
    LocalAuthProvider,
    RemoteCollection,
)
from expense_manager.services.remote.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRemoteCollection,
)
from expense_manager.storage import FileBackend, KeyValueBackend, LocalStore
from expense_manager.stores import (
    AppStateStore,
    BudgetStore,
    CategoryStore,
    ExpenseStore,
    PreferencesStore,
)
from expense_manager.sync import COLLECTIONS, SyncBridge
from expense_manager.utils import current_date


logger = get_logger(__name__)


class AppContext:
    """
    Every store of one session, plus the optional sync bridge.
    """

    def __init__(
        self,
        settings: AppSettings,
        local_store: LocalStore,
        expenses: ExpenseStore,
        categories: CategoryStore,
        budgets: BudgetStore,
        preferences: PreferencesStore,
        app_state: AppStateStore,
        auth: AuthProvider,
        sync: Optional[SyncBridge] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self.settings = settings
        self.local_store = local_store
        self.expenses = expenses
        self.categories = categories
        self.budgets = budgets
        self.preferences = preferences
        self.app_state = app_state
        self.auth = auth
        self.sync = sync
        self.activity_logger = activity_logger

    @property
    def user_id(self) -> str:
        """Owner for new records: the signed-in user, else the default user."""
        return self.auth.current_user_id or self.settings.default_user_id

    def initialize(self) -> None:
        """Reload every store from the local store."""
        self.app_state.set_loading(True)
        try:
            self.expenses.init()
            self.categories.init()
            self.budgets.init()
            self.preferences.init()
            self.app_state.update_last_sync()
        finally:
            self.app_state.set_loading(False)

    # -------------------------------------------------------------------------
    # Sync
    # -------------------------------------------------------------------------

    def start_sync(self) -> bool:
        """Start remote sync; False when the context is local-only."""
        if self.sync is None:
            return False
        self.sync.start()
        return True

    def stop_sync(self) -> None:
        if self.sync is not None:
            self.sync.stop()

    # -------------------------------------------------------------------------
    # Data management
    # -------------------------------------------------------------------------

    def export_json(self) -> str:
        return self.local_store.export_json()

    def export_csv(self) -> str:
        return self.local_store.export_csv()

    def import_json(self, json_string: str) -> ImportResult:
        """Import an export and reload the stores from it."""
        result = self.local_store.import_json(json_string)
        if result.success:
            self.initialize()
        logger.info("data_imported", success=result.success, message=result.message)
        return result

    def clear_all_data(self) -> bool:
        """Remove the local record and reload (categories reseed)."""
        cleared = self.local_store.clear()
        self.initialize()
        return cleared


def _create_sheets_remotes() -> Optional[dict[str, RemoteCollection]]:
    """Google Sheets collections, or None when Sheets is not configured."""
    try:
        sheets_settings = get_settings().google_sheets
    except ValidationError as e:
        # Sheets not configured - continue local-only
        logger.warning("remote_sync_not_configured", error_count=e.error_count())
        return None

    client = GoogleSheetsClient(sheets_settings)
    return {
        collection: GoogleSheetsRemoteCollection(
            client, sheets_settings.sheet_name_for(collection)
        )
        for collection in COLLECTIONS
    }


def create_app_context(
    settings: Optional[AppSettings] = None,
    *,
    backend: Optional[KeyValueBackend] = None,
    auth: Optional[AuthProvider] = None,
    remotes: Optional[Mapping[str, RemoteCollection]] = None,
    use_remote: bool = True,
    clock: Callable[[], date] = current_date,
) -> AppContext:
    """
    Factory function to create all application components.

    Args:
        settings: Application settings (loaded from the environment if omitted)
        backend: Local key-value medium (a FileBackend in data_dir if omitted)
        auth: Identity provider (signed out LocalAuthProvider if omitted)
        remotes: Remote collections by name (Google Sheets if omitted)
        use_remote: Set to False for a local-only context
        clock: Source of "today" for the date-based views

    Returns:
        The wired AppContext
    """
    settings = settings or get_settings().app
    configure_logging(settings)

    local_store = LocalStore(
        backend or FileBackend(settings.data_dir),
        key=settings.storage_key,
    )
    auth = auth or LocalAuthProvider()

    expenses = ExpenseStore(local_store, clock=clock)
    categories = CategoryStore(local_store, current_user=lambda: auth.current_user_id)
    budgets = BudgetStore(local_store, expenses, clock=clock)
    preferences = PreferencesStore(local_store)
    app_state = AppStateStore()

    sync = None
    if use_remote:
        if remotes is None:
            remotes = _create_sheets_remotes()
        if remotes is not None:
            sync = SyncBridge(
                expenses,
                categories,
                budgets,
                remotes=remotes,
                auth=auth,
                app_state=app_state,
                auth_timeout=settings.auth_timeout_seconds,
            )

    activity_logger = ActivityLogger()
    for store in (expenses, categories, budgets):
        activity_logger.attach(store)

    logger.info(
        "app_context_created",
        environment=settings.environment,
        remote_sync=sync is not None,
    )

    return AppContext(
        settings=settings,
        local_store=local_store,
        expenses=expenses,
        categories=categories,
        budgets=budgets,
        preferences=preferences,
        app_state=app_state,
        auth=auth,
        sync=sync,
        activity_logger=activity_logger,
    )
