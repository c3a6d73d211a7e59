"""
Local Store

A durable mirror of every collection, kept as ONE keyed record:
{expenses, categories, budgets, preferences, version, lastUpdated}.

DESIGN DECISION: The local store never raises to its callers.
- load() falls back to an empty default record
- save() and friends report False
- import reports a structured ImportResult

TRADEOFFS:
- Partial saves reload and rewrite the whole record, so two
  collections saving independently are not atomic relative to each
  other. The last write wins at field level.
"""

import json
from typing import Callable, Optional, Sequence

from pydantic import ValidationError

from expense_manager.audit import get_logger
from expense_manager.models import (
    STORAGE_KEY,
    STORAGE_VERSION,
    Budget,
    Category,
    Expense,
    ImportResult,
    StorageData,
    UserPreferences,
)
from expense_manager.storage.backends import BackendError, KeyValueBackend
from expense_manager.utils.dates import current_timestamp


logger = get_logger(__name__)

CSV_HEADERS = [
    "Date",
    "Description",
    "Amount",
    "Category",
    "Payment Method",
    "Merchant",
    "Notes",
    "Tags",
]

REQUIRED_IMPORT_KEYS = ("expenses", "categories", "preferences")

Migration = Callable[[dict], dict]


# =============================================================================
# MIGRATIONS - raw record of version N -> raw record of version N + 1
# =============================================================================

def _migrate_v0_to_v1(raw: dict) -> dict:
    """Unversioned records predate budgets and may lack preferences."""
    migrated = dict(raw)
    migrated.setdefault("expenses", [])
    migrated.setdefault("categories", [])
    migrated.setdefault("budgets", [])
    if not migrated.get("preferences"):
        migrated["preferences"] = UserPreferences().to_record()
    return migrated


MIGRATIONS: dict[int, Migration] = {
    0: _migrate_v0_to_v1,
}


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


class LocalStore:
    """
    Versioned read/modify/write access to the local record.

    The stores own the data; this class is only read at startup or on
    explicit reload and written after every mutation.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        key: str = STORAGE_KEY,
        migrations: Optional[dict[int, Migration]] = None,
        current_version: int = STORAGE_VERSION,
    ):
        self._backend = backend
        self._key = key
        self._migrations = MIGRATIONS if migrations is None else migrations
        self._current_version = current_version

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    def default_data(self) -> StorageData:
        return StorageData(version=self._current_version)

    # -------------------------------------------------------------------------
    # Whole-record operations
    # -------------------------------------------------------------------------

    def load(self) -> StorageData:
        """
        Load the record, migrating it if it is older than the current version.

        Returns the default record when nothing is stored, the stored
        record is unreadable, or the backend is unavailable.
        """
        if not self._backend.is_available():
            logger.warning("local_storage_unavailable", operation="load")
            return self.default_data()

        try:
            raw_text = self._backend.get(self._key)
        except BackendError as e:
            logger.error("local_storage_read_failed", error=str(e))
            return self.default_data()

        if not raw_text:
            return self.default_data()

        try:
            raw = json.loads(raw_text)
            if not isinstance(raw, dict):
                raise ValueError("stored record is not an object")

            version = int(raw.get("version", 0))
            if version < self._current_version:
                return self._migrate(raw, version)

            return StorageData.model_validate(raw)
        except (ValueError, TypeError, ValidationError) as e:
            logger.error("local_storage_corrupt", error=str(e))
            return self.default_data()

    def _migrate(self, raw: dict, version: int) -> StorageData:
        """Apply each migration step in order, then persist the result."""
        migrated = raw
        for step_version in range(version, self._current_version):
            step = self._migrations.get(step_version)
            if step is not None:
                migrated = step(migrated)
        migrated["version"] = self._current_version

        data = StorageData.model_validate(migrated)
        logger.info(
            "local_storage_migrated",
            from_version=version,
            to_version=self._current_version,
        )
        self.save(data)
        return data

    def save(self, data: StorageData) -> bool:
        """Write the whole record, stamping lastUpdated. False on failure."""
        if not self._backend.is_available():
            logger.warning("local_storage_unavailable", operation="save")
            return False

        to_save = data.model_copy(update={"last_updated": current_timestamp()})
        try:
            self._backend.set(self._key, to_save.model_dump_json(by_alias=True))
        except BackendError as e:
            logger.error("local_storage_write_failed", error=str(e))
            return False
        return True

    def clear(self) -> bool:
        if not self._backend.is_available():
            return False
        try:
            self._backend.remove(self._key)
        except BackendError as e:
            logger.error("local_storage_clear_failed", error=str(e))
            return False
        return True

    # -------------------------------------------------------------------------
    # Partial saves - read, replace one field, write back
    # -------------------------------------------------------------------------

    def save_expenses(self, expenses: Sequence[Expense]) -> bool:
        data = self.load()
        data.expenses = list(expenses)
        return self.save(data)

    def save_categories(self, categories: Sequence[Category]) -> bool:
        data = self.load()
        data.categories = list(categories)
        return self.save(data)

    def save_budgets(self, budgets: Sequence[Budget]) -> bool:
        data = self.load()
        data.budgets = list(budgets)
        return self.save(data)

    def save_preferences(self, preferences: UserPreferences) -> bool:
        data = self.load()
        data.preferences = preferences
        return self.save(data)

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    def export_json(self) -> str:
        """Full record as pretty-printed JSON."""
        return self.load().model_dump_json(by_alias=True, indent=2)

    def export_csv(self) -> str:
        """
        Expenses flattened to CSV.

        Description, notes and tags are always double-quoted with embedded
        quotes doubled; the category column holds the category name.
        """
        data = self.load()
        if not data.expenses:
            return "No expenses to export"

        names = {cat.id: cat.name for cat in data.categories}
        rows = [",".join(CSV_HEADERS)]
        for exp in data.expenses:
            rows.append(",".join([
                exp.date.isoformat(),
                _quote(exp.description),
                f"{exp.amount:.2f}",
                names.get(exp.category_id, ""),
                exp.payment_method.value if exp.payment_method else "",
                exp.merchant or "",
                _quote(exp.notes or ""),
                _quote(", ".join(exp.tags or [])),
            ]))
        return "\n".join(rows)

    def import_json(self, json_string: str) -> ImportResult:
        """
        Replace the stored record with an exported one.

        Requires the expenses, categories and preferences keys. There is
        no field-level merge: a successful import replaces everything.
        """
        try:
            raw = json.loads(json_string)
        except ValueError as e:
            return ImportResult(success=False, message=f"Import failed: {e}")

        if not isinstance(raw, dict) or any(key not in raw for key in REQUIRED_IMPORT_KEYS):
            return ImportResult(success=False, message="Invalid data format")

        raw = {**raw, "version": self._current_version}
        try:
            imported = StorageData.model_validate(raw)
        except ValidationError as e:
            logger.warning("import_rejected", error_count=e.error_count())
            return ImportResult(
                success=False,
                message=f"Import failed: {e.error_count()} invalid field(s)",
            )

        if not self.save(imported):
            return ImportResult(success=False, message="Failed to save imported data")

        return ImportResult(
            success=True,
            message=(
                f"Imported {len(imported.expenses)} expenses, "
                f"{len(imported.categories)} categories"
            ),
        )

    # -------------------------------------------------------------------------
    # Size reporting
    # -------------------------------------------------------------------------

    def storage_size(self) -> int:
        """Size of the stored record in bytes (0 when unavailable)."""
        if not self._backend.is_available():
            return 0
        try:
            raw = self._backend.get(self._key)
        except BackendError:
            return 0
        return len(raw.encode("utf-8")) if raw else 0

    def formatted_storage_size(self) -> str:
        size = self.storage_size()
        if size < 1024:
            return f"{size} B"
        if size < 1024 * 1024:
            return f"{size / 1024:.1f} KB"
        return f"{size / (1024 * 1024):.1f} MB"
