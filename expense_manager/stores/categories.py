"""
Category Store

CRITICAL: Default categories (user_id None) are protected.
- delete() refuses them
- editing one as an authenticated user makes it that user's category,
  unless the edit sets user_id explicitly
"""

from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from expense_manager.audit import get_logger
from expense_manager.models import Category
from expense_manager.models.entities import utc_now
from expense_manager.storage import LocalStore
from expense_manager.stores.base import EntityStore
from expense_manager.stores.observable import Derived
from expense_manager.stores.seed_data import default_categories
from expense_manager.utils import generate_id
from expense_manager.validation import validate_category


logger = get_logger(__name__)


def _no_user() -> Optional[str]:
    return None


class CategoryStore(EntityStore[Category]):
    """
    Categories, in creation order, seeded with the defaults.

    `current_user` returns the authenticated user id, or None.
    """

    collection = "categories"
    model = Category
    id_prefix = "cat"

    def __init__(
        self,
        local_store: LocalStore,
        current_user: Callable[[], Optional[str]] = _no_user,
    ):
        self._current_user = current_user
        self._seeded = False
        super().__init__(local_store)
        if self._seeded:
            self._persist(self.value)

        # ===== DERIVED VIEWS =====
        self.user_categories = Derived(
            [self._items], lambda items: [c for c in items if not c.is_default]
        )
        self.system_categories = Derived(
            [self._items], lambda items: [c for c in items if c.is_default]
        )
        self.with_budgets = Derived(
            [self._items],
            lambda items: [c for c in items if c.budget is not None and c.budget > 0],
        )
        self.count = Derived([self._items], len)
        self.category_map = Derived(
            [self._items], lambda items: {c.id: c for c in items}
        )

    def _load(self) -> list[Category]:
        stored = self._local_store.load().categories
        self._seeded = not stored
        return list(stored) if stored else default_categories()

    def _persist(self, items: list[Category]) -> None:
        self._local_store.save_categories(items)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(
        self,
        data: Mapping[str, Any],
        user_id: Optional[str] = None,
    ) -> Optional[Category]:
        """
        Create a user category.

        The owner is `user_id`, else the data's userId, else the current
        user, else "local".

        Returns:
            The new category, or None if the data is rejected
        """
        errors = validate_category(data)
        if errors:
            logger.warning("category_rejected", errors=errors)
            return None

        changes = self._normalize_keys(data)
        changes.pop("id", None)
        changes.pop("created_at", None)
        owner = (
            user_id
            or changes.pop("user_id", None)
            or self._current_user()
            or "local"
        )
        changes.pop("user_id", None)

        try:
            category = Category(
                id=generate_id(self.id_prefix),
                user_id=owner,
                created_at=utc_now(),
                **changes,
            )
        except ValidationError as e:
            logger.warning("category_rejected", error_count=e.error_count())
            return None

        return self._insert(category)

    def _prepare_update(self, current: Category, changes: dict[str, Any]) -> dict[str, Any]:
        if current.is_default and "user_id" not in changes:
            acting_user = self._current_user()
            if acting_user:
                changes["user_id"] = acting_user
        return super()._prepare_update(current, changes)

    def _can_delete(self, entity: Category) -> bool:
        if entity.is_default:
            logger.info("default_category_delete_refused", category_id=entity.id)
            return False
        return True

    def reset_to_defaults(self) -> None:
        """Replace every category with the default set."""
        self.replace_all(default_categories())

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_by_name(self, name: str) -> Optional[Category]:
        """Case-insensitive lookup by name."""
        wanted = name.strip().casefold()
        for category in self.value:
            if category.name.casefold() == wanted:
                return category
        return None
