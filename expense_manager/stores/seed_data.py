"""
Default Categories

System categories (user_id None) present for every user until
customized. They are seeded whenever local storage holds no categories
and form the base layer of the remote category merge.
"""

from datetime import datetime, timezone
from decimal import Decimal

from expense_manager.models import BudgetPeriod, Category


SEED_CREATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _default(id: str, name: str, icon: str, color: str, budget=None) -> Category:
    return Category(
        id=id,
        user_id=None,
        name=name,
        icon=icon,
        color=color,
        created_at=SEED_CREATED_AT,
        budget=Decimal(budget) if budget is not None else None,
        budget_period=BudgetPeriod.MONTHLY if budget is not None else None,
    )


SEED_CATEGORIES: tuple[Category, ...] = (
    _default("cat_groceries", "Groceries", "🛒", "#10B981", 400),
    _default("cat_food", "Food & Dining", "🍔", "#F97316", 300),
    _default("cat_travel", "Travel", "✈️", "#06B6D4", 250),
    _default("cat_shopping", "Shopping", "🛍️", "#EC4899", 200),
    _default("cat_entertainment", "Entertainment", "🎬", "#8B5CF6", 150),
    _default("cat_housing", "Housing", "🏠", "#6366F1", 1200),
    _default("cat_health", "Health", "💊", "#10B981", 150),
    _default("cat_subscriptions", "Subscriptions", "📺", "#A855F7", 50),
    _default("cat_other", "Other", "📋", "#64748B"),
)

SEED_CATEGORY_IDS = frozenset(cat.id for cat in SEED_CATEGORIES)


def default_categories() -> list[Category]:
    """A fresh list of the default categories."""
    return list(SEED_CATEGORIES)
