"""
Observable Collection Stores

Each store owns one collection, persists it through the local store
on every change and exposes memoized derived views.
"""

from expense_manager.stores.app_state import AppStateStore
from expense_manager.stores.base import (
    DELETE,
    UPSERT,
    EntityStore,
    MutationEvent,
)
from expense_manager.stores.budgets import BudgetStore
from expense_manager.stores.categories import CategoryStore
from expense_manager.stores.expenses import ExpenseStore
from expense_manager.stores.observable import Derived, Observable
from expense_manager.stores.preferences import PreferencesStore
from expense_manager.stores.seed_data import (
    SEED_CATEGORIES,
    SEED_CATEGORY_IDS,
    default_categories,
)

__all__ = [
    # Primitives
    "Derived",
    "Observable",
    # Stores
    "AppStateStore",
    "BudgetStore",
    "CategoryStore",
    "EntityStore",
    "ExpenseStore",
    "PreferencesStore",
    # Mutation events
    "DELETE",
    "UPSERT",
    "MutationEvent",
    # Defaults
    "SEED_CATEGORIES",
    "SEED_CATEGORY_IDS",
    "default_categories",
]
