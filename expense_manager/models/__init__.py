"""
Data Models Package

This package contains all Pydantic models used by Expense Manager.
Everything the stores hold, persist or sync conforms to these schemas.
"""

from expense_manager.models.entities import (
    Budget,
    BudgetPeriod,
    Category,
    DateFormat,
    Expense,
    ExpenseFormData,
    PaymentMethod,
    Theme,
    UserPreferences,
)
from expense_manager.models.reports import (
    STORAGE_KEY,
    STORAGE_VERSION,
    AppState,
    BudgetProgress,
    BudgetStatus,
    CategoryStats,
    ExpenseFilters,
    ExpenseSort,
    ExpenseSortField,
    ExpenseStats,
    ImportResult,
    SortDirection,
    StorageData,
)

__all__ = [
    # Entities
    "Budget",
    "BudgetPeriod",
    "Category",
    "DateFormat",
    "Expense",
    "ExpenseFormData",
    "PaymentMethod",
    "Theme",
    "UserPreferences",
    # Derived / container models
    "AppState",
    "BudgetProgress",
    "BudgetStatus",
    "CategoryStats",
    "ExpenseFilters",
    "ExpenseSort",
    "ExpenseSortField",
    "ExpenseStats",
    "ImportResult",
    "SortDirection",
    "StorageData",
    "STORAGE_KEY",
    "STORAGE_VERSION",
]
