"""
Derived and Container Models

Models for values that are computed rather than entered:
statistics, budget progress, filter/sort state, the persisted
storage record and results reported back to callers.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from expense_manager.models.entities import (
    Budget,
    Category,
    Expense,
    PaymentMethod,
    RecordModel,
    UserPreferences,
    utc_now,
)


STORAGE_VERSION = 1
STORAGE_KEY = "expense-manager-data"


class BudgetStatus(str, Enum):
    """Traffic-light status of a budget."""
    SAFE = "safe"
    WARNING = "warning"  # at or above 80% of the amount
    DANGER = "danger"    # at or above 100% of the amount


class ExpenseSortField(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    DESCRIPTION = "description"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# =============================================================================
# STATISTICS
# =============================================================================

class ExpenseStats(BaseModel):
    """Summary statistics over a set of expenses."""

    total: Decimal = Decimal("0")
    count: int = 0
    average: Decimal = Decimal("0")
    highest: Decimal = Decimal("0")
    lowest: Decimal = Decimal("0")


class CategoryStats(BaseModel):
    """Spending of one category within a set of expenses."""

    category_id: str
    category_name: str
    total: Decimal
    count: int
    percentage: Decimal = Field(
        ...,
        description="Share of the grand total, 0-100"
    )
    color: str


class BudgetProgress(BaseModel):
    """How far a budget has been consumed."""

    budget: Budget
    spent: Decimal
    remaining: Decimal
    percentage: Decimal = Field(
        ...,
        ge=0,
        le=100,
        description="Consumed share, clamped to 100"
    )
    status: BudgetStatus


# =============================================================================
# FILTER / SORT STATE
# =============================================================================

class ExpenseFilters(BaseModel):
    """Current filter selection for the expense list."""

    model_config = ConfigDict(populate_by_name=True)

    search: str = ""
    category_id: Optional[str] = Field(default="all", alias="categoryId")
    date_from: Optional[date] = Field(default=None, alias="dateFrom")
    date_to: Optional[date] = Field(default=None, alias="dateTo")
    amount_min: Optional[Decimal] = Field(default=None, alias="amountMin")
    amount_max: Optional[Decimal] = Field(default=None, alias="amountMax")
    payment_method: Union[PaymentMethod, Literal["all"], None] = Field(
        default="all", alias="paymentMethod"
    )


class ExpenseSort(BaseModel):
    field: ExpenseSortField = ExpenseSortField.DATE
    direction: SortDirection = SortDirection.DESC


# =============================================================================
# PERSISTENCE
# =============================================================================

class StorageData(RecordModel):
    """
    The single record held by the local store.

    Layout: {expenses, categories, budgets, preferences, version, lastUpdated}
    """

    expenses: list[Expense] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    version: int = STORAGE_VERSION
    last_updated: datetime = Field(default_factory=utc_now)


class ImportResult(BaseModel):
    """Outcome of a JSON import. Import never raises."""

    success: bool
    message: str


class AppState(BaseModel):
    """Application-level status flags."""

    is_online: bool = True
    is_loading: bool = False
    last_sync_at: Optional[datetime] = None
    error: Optional[str] = None
