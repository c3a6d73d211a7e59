"""
Core Data Models for Expense Manager

These models define the schemas for all data held by the stores,
written to the local store and exchanged with the remote store.
They are designed to:
1. Enforce entity invariants at construction time
2. Serialize to the camelCase record layout used on disk and remotely
3. Accept either field names or camelCase keys on input

DESIGN DECISION: Amounts are Decimal in memory and plain JSON numbers
on the wire, so aggregates and threshold checks are exact.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


# Serialized as a JSON number, kept exact in memory
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]

# Alias so a field may be called `date` without shadowing the type
CalendarDate = date


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecordModel(BaseModel):
    """Base for every persisted record: camelCase aliases, names allowed."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_record(self) -> dict:
        """Dump to the JSON-compatible camelCase layout."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class PaymentMethod(str, Enum):
    """How an expense was paid."""
    CASH = "cash"
    CARD = "card"
    DIGITAL = "digital"
    BANK = "bank"
    OTHER = "other"


class BudgetPeriod(str, Enum):
    """Length of a budget window."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DateFormat(str, Enum):
    MM_DD_YYYY = "MM/DD/YYYY"
    DD_MM_YYYY = "DD/MM/YYYY"
    YYYY_MM_DD = "YYYY-MM-DD"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


# =============================================================================
# EXPENSES
# =============================================================================

class Expense(RecordModel):
    """
    A single recorded expense.

    `id` is assigned once at creation and never changes.
    """

    id: str = Field(..., min_length=1)
    user_id: str = Field(
        ...,
        description="Owner of the expense ('local' when created offline)"
    )
    amount: Money = Field(
        ...,
        gt=0,
        description="Amount spent, always positive"
    )
    description: str = Field(..., min_length=1, max_length=500)
    category_id: str = Field(..., min_length=1)
    date: CalendarDate = Field(
        ...,
        description="Calendar day the expense happened"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Optional details
    merchant: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None

    @field_validator('tags')
    @classmethod
    def normalize_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        """Tags behave like a set of lowercase strings."""
        if v is None:
            return None
        seen: list[str] = []
        for tag in v:
            tag = tag.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class ExpenseFormData(BaseModel):
    """
    Raw expense input as entered by a user.

    Amount may still be text and tags a comma-separated string;
    the expense store parses both before building an Expense.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    amount: Union[Decimal, str] = ""
    description: str = ""
    category_id: str = ""
    date: Optional[CalendarDate] = None
    merchant: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    tags: Optional[Union[str, list[str]]] = None


# =============================================================================
# CATEGORIES
# =============================================================================

class Category(RecordModel):
    """
    Expense category.

    CRITICAL: user_id None marks a shared default category. Defaults are
    never deleted; editing one makes it owned by the editing user.
    """

    id: str = Field(..., min_length=1)
    user_id: Optional[str] = Field(
        default=None,
        description="Owner, or None for a system default category"
    )
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = ""
    color: str = "#64748B"
    created_at: datetime = Field(default_factory=utc_now)

    parent_id: Optional[str] = None
    budget: Optional[Money] = Field(default=None, ge=0)
    budget_period: Optional[BudgetPeriod] = None

    @property
    def is_default(self) -> bool:
        return self.user_id is None


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(RecordModel):
    """
    Spending limit over a period, for one category or overall.

    `spent` is denormalized: it is recomputed from expenses by the
    budget progress view and is never authoritative.
    """

    id: str = Field(..., min_length=1)
    user_id: str
    category_id: Optional[str] = Field(
        default=None,
        description="Category the budget applies to, None for all spending"
    )
    amount: Money = Field(..., ge=0)
    period: BudgetPeriod
    start_date: CalendarDate
    end_date: Optional[CalendarDate] = None
    spent: Money = Decimal("0")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_overall(self) -> bool:
        return self.category_id is None


# =============================================================================
# PREFERENCES
# =============================================================================

class UserPreferences(RecordModel):
    """Display preferences, one per local store."""

    currency: str = Field(default="USD", min_length=3, max_length=3)
    date_format: DateFormat = DateFormat.MM_DD_YYYY
    theme: Theme = Theme.DARK
    language: str = "en"

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()
