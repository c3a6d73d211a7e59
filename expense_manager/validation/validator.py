"""
Minimum-Field Validation

DESIGN DECISION: Validation reports, it never raises.
Each validator returns a list of human-readable messages; an empty
list means the data is acceptable. The same checks gate store
creation and outbound remote pushes.

Validators accept either a model or a plain mapping, keyed by field
name (`category_id`) or by record key (`categoryId`).
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from expense_manager.models import BudgetPeriod


Data = Union[Mapping[str, Any], BaseModel]


def _get(data: Data, name: str) -> Any:
    if isinstance(data, BaseModel):
        return getattr(data, name, None)
    if name in data:
        return data[name]
    return data.get(to_camel(name))


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def validate_expense(data: Data) -> list[str]:
    """Check amount, description, category and date."""
    errors = []

    amount = _as_decimal(_get(data, "amount"))
    if amount is None or not amount > 0:
        errors.append("Amount must be greater than 0")

    if _is_blank(_get(data, "description")):
        errors.append("Description is required")

    if _is_blank(_get(data, "category_id")):
        errors.append("Category is required")

    if _get(data, "date") in (None, ""):
        errors.append("Date is required")

    return errors


def validate_category(data: Data) -> list[str]:
    """Check name and optional budget."""
    errors = []

    if _is_blank(_get(data, "name")):
        errors.append("Name is required")

    budget = _get(data, "budget")
    if budget is not None:
        amount = _as_decimal(budget)
        if amount is None or amount < 0:
            errors.append("Budget cannot be negative")

    return errors


def validate_budget(data: Data) -> list[str]:
    """Check amount and period."""
    errors = []

    amount = _as_decimal(_get(data, "amount"))
    if amount is None or not amount > 0:
        errors.append("Amount must be greater than 0")

    period = _get(data, "period")
    if _is_blank(period):
        errors.append("Period is required")
    else:
        try:
            BudgetPeriod(period)
        except ValueError:
            errors.append(f"Unknown budget period: {period}")

    return errors
