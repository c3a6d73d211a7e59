"""
Search, Sort and Filter Predicates

Pure functions over expense lists. None of them mutate their input;
each returns a new list (or the input itself when nothing applies).
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence, Union

from expense_manager.models import (
    Expense,
    ExpenseFilters,
    ExpenseSort,
    ExpenseSortField,
    SortDirection,
)
from expense_manager.utils.dates import current_date, filter_by_date_range


EPOCH = date(1970, 1, 1)


def search_expenses(expenses: Sequence[Expense], query: str) -> Sequence[Expense]:
    """
    Case-insensitive substring search over description, merchant,
    notes and tags. A blank query returns the input unchanged.
    """
    if not query or not query.strip():
        return expenses

    needle = query.lower()

    def matches(exp: Expense) -> bool:
        if needle in exp.description.lower():
            return True
        if exp.merchant and needle in exp.merchant.lower():
            return True
        if exp.notes and needle in exp.notes.lower():
            return True
        return any(needle in tag.lower() for tag in exp.tags or [])

    return [exp for exp in expenses if matches(exp)]


def sort_expenses(
    expenses: Sequence[Expense],
    field: Union[ExpenseSortField, str] = ExpenseSortField.DATE,
    direction: Union[SortDirection, str] = SortDirection.DESC,
) -> list[Expense]:
    """
    Stable sort by date, amount or description.

    Descriptions compare case-insensitively first, then by exact text,
    which approximates locale ordering. Descending order keeps equal
    elements in their original relative order.
    """
    field = ExpenseSortField(field)
    direction = SortDirection(direction)

    if field == ExpenseSortField.AMOUNT:
        key = lambda exp: exp.amount
    elif field == ExpenseSortField.DESCRIPTION:
        key = lambda exp: (exp.description.casefold(), exp.description)
    else:
        key = lambda exp: exp.date

    return sorted(expenses, key=key, reverse=direction == SortDirection.DESC)


def apply_expense_filters(
    expenses: Sequence[Expense],
    filters: ExpenseFilters,
    sort: ExpenseSort,
    today: Optional[date] = None,
) -> list[Expense]:
    """
    The filtered expense view pipeline:
    search -> category -> date range -> amount range -> payment method -> sort.
    """
    result: Sequence[Expense] = list(expenses)

    if filters.search:
        result = search_expenses(result, filters.search)

    if filters.category_id and filters.category_id != "all":
        result = [exp for exp in result if exp.category_id == filters.category_id]

    if filters.date_from or filters.date_to:
        result = filter_by_date_range(
            result,
            filters.date_from or EPOCH,
            filters.date_to or today or current_date(),
        )

    if filters.amount_min is not None:
        result = [exp for exp in result if exp.amount >= filters.amount_min]
    if filters.amount_max is not None:
        result = [exp for exp in result if exp.amount <= filters.amount_max]

    if filters.payment_method and filters.payment_method != "all":
        result = [exp for exp in result if exp.payment_method == filters.payment_method]

    return sort_expenses(result, sort.field, sort.direction)


def group_by_date(expenses: Sequence[Expense]) -> dict[str, list[Expense]]:
    """Group expenses by ISO day, in first-seen order."""
    groups: dict[str, list[Expense]] = defaultdict(list)
    for exp in expenses:
        groups[exp.date.isoformat()].append(exp)
    return dict(groups)


def group_by_category(expenses: Sequence[Expense]) -> dict[str, list[Expense]]:
    groups: dict[str, list[Expense]] = defaultdict(list)
    for exp in expenses:
        groups[exp.category_id].append(exp)
    return dict(groups)


def total_amount(expenses: Sequence[Expense]) -> Decimal:
    return sum((exp.amount for exp in expenses), Decimal("0"))
