"""
Expense and Budget Calculations

DESIGN DECISION: Calculations never fail on bad input.
An empty list yields zeroed statistics, a zero budget yields
zero percent. Callers never need to guard these functions.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from expense_manager.models import (
    Budget,
    BudgetProgress,
    BudgetStatus,
    Category,
    CategoryStats,
    Expense,
    ExpenseStats,
)
from expense_manager.utils.dates import current_date, filter_by_date_range
from expense_manager.utils.filters import total_amount


# Budget status thresholds, in percent of the budget amount
WARNING_THRESHOLD = Decimal("80")
DANGER_THRESHOLD = Decimal("100")

UNKNOWN_CATEGORY_NAME = "Unknown"
UNKNOWN_CATEGORY_COLOR = "#64748B"

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def calculate_total(expenses: Sequence[Expense]) -> Decimal:
    return total_amount(expenses)


def calculate_stats(expenses: Sequence[Expense]) -> ExpenseStats:
    """Total, count, average, highest and lowest amount."""
    if not expenses:
        return ExpenseStats()

    amounts = [exp.amount for exp in expenses]
    total = sum(amounts, _ZERO)

    return ExpenseStats(
        total=total,
        count=len(amounts),
        average=total / len(amounts),
        highest=max(amounts),
        lowest=min(amounts),
    )


def calculate_category_stats(
    expenses: Sequence[Expense],
    categories: Sequence[Category],
) -> list[CategoryStats]:
    """
    Per-category totals, ordered by total descending.

    Expenses pointing at a category that no longer exists are
    reported under "Unknown" in neutral gray.
    """
    grand_total = total_amount(expenses)
    by_id = {cat.id: cat for cat in categories}

    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for exp in expenses:
        totals[exp.category_id] = totals.get(exp.category_id, _ZERO) + exp.amount
        counts[exp.category_id] = counts.get(exp.category_id, 0) + 1

    stats = []
    for category_id, amount in totals.items():
        category = by_id.get(category_id)
        stats.append(CategoryStats(
            category_id=category_id,
            category_name=category.name if category else UNKNOWN_CATEGORY_NAME,
            total=amount,
            count=counts[category_id],
            percentage=amount / grand_total * _HUNDRED if grand_total > 0 else _ZERO,
            color=category.color if category else UNKNOWN_CATEGORY_COLOR,
        ))

    return sorted(stats, key=lambda s: s.total, reverse=True)


def calculate_budget_progress(budget: Budget, spent: Decimal) -> BudgetProgress:
    """
    Remaining amount, consumed percentage and status of a budget.

    Status is judged on the unclamped percentage; the reported
    percentage is clamped to 100.
    """
    spent = Decimal(spent)
    remaining = max(budget.amount - spent, _ZERO)
    percentage = spent / budget.amount * _HUNDRED if budget.amount > 0 else _ZERO

    if percentage >= DANGER_THRESHOLD:
        status = BudgetStatus.DANGER
    elif percentage >= WARNING_THRESHOLD:
        status = BudgetStatus.WARNING
    else:
        status = BudgetStatus.SAFE

    return BudgetProgress(
        budget=budget.model_copy(update={"spent": spent}),
        spent=spent,
        remaining=remaining,
        percentage=min(max(percentage, _ZERO), _HUNDRED),
        status=status,
    )


def get_spent_for_budget(
    budget: Budget,
    expenses: Sequence[Expense],
    today: Optional[date] = None,
) -> Decimal:
    """
    Sum of expenses inside the budget window.

    The window runs from start_date to end_date (or today when open);
    a category budget only counts its own category.
    """
    end = budget.end_date or today or current_date()
    matching = filter_by_date_range(expenses, budget.start_date, end)

    if budget.category_id is not None:
        matching = [exp for exp in matching if exp.category_id == budget.category_id]

    return total_amount(matching)
