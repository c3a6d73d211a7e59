"""
Utility / Calculation Library

Pure, deterministic functions over collections passed by value.
No state, no I/O.
"""

from expense_manager.utils.calculations import (
    DANGER_THRESHOLD,
    WARNING_THRESHOLD,
    calculate_budget_progress,
    calculate_category_stats,
    calculate_stats,
    calculate_total,
    get_spent_for_budget,
)
from expense_manager.utils.dates import (
    current_date,
    current_timestamp,
    filter_by_date_range,
    format_date,
    format_relative_date,
    get_month_expenses,
    get_today_expenses,
    get_week_expenses,
    start_of_month,
    start_of_week,
    start_of_year,
    to_date,
)
from expense_manager.utils.filters import (
    apply_expense_filters,
    group_by_category,
    group_by_date,
    search_expenses,
    sort_expenses,
)
from expense_manager.utils.formatting import (
    format_currency,
    generate_id,
    generate_shareable_id,
    parse_currency,
    parse_tags,
    tags_to_string,
)

__all__ = [
    # Calculations
    "DANGER_THRESHOLD",
    "WARNING_THRESHOLD",
    "calculate_budget_progress",
    "calculate_category_stats",
    "calculate_stats",
    "calculate_total",
    "get_spent_for_budget",
    # Dates
    "current_date",
    "current_timestamp",
    "filter_by_date_range",
    "format_date",
    "format_relative_date",
    "get_month_expenses",
    "get_today_expenses",
    "get_week_expenses",
    "start_of_month",
    "start_of_week",
    "start_of_year",
    "to_date",
    # Search / sort / filter
    "apply_expense_filters",
    "group_by_category",
    "group_by_date",
    "search_expenses",
    "sort_expenses",
    # Formatting
    "format_currency",
    "generate_id",
    "generate_shareable_id",
    "parse_currency",
    "parse_tags",
    "tags_to_string",
]
