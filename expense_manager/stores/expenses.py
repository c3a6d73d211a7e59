"""
Expense Store

Owns the expense collection plus the filter and sort selection of
the expense list, and exposes the derived views built on them.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from expense_manager.audit import get_logger
from expense_manager.models import (
    Expense,
    ExpenseFilters,
    ExpenseFormData,
    ExpenseSort,
    ExpenseSortField,
    SortDirection,
)
from expense_manager.models.entities import utc_now
from expense_manager.storage import LocalStore
from expense_manager.stores.base import EntityStore
from expense_manager.stores.observable import Derived, Observable
from expense_manager.utils import (
    apply_expense_filters,
    calculate_stats,
    current_date,
    generate_id,
    get_month_expenses,
    get_today_expenses,
    get_week_expenses,
    parse_currency,
    parse_tags,
)
from expense_manager.validation import validate_expense


logger = get_logger(__name__)

FormInput = Union[ExpenseFormData, Mapping[str, Any]]


class ExpenseStore(EntityStore[Expense]):
    """
    Expenses, newest first.

    `clock` supplies "today" for the date-window views.
    """

    collection = "expenses"
    model = Expense
    id_prefix = "exp"
    newest_first = True

    def __init__(
        self,
        local_store: LocalStore,
        clock: Callable[[], date] = current_date,
    ):
        self._clock = clock
        super().__init__(local_store)

        self.filters: Observable[ExpenseFilters] = Observable(ExpenseFilters())
        self.sort: Observable[ExpenseSort] = Observable(ExpenseSort())

        # ===== DERIVED VIEWS =====
        self.filtered = Derived(
            [self._items, self.filters, self.sort],
            lambda items, filters, sort: apply_expense_filters(
                items, filters, sort, self._clock()
            ),
        )
        self.today = Derived(
            [self._items], lambda items: get_today_expenses(items, self._clock())
        )
        self.week = Derived(
            [self._items], lambda items: get_week_expenses(items, self._clock())
        )
        self.month = Derived(
            [self._items], lambda items: get_month_expenses(items, self._clock())
        )
        self.today_stats = Derived([self.today], calculate_stats)
        self.week_stats = Derived([self.week], calculate_stats)
        self.month_stats = Derived([self.month], calculate_stats)
        self.count = Derived([self._items], len)

    def _load(self) -> list[Expense]:
        return list(self._local_store.load().expenses)

    def _persist(self, items: list[Expense]) -> None:
        self._local_store.save_expenses(items)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(self, form: FormInput, user_id: str = "local") -> Optional[Expense]:
        """
        Create an expense from raw form input.

        The amount may be typed text and tags a comma-separated string.

        Returns:
            The new expense, or None if the input is rejected
        """
        try:
            if not isinstance(form, ExpenseFormData):
                form = ExpenseFormData.model_validate(form)
        except ValidationError as e:
            logger.warning("expense_rejected", error_count=e.error_count())
            return None

        amount = (
            form.amount if isinstance(form.amount, Decimal)
            else parse_currency(form.amount)
        )
        tags = parse_tags(form.tags) if isinstance(form.tags, str) else form.tags

        errors = validate_expense({
            "amount": amount,
            "description": form.description,
            "category_id": form.category_id,
            "date": form.date,
        })
        if errors:
            logger.warning("expense_rejected", errors=errors)
            return None

        now = utc_now()
        try:
            expense = Expense(
                id=generate_id(self.id_prefix),
                user_id=user_id,
                amount=amount,
                description=form.description,
                category_id=form.category_id,
                date=form.date,
                created_at=now,
                updated_at=now,
                merchant=form.merchant or None,
                payment_method=form.payment_method,
                notes=form.notes or None,
                tags=tags or None,
            )
        except ValidationError as e:
            logger.warning("expense_rejected", error_count=e.error_count())
            return None

        return self._insert(expense)

    def delete_many(self, ids: Iterable[str]) -> int:
        """Delete several expenses; returns how many existed."""
        return sum(1 for expense_id in list(ids) if self.delete(expense_id))

    # -------------------------------------------------------------------------
    # Filter / sort selection
    # -------------------------------------------------------------------------

    def set_filters(self, **changes: Any) -> bool:
        """
        Merge `changes` (field names or record keys) into the current filters.

        Returns False and keeps the current filters if the result is invalid.
        """
        aliases = {
            field.alias: name
            for name, field in ExpenseFilters.model_fields.items()
            if field.alias
        }
        changes = {aliases.get(key, key): value for key, value in changes.items()}
        try:
            updated = ExpenseFilters.model_validate(
                {**self.filters.value.model_dump(), **changes}
            )
        except ValidationError as e:
            logger.warning("filters_rejected", error_count=e.error_count())
            return False
        self.filters.set(updated)
        return True

    def clear_filters(self) -> None:
        self.filters.set(ExpenseFilters())

    def set_sort(
        self,
        field: Union[ExpenseSortField, str],
        direction: Union[SortDirection, str] = SortDirection.DESC,
    ) -> bool:
        try:
            sort = ExpenseSort(field=field, direction=direction)
        except ValidationError as e:
            logger.warning("sort_rejected", error_count=e.error_count())
            return False
        self.sort.set(sort)
        return True
