"""
Budget Store

Budgets are stored with a denormalized `spent` of 0; the progress
views recompute spending from the expense store whenever either
collection changes.
"""

from datetime import date
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from expense_manager.audit import get_logger
from expense_manager.models import Budget, BudgetPeriod, BudgetStatus
from expense_manager.models.entities import utc_now
from expense_manager.storage import LocalStore
from expense_manager.stores.base import EntityStore
from expense_manager.stores.expenses import ExpenseStore
from expense_manager.stores.observable import Derived
from expense_manager.utils import (
    calculate_budget_progress,
    current_date,
    generate_id,
    get_spent_for_budget,
    start_of_month,
    start_of_week,
    start_of_year,
)
from expense_manager.validation import validate_budget


logger = get_logger(__name__)

ALERT_STATUSES = (BudgetStatus.WARNING, BudgetStatus.DANGER)


def default_start_date(period: BudgetPeriod, today: date) -> date:
    """First day of the period containing `today`."""
    if period == BudgetPeriod.DAILY:
        return today
    if period == BudgetPeriod.WEEKLY:
        return start_of_week(today)
    if period == BudgetPeriod.YEARLY:
        return start_of_year(today)
    return start_of_month(today)


class BudgetStore(EntityStore[Budget]):
    """Budgets, in creation order, with progress against the expenses."""

    collection = "budgets"
    model = Budget
    id_prefix = "bgt"

    def __init__(
        self,
        local_store: LocalStore,
        expenses: ExpenseStore,
        clock: Callable[[], date] = current_date,
    ):
        self._clock = clock
        super().__init__(local_store)

        # ===== DERIVED VIEWS =====
        self.overall = Derived(
            [self._items],
            lambda items: next((b for b in items if b.is_overall), None),
        )
        self.category_budgets = Derived(
            [self._items], lambda items: [b for b in items if not b.is_overall]
        )
        self.progress = Derived(
            [self._items, expenses.items],
            lambda budgets, expense_items: [
                calculate_budget_progress(
                    budget,
                    get_spent_for_budget(budget, expense_items, self._clock()),
                )
                for budget in budgets
            ],
        )
        self.overall_progress = Derived(
            [self.progress],
            lambda progress: next((p for p in progress if p.budget.is_overall), None),
        )
        self.category_progress = Derived(
            [self.progress],
            lambda progress: [p for p in progress if not p.budget.is_overall],
        )
        self.alerts = Derived(
            [self.progress],
            lambda progress: [p for p in progress if p.status in ALERT_STATUSES],
        )
        self.count = Derived([self._items], len)

    def _load(self) -> list[Budget]:
        return list(self._local_store.load().budgets)

    def _persist(self, items: list[Budget]) -> None:
        self._local_store.save_budgets(items)

    def add(self, data: Mapping[str, Any], user_id: str = "local") -> Optional[Budget]:
        """
        Create a budget.

        Without a start date the budget starts at the beginning of the
        current period.

        Returns:
            The new budget, or None if the data is rejected
        """
        errors = validate_budget(data)
        if errors:
            logger.warning("budget_rejected", errors=errors)
            return None

        fields = self._normalize_keys(data)
        period = BudgetPeriod(fields["period"])
        now = utc_now()

        try:
            budget = Budget(
                id=generate_id(self.id_prefix),
                user_id=user_id,
                category_id=fields.get("category_id"),
                amount=fields["amount"],
                period=period,
                start_date=fields.get("start_date") or default_start_date(period, self._clock()),
                end_date=fields.get("end_date"),
                created_at=now,
                updated_at=now,
            )
        except ValidationError as e:
            logger.warning("budget_rejected", error_count=e.error_count())
            return None

        return self._insert(budget)

    def get_by_category(self, category_id: Optional[str]) -> Optional[Budget]:
        """The first budget for `category_id`; None selects the overall budget."""
        for budget in self.value:
            if budget.category_id == category_id:
                return budget
        return None
