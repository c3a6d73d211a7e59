"""
Shared fixtures.

Everything runs against in-memory backends and remotes; no test
touches the network or the real data directory.
"""

from datetime import date
from decimal import Decimal

import pytest

from expense_manager.models import Budget, BudgetPeriod, Category, Expense
from expense_manager.storage import LocalStore, MemoryBackend


TODAY = date(2024, 3, 15)  # a Friday


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def clock():
    return lambda: TODAY


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def local_store(backend) -> LocalStore:
    return LocalStore(backend)


@pytest.fixture
def make_expense():
    """Factory for valid expenses; override any field by keyword."""
    counter = {"n": 0}

    def factory(**overrides) -> Expense:
        counter["n"] += 1
        fields = {
            "id": f"exp_test{counter['n']}",
            "user_id": "local",
            "amount": Decimal("10"),
            "description": f"Expense {counter['n']}",
            "category_id": "cat_food",
            "date": TODAY,
        }
        fields.update(overrides)
        return Expense(**fields)

    return factory


@pytest.fixture
def make_category():
    def factory(**overrides) -> Category:
        fields = {"id": "cat_custom", "user_id": "local", "name": "Custom"}
        fields.update(overrides)
        return Category(**fields)

    return factory


@pytest.fixture
def make_budget():
    def factory(**overrides) -> Budget:
        fields = {
            "id": "bgt_test",
            "user_id": "local",
            "category_id": "cat_food",
            "amount": Decimal("100"),
            "period": BudgetPeriod.MONTHLY,
            "start_date": date(2024, 3, 1),
        }
        fields.update(overrides)
        return Budget(**fields)

    return factory
