"""
Tests for the expense, category, preferences and app-state stores.
"""

from datetime import date
from decimal import Decimal

import pytest

from expense_manager.models import (
    DateFormat,
    ExpenseFormData,
    ExpenseSort,
    ExpenseSortField,
    SortDirection,
    Theme,
)
from expense_manager.storage import LocalStore, MemoryBackend
from expense_manager.stores import (
    DELETE,
    SEED_CATEGORY_IDS,
    UPSERT,
    AppStateStore,
    CategoryStore,
    ExpenseStore,
    PreferencesStore,
)


@pytest.fixture
def expense_store(local_store, clock):
    return ExpenseStore(local_store, clock=clock)


@pytest.fixture
def events(expense_store):
    received = []
    expense_store.on_mutation(received.append)
    return received


def lunch_form(**overrides):
    form = {
        "amount": 50,
        "description": "Lunch",
        "categoryId": "cat_food",
        "date": date(2024, 3, 15),
    }
    form.update(overrides)
    return form


class TestExpenseStoreAdd:
    """Tests for ExpenseStore.add."""

    def test_lunch_scenario(self, expense_store, local_store):
        """Test that one 50.00 lunch today shows up in every view."""
        expense = expense_store.add(lunch_form())

        assert expense is not None
        assert expense.id.startswith("exp_")
        assert expense.amount == Decimal("50")
        assert expense.user_id == "local"
        assert expense_store.value == [expense]
        assert expense_store.count.value == 1

        stats = expense_store.today_stats.value
        assert stats.total == Decimal("50")
        assert stats.count == 1
        assert stats.average == Decimal("50")
        assert stats.highest == Decimal("50")
        assert stats.lowest == Decimal("50")
        assert expense_store.week_stats.value.total == Decimal("50")
        assert expense_store.month_stats.value.total == Decimal("50")

        assert local_store.load().expenses[0].id == expense.id

    def test_invalid_input_is_rejected_without_writes(self, expense_store, backend, events):
        assert expense_store.add(lunch_form(amount="abc")) is None
        assert expense_store.add(lunch_form(description="   ")) is None
        assert expense_store.add(lunch_form(categoryId="")) is None
        assert expense_store.add(lunch_form(date=None)) is None

        assert expense_store.value == []
        assert backend.write_count == 0
        assert events == []

    def test_text_amount_and_tags_are_parsed(self, expense_store):
        expense = expense_store.add(lunch_form(amount="$1,234.50", tags="Work, team,"))
        assert expense.amount == Decimal("1234.50")
        assert expense.tags == ["work", "team"]

    def test_form_model_and_user(self, expense_store):
        form = ExpenseFormData(
            amount="12", description="Taxi", category_id="cat_travel", date=date(2024, 3, 1)
        )
        expense = expense_store.add(form, user_id="U")
        assert expense.user_id == "U"
        assert expense.merchant is None and expense.tags is None

    def test_newest_first(self, expense_store):
        first = expense_store.add(lunch_form(description="First"))
        second = expense_store.add(lunch_form(description="Second"))
        assert [e.id for e in expense_store.value] == [second.id, first.id]

    def test_add_emits_upsert(self, expense_store, events):
        expense = expense_store.add(lunch_form())
        assert len(events) == 1
        assert events[0].collection == "expenses"
        assert events[0].action == UPSERT
        assert events[0].entity == expense


class TestExpenseStoreUpdateDelete:
    """Tests for update / delete / silent replacement."""

    def test_update_applies_and_stamps(self, expense_store, events):
        expense = expense_store.add(lunch_form())
        assert expense_store.update(expense.id, {"categoryId": "cat_travel", "id": "other"})

        updated = expense_store.get_by_id(expense.id)
        assert updated.category_id == "cat_travel"
        assert updated.created_at == expense.created_at
        assert updated.updated_at >= expense.updated_at
        assert events[-1].action == UPSERT

    def test_update_rejects_invalid_values(self, expense_store):
        expense = expense_store.add(lunch_form())
        assert expense_store.update(expense.id, {"amount": 0}) is False
        assert expense_store.get_by_id(expense.id).amount == Decimal("50")

    def test_update_unknown_id(self, expense_store):
        assert expense_store.update("exp_missing", {"amount": 5}) is False

    def test_delete(self, expense_store, events):
        expense = expense_store.add(lunch_form())
        assert expense_store.delete(expense.id) is True
        assert expense_store.value == []
        assert events[-1].action == DELETE
        assert events[-1].entity_id == expense.id
        assert expense_store.delete(expense.id) is False

    def test_delete_many(self, expense_store):
        a = expense_store.add(lunch_form())
        b = expense_store.add(lunch_form())
        expense_store.add(lunch_form())
        assert expense_store.delete_many([a.id, b.id, "exp_missing"]) == 2
        assert expense_store.count.value == 1

    def test_replace_all_is_silent_but_persisted(self, expense_store, events, make_expense, local_store):
        expense_store.replace_all([make_expense(), make_expense()])
        assert events == []
        assert len(local_store.load().expenses) == 2

        expense_store.clear()
        assert events == []
        assert local_store.load().expenses == []

    def test_init_reloads_from_storage(self, expense_store, local_store, make_expense):
        local_store.save_expenses([make_expense()])
        assert expense_store.value == []
        expense_store.init()
        assert len(expense_store.value) == 1

    def test_subscribers_see_every_change(self, expense_store):
        seen = []
        expense_store.subscribe(lambda items: seen.append(len(items)))
        expense_store.add(lunch_form())
        assert seen == [0, 1]


class TestExpenseFilters:
    """Tests for the filter/sort selection and the filtered view."""

    def test_filtered_view_follows_selection(self, expense_store):
        lunch = expense_store.add(lunch_form(amount=12))
        taxi = expense_store.add(lunch_form(description="Taxi", amount=30, categoryId="cat_travel"))

        assert expense_store.filtered.value == [taxi, lunch]

        expense_store.set_filters(search="lunch")
        assert expense_store.filtered.value == [lunch]

        expense_store.clear_filters()
        expense_store.set_filters(categoryId="cat_travel")
        assert expense_store.filters.value.category_id == "cat_travel"
        assert expense_store.filtered.value == [taxi]

        expense_store.clear_filters()
        expense_store.set_sort(ExpenseSortField.AMOUNT, SortDirection.ASC)
        assert expense_store.filtered.value == [lunch, taxi]

    def test_set_sort_accepts_strings(self, expense_store):
        expense_store.set_sort("description", "asc")
        assert expense_store.sort.value.field == ExpenseSortField.DESCRIPTION
        assert expense_store.sort.value.direction == SortDirection.ASC

    def test_invalid_selection_is_rejected(self, expense_store):
        assert expense_store.set_filters(search="lunch") is True

        assert expense_store.set_filters(amountMin="abc") is False
        assert expense_store.filters.value.search == "lunch"
        assert expense_store.filters.value.amount_min is None

        assert expense_store.set_sort("price") is False
        assert expense_store.set_sort("amount", "sideways") is False
        assert expense_store.sort.value == ExpenseSort()


class TestCategoryStore:
    """Tests for CategoryStore."""

    def test_seeds_and_persists_defaults(self, local_store):
        store = CategoryStore(local_store)
        assert store.count.value == 9
        assert {c.id for c in store.value} == SEED_CATEGORY_IDS
        assert len(local_store.load().categories) == 9

    def test_stored_categories_are_not_reseeded(self, local_store, make_category):
        local_store.save_categories([make_category()])
        store = CategoryStore(local_store)
        assert [c.id for c in store.value] == ["cat_custom"]

    def test_derived_views(self, local_store):
        store = CategoryStore(local_store)
        assert len(store.system_categories.value) == 9
        assert store.user_categories.value == []
        assert len(store.with_budgets.value) == 8
        assert store.category_map.value["cat_food"].name == "Food & Dining"

    def test_add_appends_user_category(self, local_store):
        store = CategoryStore(local_store, current_user=lambda: "U")
        category = store.add({"name": "Pets", "icon": "🐶", "color": "#000000"})

        assert category.id.startswith("cat_")
        assert category.user_id == "U"
        assert store.value[-1] == category
        assert store.user_categories.value == [category]

    def test_add_owner_fallbacks(self, local_store):
        store = CategoryStore(local_store)
        assert store.add({"name": "A"}).user_id == "local"
        assert store.add({"name": "B", "userId": "V"}).user_id == "V"
        assert store.add({"name": "C", "userId": "V"}, user_id="W").user_id == "W"

    def test_add_rejects_invalid(self, local_store):
        store = CategoryStore(local_store)
        assert store.add({"name": ""}) is None
        assert store.add({"name": "X", "budget": -1}) is None
        assert store.count.value == 9

    def test_defaults_cannot_be_deleted(self, local_store):
        store = CategoryStore(local_store)
        received = []
        store.on_mutation(received.append)

        assert store.delete("cat_food") is False
        assert store.get_by_id("cat_food") is not None
        assert received == []

    def test_user_category_can_be_deleted(self, local_store):
        store = CategoryStore(local_store)
        category = store.add({"name": "Pets"})
        assert store.delete(category.id) is True

    def test_editing_default_takes_ownership(self, local_store):
        store = CategoryStore(local_store, current_user=lambda: "U")
        assert store.update("cat_food", {"name": "Eating out"})

        edited = store.get_by_id("cat_food")
        assert edited.name == "Eating out"
        assert edited.user_id == "U"
        assert not edited.is_default

    def test_editing_default_signed_out_keeps_it_default(self, local_store):
        store = CategoryStore(local_store)
        store.update("cat_food", {"name": "Eating out"})
        assert store.get_by_id("cat_food").is_default

    def test_explicit_user_id_wins(self, local_store):
        store = CategoryStore(local_store, current_user=lambda: "U")
        store.update("cat_food", {"color": "#111111", "userId": None})
        assert store.get_by_id("cat_food").is_default

    def test_get_by_name_and_reset(self, local_store):
        store = CategoryStore(local_store)
        store.add({"name": "Pets"})
        assert store.get_by_name("  pets ").name == "Pets"
        assert store.get_by_name("Nope") is None

        store.reset_to_defaults()
        assert store.count.value == 9
        assert store.get_by_name("Pets") is None


class TestPreferencesStore:
    """Tests for PreferencesStore."""

    def test_defaults(self, local_store):
        store = PreferencesStore(local_store)
        assert store.current().currency == "USD"
        assert store.value.theme == Theme.DARK

    def test_changes_are_persisted(self, local_store):
        store = PreferencesStore(local_store)
        assert store.set_currency("eur")
        assert store.set_date_format("YYYY-MM-DD")
        assert store.set_theme(Theme.LIGHT)
        assert store.set_language("de")

        stored = local_store.load().preferences
        assert stored.currency == "EUR"
        assert stored.date_format == DateFormat.YYYY_MM_DD
        assert stored.theme == Theme.LIGHT
        assert stored.language == "de"

        reloaded = PreferencesStore(LocalStore(local_store.backend))
        assert reloaded.value.currency == "EUR"

    def test_invalid_change_is_rejected(self, local_store):
        store = PreferencesStore(local_store)
        assert store.set_currency("EURO") is False
        assert store.set_theme("neon") is False
        assert store.value.currency == "USD"

    def test_reset(self, local_store):
        store = PreferencesStore(local_store)
        store.set_currency("GBP")
        store.reset_to_defaults()
        assert store.value.currency == "USD"
        assert local_store.load().preferences.currency == "USD"

    def test_subscribe(self, local_store):
        store = PreferencesStore(local_store)
        seen = []
        store.subscribe(lambda prefs: seen.append(prefs.currency))
        store.set_currency("JPY")
        assert seen == ["USD", "JPY"]


class TestAppStateStore:
    """Tests for AppStateStore."""

    def test_initial_state(self):
        store = AppStateStore()
        assert store.value.is_online
        assert store.is_ready.value
        assert not store.has_error.value
        assert store.value.last_sync_at is None

    def test_flags(self):
        store = AppStateStore()
        store.set_loading(True)
        assert not store.is_ready.value

        store.set_error("Boom")
        assert store.has_error.value
        assert store.value.error == "Boom"
        store.clear_error()
        assert not store.has_error.value

        store.set_online(False)
        assert not store.value.is_online

        store.update_last_sync()
        assert store.value.last_sync_at is not None

    def test_independent_instances(self):
        a, b = AppStateStore(), AppStateStore()
        a.set_error("only a")
        assert b.value.error is None


def test_stores_share_one_record():
    """Test that partial saves from different stores do not clobber each other."""
    local_store = LocalStore(MemoryBackend())
    expenses = ExpenseStore(local_store, clock=lambda: date(2024, 3, 15))
    categories = CategoryStore(local_store)
    preferences = PreferencesStore(local_store)

    expenses.add(lunch_form())
    categories.add({"name": "Pets"})
    preferences.set_currency("EUR")

    data = local_store.load()
    assert len(data.expenses) == 1
    assert len(data.categories) == 10
    assert data.preferences.currency == "EUR"
