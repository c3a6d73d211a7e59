"""
Tests for search/sort/filter predicates, date buckets and formatting.
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal

from expense_manager.models import (
    DateFormat,
    ExpenseFilters,
    ExpenseSort,
    PaymentMethod,
)
from expense_manager.utils import (
    apply_expense_filters,
    filter_by_date_range,
    format_currency,
    format_date,
    format_relative_date,
    generate_id,
    generate_shareable_id,
    get_month_expenses,
    get_today_expenses,
    get_week_expenses,
    group_by_category,
    group_by_date,
    parse_currency,
    parse_tags,
    search_expenses,
    sort_expenses,
    start_of_month,
    start_of_week,
    start_of_year,
    tags_to_string,
    to_date,
)
from expense_manager.validation import (
    validate_budget,
    validate_category,
    validate_expense,
)


class TestSearchAndSort:
    """Tests for search_expenses and sort_expenses."""

    def test_blank_query_returns_input(self, make_expense):
        expenses = [make_expense(), make_expense()]
        assert search_expenses(expenses, "   ") is expenses

    def test_search_fields(self, make_expense):
        """Test that description, merchant, notes and tags are searched."""
        by_description = make_expense(description="Team LUNCH")
        by_merchant = make_expense(merchant="Lunchbox Deli")
        by_notes = make_expense(notes="lunch with Sam")
        by_tag = make_expense(tags=["lunch"])
        unrelated = make_expense(description="Bus ticket")

        found = search_expenses(
            [by_description, by_merchant, by_notes, by_tag, unrelated], "lunch"
        )
        assert found == [by_description, by_merchant, by_notes, by_tag]

    def test_sort_by_amount_ascending(self, make_expense):
        a = make_expense(amount=Decimal("3"))
        b = make_expense(amount=Decimal("1"))
        c = make_expense(amount=Decimal("2"))
        assert sort_expenses([a, b, c], "amount", "asc") == [b, c, a]

    def test_descending_sort_is_stable(self, make_expense):
        """Test that equal keys keep their order when sorting descending."""
        first = make_expense(date=date(2024, 3, 1))
        second = make_expense(date=date(2024, 3, 1))
        newest = make_expense(date=date(2024, 3, 5))
        assert sort_expenses([first, second, newest], "date", "desc") == [newest, first, second]

    def test_description_sort_ignores_case(self, make_expense):
        banana = make_expense(description="banana")
        apple = make_expense(description="Apple")
        cherry = make_expense(description="cherry")
        assert sort_expenses([banana, cherry, apple], "description", "asc") == [apple, banana, cherry]


class TestApplyFilters:
    """Tests for the filtered-view pipeline."""

    def test_default_filters_only_sort(self, make_expense, today):
        older = make_expense(date=date(2024, 3, 1))
        newer = make_expense(date=date(2024, 3, 10))
        result = apply_expense_filters([older, newer], ExpenseFilters(), ExpenseSort(), today)
        assert result == [newer, older]

    def test_category_amount_and_payment_filters(self, make_expense, today):
        match = make_expense(amount=Decimal("20"), payment_method="card")
        too_cheap = make_expense(amount=Decimal("2"), payment_method="card")
        wrong_method = make_expense(amount=Decimal("20"), payment_method="cash")
        wrong_category = make_expense(
            amount=Decimal("20"), payment_method="card", category_id="cat_travel"
        )
        filters = ExpenseFilters(
            category_id="cat_food",
            amount_min=Decimal("5"),
            amount_max=Decimal("50"),
            payment_method=PaymentMethod.CARD,
        )
        result = apply_expense_filters(
            [match, too_cheap, wrong_method, wrong_category], filters, ExpenseSort(), today
        )
        assert result == [match]

    def test_date_from_without_date_to_ends_today(self, make_expense, today):
        before = make_expense(date=date(2024, 2, 1))
        inside = make_expense(date=date(2024, 3, 2))
        future = make_expense(date=date(2024, 4, 1))
        filters = ExpenseFilters(date_from=date(2024, 3, 1))
        result = apply_expense_filters([before, inside, future], filters, ExpenseSort(), today)
        assert result == [inside]


class TestDates:
    """Tests for date buckets and formatting."""

    def test_to_date_accepts_several_forms(self):
        assert to_date("2024-03-01") == date(2024, 3, 1)
        assert to_date("2024-03-01T23:59:00.000Z") == date(2024, 3, 1)
        assert to_date(datetime(2024, 3, 1, 8, tzinfo=timezone.utc)) == date(2024, 3, 1)

    def test_week_starts_on_sunday(self, today):
        assert start_of_week(today) == date(2024, 3, 10)
        assert start_of_week(date(2024, 3, 10)) == date(2024, 3, 10)

    def test_month_and_year_start(self, today):
        assert start_of_month(today) == date(2024, 3, 1)
        assert start_of_year(today) == date(2024, 1, 1)

    def test_range_is_inclusive_at_day_granularity(self, make_expense):
        first = make_expense(date=date(2024, 3, 1))
        last = make_expense(date=date(2024, 3, 3))
        outside = make_expense(date=date(2024, 3, 4))
        end = datetime(2024, 3, 3, 0, 0, tzinfo=timezone.utc)
        assert filter_by_date_range([first, last, outside], date(2024, 3, 1), end) == [first, last]

    def test_today_week_month_buckets(self, make_expense, today):
        todays = make_expense(date=today)
        sunday = make_expense(date=date(2024, 3, 10))
        saturday = make_expense(date=date(2024, 3, 9))
        last_month = make_expense(date=date(2024, 2, 28))
        expenses = [todays, sunday, saturday, last_month]

        assert get_today_expenses(expenses, today) == [todays]
        assert get_week_expenses(expenses, today) == [todays, sunday]
        assert get_month_expenses(expenses, today) == [todays, sunday, saturday]

    def test_format_date_layouts(self):
        d = date(2024, 3, 5)
        assert format_date(d) == "03/05/2024"
        assert format_date(d, DateFormat.DD_MM_YYYY) == "05/03/2024"
        assert format_date(d, DateFormat.YYYY_MM_DD) == "2024-03-05"

    def test_malformed_strings_do_not_raise(self, make_expense, today):
        expenses = [make_expense(date=today)]
        assert filter_by_date_range(expenses, "not-a-date", today) == []
        assert filter_by_date_range(expenses, today, "2024-13-45") == []
        assert format_date("soon") == "soon"
        assert format_relative_date("someday", today) == "someday"

    def test_relative_dates(self, today):
        assert format_relative_date(today, today) == "Today"
        assert format_relative_date(date(2024, 3, 14), today) == "Yesterday"
        assert format_relative_date(date(2024, 3, 12), today) == "3 days ago"
        assert format_relative_date(date(2024, 3, 1), today) == "03/01/2024"


class TestFormatting:
    """Tests for ids, money and tags."""

    def test_generate_id_layout(self):
        expense_id = generate_id("exp")
        assert re.fullmatch(r"exp_[0-9a-z]{8,}", expense_id)
        assert generate_id("exp") != expense_id

    def test_generate_id_without_prefix(self):
        assert "_" not in generate_id()

    def test_shareable_id(self):
        assert re.fullmatch(r"[0-9a-z]{8}", generate_shareable_id())

    def test_format_currency(self):
        assert format_currency(Decimal("1234.5")) == "$1,234.50"
        assert format_currency(-3, "EUR") == "-€3.00"
        assert format_currency(5, "XYZ") == "XYZ 5.00"

    def test_parse_currency(self):
        assert parse_currency("$1,234.56") == Decimal("1234.56")
        assert parse_currency("abc") == Decimal("0")
        assert parse_currency("") == Decimal("0")

    def test_tags(self):
        assert parse_tags("a, B ,") == ["a", "b"]
        assert parse_tags("   ") == []
        assert tags_to_string(["a", "b"]) == "a, b"

    def test_grouping(self, make_expense):
        a = make_expense(date=date(2024, 3, 1), category_id="cat_food")
        b = make_expense(date=date(2024, 3, 1), category_id="cat_travel")
        c = make_expense(date=date(2024, 3, 2), category_id="cat_food")
        assert group_by_date([a, b, c]) == {"2024-03-01": [a, b], "2024-03-02": [c]}
        assert group_by_category([a, b, c]) == {"cat_food": [a, c], "cat_travel": [b]}


class TestValidation:
    """Tests for the minimum-field validators."""

    def test_valid_expense(self):
        assert validate_expense({
            "amount": 5, "description": "x", "categoryId": "cat_food", "date": "2024-03-01"
        }) == []

    def test_invalid_expense_messages(self):
        errors = validate_expense({"amount": "0", "description": "  "})
        assert errors == [
            "Amount must be greater than 0",
            "Description is required",
            "Category is required",
            "Date is required",
        ]

    def test_category_validation(self):
        assert validate_category({"name": "Pets"}) == []
        assert validate_category({"name": "", "budget": -1}) == [
            "Name is required",
            "Budget cannot be negative",
        ]

    def test_budget_validation(self):
        assert validate_budget({"amount": 10, "period": "weekly"}) == []
        assert validate_budget({"amount": 0, "period": ""}) == [
            "Amount must be greater than 0",
            "Period is required",
        ]
        assert validate_budget({"amount": 10, "period": "hourly"}) == [
            "Unknown budget period: hourly"
        ]

    def test_validators_accept_models(self, make_expense):
        assert validate_expense(make_expense()) == []
