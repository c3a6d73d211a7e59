"""
Tests for the application context factory and activity logging.
"""

import logging
from datetime import date
from unittest.mock import MagicMock

import pytest
import structlog

from expense_manager.audit import ActivityLogger, configure_logging, get_logger
from expense_manager.config import AppSettings, get_settings
from expense_manager.context import create_app_context
from expense_manager.services.remote import InMemoryRemoteCollection, LocalAuthProvider
from expense_manager.storage import MemoryBackend
from expense_manager.stores import ExpenseStore
from expense_manager.sync import COLLECTIONS


@pytest.fixture
def settings(tmp_path):
    return AppSettings(data_dir=tmp_path / "data", log_json=False)


@pytest.fixture
def context(settings, backend, clock):
    return create_app_context(settings, backend=backend, use_remote=False, clock=clock)


def lunch_form():
    return {"amount": 50, "description": "Lunch", "categoryId": "cat_food", "date": date(2024, 3, 15)}


class TestCreateAppContext:
    """Tests for create_app_context."""

    def test_local_only_context(self, context):
        assert context.sync is None
        assert context.categories.count.value == 9
        assert context.expenses.value == []
        assert context.user_id == "local"
        assert context.start_sync() is False
        context.stop_sync()

    def test_default_backend_is_data_dir(self, settings, clock):
        context = create_app_context(settings, use_remote=False, clock=clock)
        context.expenses.add(lunch_form())
        assert (settings.data_dir / "expense-manager-data.json").exists()

    def test_without_sheets_configuration_runs_local_only(self, settings, backend, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()

        context = create_app_context(settings, backend=backend)

        assert context.sync is None

    @pytest.mark.asyncio
    async def test_remote_sync_wiring(self, settings, backend, clock):
        remotes = {name: InMemoryRemoteCollection() for name in COLLECTIONS}
        auth = LocalAuthProvider("U")
        context = create_app_context(
            settings, backend=backend, auth=auth, remotes=remotes, clock=clock
        )

        assert context.user_id == "U"
        assert context.start_sync() is True

        expense = context.expenses.add(lunch_form())
        await context.sync.flush()
        assert remotes["expenses"].records[expense.id]["userId"] == "U"

        context.stop_sync()
        assert not context.sync.is_running

    def test_signed_in_user_owns_new_categories(self, settings, backend, clock):
        auth = LocalAuthProvider()
        context = create_app_context(settings, backend=backend, auth=auth, use_remote=False, clock=clock)
        auth.sign_in("U")
        assert context.categories.add({"name": "Pets"}).user_id == "U"


class TestDataManagement:
    """Tests for initialize / export / import / clear."""

    def test_initialize_reloads_stores(self, context, make_expense):
        context.local_store.save_expenses([make_expense()])
        assert context.expenses.value == []

        context.initialize()

        assert context.expenses.count.value == 1
        assert context.app_state.is_ready.value
        assert context.app_state.value.last_sync_at is not None

    def test_export_then_import_into_fresh_context(self, context, settings, clock):
        context.expenses.add(lunch_form())
        context.budgets.add({"amount": 100, "period": "monthly"})
        context.preferences.set_currency("EUR")
        exported = context.export_json()

        fresh = create_app_context(settings, backend=MemoryBackend(), use_remote=False, clock=clock)
        result = fresh.import_json(exported)

        assert result.success
        assert result.message == "Imported 1 expenses, 9 categories"
        assert fresh.expenses.count.value == 1
        assert fresh.budgets.count.value == 1
        assert fresh.preferences.value.currency == "EUR"
        assert fresh.expenses.today_stats.value.total == context.expenses.today_stats.value.total

    def test_failed_import_keeps_stores(self, context):
        context.expenses.add(lunch_form())
        result = context.import_json('{"expenses": []}')
        assert not result.success
        assert context.expenses.count.value == 1

    def test_export_csv(self, context):
        assert context.export_csv() == "No expenses to export"
        context.expenses.add(lunch_form())
        lines = context.export_csv().split("\n")
        assert lines[1] == '2024-03-15,"Lunch",50.00,Food & Dining,,,"",""'

    def test_clear_all_data_reseeds_categories(self, context):
        context.expenses.add(lunch_form())
        context.categories.add({"name": "Pets"})

        assert context.clear_all_data() is True

        assert context.expenses.value == []
        assert context.categories.count.value == 9
        assert context.app_state.value.is_loading is False


class TestActivityLogger:
    """Tests for the mutation trail."""

    def test_mutations_are_logged(self, local_store, clock):
        fake_logger = MagicMock()
        activity = ActivityLogger(logger=fake_logger)
        expenses = ExpenseStore(local_store, clock=clock)
        activity.attach(expenses)

        expense = expenses.add(lunch_form())
        expenses.delete(expense.id)

        assert fake_logger.info.call_count == 2
        first = fake_logger.info.call_args_list[0]
        assert first.args == ("store_mutation",)
        assert first.kwargs == {
            "collection": "expenses",
            "action": "upsert",
            "entity_id": expense.id,
            "user_id": "local",
        }
        assert fake_logger.info.call_args_list[1].kwargs["action"] == "delete"

    def test_detach_all(self, local_store, clock):
        fake_logger = MagicMock()
        activity = ActivityLogger(logger=fake_logger)
        expenses = ExpenseStore(local_store, clock=clock)
        activity.attach(expenses)
        activity.detach_all()

        expenses.add(lunch_form())
        fake_logger.info.assert_not_called()

    def test_replace_all_is_not_logged(self, local_store, clock, make_expense):
        fake_logger = MagicMock()
        activity = ActivityLogger(logger=fake_logger)
        expenses = ExpenseStore(local_store, clock=clock)
        activity.attach(expenses)

        expenses.replace_all([make_expense()])
        fake_logger.info.assert_not_called()

    def test_logging_failure_does_not_break_mutation(self, local_store, clock, caplog):
        fake_logger = MagicMock()
        fake_logger.info.side_effect = RuntimeError("log sink gone")
        activity = ActivityLogger(logger=fake_logger)
        expenses = ExpenseStore(local_store, clock=clock)
        activity.attach(expenses)

        with caplog.at_level(logging.ERROR, logger="expense_manager.audit.logger"):
            expense = expenses.add(lunch_form())

        assert expense is not None
        assert expenses.count.value == 1
        assert local_store.load().expenses[0].id == expense.id
        assert "activity_log_failed" in caplog.text


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_reaches_loggers_already_used(self):
        log = get_logger("expense_manager.tests")
        try:
            configure_logging(AppSettings(log_json=True))
            log.info("before_reconfigure")

            configure_logging(AppSettings(log_json=False))

            assert isinstance(log.bind()._processors[-1], structlog.dev.ConsoleRenderer)
        finally:
            configure_logging(AppSettings(log_json=True))
