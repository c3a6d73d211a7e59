"""
Remote Sync Bridge

DESIGN DECISION: The bridge owns no data. It
1. Subscribes to the three remote collections of the signed-in user
   and merges each snapshot into the matching store
2. Relays store mutations to the remote side as asyncio tasks
3. Never retries: a failed push is logged and surfaced on the app state

Merging is idempotent: a snapshot equal to what the store already
holds causes no replacement and therefore no local write.

TRADEOFFS:
- Conflicts resolve by last write wins on whole records
- An empty first category snapshot is treated as "not synced yet"
  when the user already has local categories (see _on_categories_snapshot)
"""

import asyncio
from enum import Enum
from functools import partial
from typing import Awaitable, Callable, Mapping, Optional

from expense_manager.audit import get_logger
from expense_manager.models import Budget, Category, Expense
from expense_manager.models.entities import RecordModel
from expense_manager.services.remote import (
    AlreadyExistsError,
    AuthProvider,
    RemoteCollection,
    RemoteStorageError,
)
from expense_manager.stores import (
    SEED_CATEGORIES,
    UPSERT,
    AppStateStore,
    BudgetStore,
    CategoryStore,
    EntityStore,
    ExpenseStore,
    MutationEvent,
)
from expense_manager.sync.merge import (
    merge_categories,
    parse_records,
    same_content,
    sorted_by_id,
)
from expense_manager.validation import (
    validate_budget,
    validate_category,
    validate_expense,
)


logger = get_logger(__name__)

EXPENSES = "expenses"
CATEGORIES = "categories"
BUDGETS = "budgets"
COLLECTIONS = (EXPENSES, CATEGORIES, BUDGETS)

DEFAULT_AUTH_TIMEOUT = 5.0


class SubscriptionState(str, Enum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBED = "subscribed"


class SyncNotReadyError(Exception):
    """Sync was started without a signed-in user."""
    pass


class SyncBridge:
    """
    Two-way sync between the entity stores and a remote store.

    `remotes` maps "expenses", "categories" and "budgets" to their
    remote collections.
    """

    def __init__(
        self,
        expenses: ExpenseStore,
        categories: CategoryStore,
        budgets: BudgetStore,
        remotes: Mapping[str, RemoteCollection],
        auth: AuthProvider,
        app_state: Optional[AppStateStore] = None,
        auth_timeout: float = DEFAULT_AUTH_TIMEOUT,
    ):
        missing = [name for name in COLLECTIONS if name not in remotes]
        if missing:
            raise ValueError(f"Missing remote collections: {', '.join(missing)}")

        self._stores: dict[str, EntityStore] = {
            EXPENSES: expenses,
            CATEGORIES: categories,
            BUDGETS: budgets,
        }
        self._remotes = dict(remotes)
        self._auth = auth
        self._app_state = app_state
        self._auth_timeout = auth_timeout

        self._user_id: Optional[str] = None
        self._unsubscribers: dict[str, Callable[[], None]] = {}
        self._relay_detachers: list[Callable[[], None]] = []
        self._pending: set[asyncio.Task] = set()
        self._awaiting_first_categories = False

        self._pushers: dict[str, Callable[[RecordModel], Awaitable[bool]]] = {
            EXPENSES: self.push_expense,
            CATEGORIES: self.push_category,
            BUDGETS: self.push_budget,
        }
        self._deleters: dict[str, Callable[[str], Awaitable[bool]]] = {
            EXPENSES: self.delete_expense,
            CATEGORIES: self.delete_category,
            BUDGETS: self.delete_budget,
        }

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def user_id(self) -> Optional[str]:
        """User the active subscriptions belong to."""
        return self._user_id

    @property
    def is_running(self) -> bool:
        return bool(self._unsubscribers)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def state(self, collection: str) -> SubscriptionState:
        if collection in self._unsubscribers:
            return SubscriptionState.SUBSCRIBED
        return SubscriptionState.UNSUBSCRIBED

    def start(self) -> None:
        """
        Subscribe to the current user's remote collections.

        Replaces any previous subscriptions. Must be called from a
        running event loop.

        Raises:
            SyncNotReadyError: If no user is signed in
        """
        asyncio.get_running_loop()

        user_id = self._auth.current_user_id
        if not user_id:
            raise SyncNotReadyError("Cannot start sync without a signed-in user")

        self.stop()
        self._user_id = user_id
        self._awaiting_first_categories = True

        handlers = {
            EXPENSES: partial(self._on_snapshot, EXPENSES, Expense),
            CATEGORIES: self._on_categories_snapshot,
            BUDGETS: partial(self._on_snapshot, BUDGETS, Budget),
        }
        for collection in COLLECTIONS:
            self._unsubscribers[collection] = self._remotes[collection].subscribe(
                user_id, handlers[collection]
            )

        for store in self._stores.values():
            self._relay_detachers.append(store.on_mutation(self._relay))

        logger.info("sync_started", user_id=user_id)

    def stop(self) -> None:
        """Release every subscription and detach the mutation relay."""
        if not self._unsubscribers and not self._relay_detachers:
            return

        for unsubscribe in self._unsubscribers.values():
            unsubscribe()
        self._unsubscribers.clear()

        for detach in self._relay_detachers:
            detach()
        self._relay_detachers.clear()

        logger.info("sync_stopped", user_id=self._user_id)
        self._user_id = None

    async def flush(self) -> None:
        """Wait for every relayed push and delete to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # =========================================================================
    # INBOUND - remote snapshots into the stores
    # =========================================================================

    def _on_snapshot(self, collection: str, model: type, records: list[dict]) -> None:
        store = self._stores[collection]
        incoming = parse_records(model, records)
        self._record_sync()

        if same_content(store.value, incoming):
            logger.debug("snapshot_unchanged", collection=collection)
            return

        store.replace_all(incoming)
        logger.info("snapshot_applied", collection=collection, count=len(incoming))

    def _on_categories_snapshot(self, records: list[dict]) -> None:
        store = self._stores[CATEGORIES]
        incoming = parse_records(Category, records)
        self._record_sync()

        first_snapshot = self._awaiting_first_categories
        self._awaiting_first_categories = False

        # An empty first snapshot may predate the upload of categories the
        # user created locally; keep them and push them instead.
        if first_snapshot and not incoming:
            owned = [cat for cat in store.value if cat.user_id == self._user_id]
            if owned:
                logger.info("initial_category_sync_deferred", count=len(owned))
                for category in owned:
                    self._schedule(self.push_category(category), CATEGORIES, category.id)
                return

        merged = merge_categories(SEED_CATEGORIES, incoming)
        if same_content(sorted_by_id(merged), sorted_by_id(store.value)):
            logger.debug("snapshot_unchanged", collection=CATEGORIES)
            return

        store.replace_all(merged)
        logger.info("snapshot_applied", collection=CATEGORIES, count=len(merged))

    def _record_sync(self) -> None:
        if self._app_state is not None:
            self._app_state.update_last_sync()

    # =========================================================================
    # OUTBOUND - pushes and deletes
    # =========================================================================

    async def _resolve_user_id(self) -> Optional[str]:
        """
        The signed-in user, waiting a bounded time for sign-in to finish.
        """
        user_id = self._auth.current_user_id
        if user_id:
            return user_id

        future = asyncio.get_running_loop().create_future()

        def on_change(new_user_id: Optional[str]) -> None:
            if not future.done():
                future.set_result(new_user_id)

        unsubscribe = self._auth.on_auth_state_changed(on_change)
        try:
            return await asyncio.wait_for(future, timeout=self._auth_timeout)
        except asyncio.TimeoutError:
            logger.info("auth_wait_timed_out", timeout=self._auth_timeout)
            return self._auth.current_user_id
        finally:
            unsubscribe()

    async def _push(
        self,
        collection: str,
        entity: RecordModel,
        validate: Callable[[dict], list[str]],
    ) -> bool:
        user_id = await self._resolve_user_id()
        if not user_id:
            logger.info("push_skipped_no_user", collection=collection, entity_id=entity.id)
            return False

        record = entity.to_record()
        record["userId"] = user_id

        errors = validate(record)
        if errors:
            logger.info(
                "push_skipped_invalid",
                collection=collection,
                entity_id=entity.id,
                errors=errors,
            )
            return False

        remote = self._remotes[collection]
        try:
            try:
                await remote.create(record)
            except AlreadyExistsError:
                await remote.update(entity.id, record)
        except RemoteStorageError as e:
            logger.error(
                "push_failed",
                collection=collection,
                entity_id=entity.id,
                error=str(e),
            )
            raise

        logger.debug("pushed", collection=collection, entity_id=entity.id)
        return True

    async def push_expense(self, expense: Expense) -> bool:
        """Create or update an expense remotely; False if skipped."""
        return await self._push(EXPENSES, expense, validate_expense)

    async def push_category(self, category: Category) -> bool:
        return await self._push(CATEGORIES, category, validate_category)

    async def push_budget(self, budget: Budget) -> bool:
        return await self._push(BUDGETS, budget, validate_budget)

    async def _delete(self, collection: str, entity_id: str) -> bool:
        """
        Best-effort remote delete.

        The record is already gone locally, so failures are only logged.
        """
        if not self._auth.current_user_id:
            return False
        try:
            await self._remotes[collection].delete(entity_id)
        except RemoteStorageError as e:
            logger.warning(
                "remote_delete_failed",
                collection=collection,
                entity_id=entity_id,
                error=str(e),
            )
            return False
        return True

    async def delete_expense(self, expense_id: str) -> bool:
        return await self._delete(EXPENSES, expense_id)

    async def delete_category(self, category_id: str) -> bool:
        return await self._delete(CATEGORIES, category_id)

    async def delete_budget(self, budget_id: str) -> bool:
        return await self._delete(BUDGETS, budget_id)

    # =========================================================================
    # MUTATION RELAY
    # =========================================================================

    def _relay(self, event: MutationEvent) -> None:
        if event.action == UPSERT:
            coro = self._pushers[event.collection](event.entity)
        else:
            coro = self._deleters[event.collection](event.entity_id)
        self._schedule(coro, event.collection, event.entity_id)

    def _schedule(self, coro: Awaitable[bool], collection: str, entity_id: str) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(partial(self._on_task_done, collection, entity_id))

    def _on_task_done(self, collection: str, entity_id: str, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "sync_relay_failed",
                collection=collection,
                entity_id=entity_id,
                error=str(error),
            )
            if self._app_state is not None:
                self._app_state.set_error(f"Failed to sync {collection}: {error}")
