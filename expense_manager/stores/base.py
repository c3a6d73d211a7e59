"""
Entity Store Base

DESIGN DECISION: A store exclusively owns one collection.
- The collection lives in an Observable; every change notifies
  subscribers, one of which writes the collection to the local store
- add / update / delete emit MutationEvents for the sync bridge
  and the activity logger
- replace_all / init / clear are silent: they come from storage
  or the remote side and must not be echoed back

Updates are re-validated against the model; an update that would
violate it is rejected, logged and reported as False.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, TypeVar

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from expense_manager.audit import get_logger
from expense_manager.models.entities import RecordModel, utc_now
from expense_manager.storage import LocalStore
from expense_manager.stores.observable import Observable, Unsubscribe


logger = get_logger(__name__)

E = TypeVar("E", bound=RecordModel)

UPSERT = "upsert"
DELETE = "delete"


@dataclass(frozen=True)
class MutationEvent:
    """One add/update/delete applied to a store."""

    collection: str
    action: str  # UPSERT or DELETE
    entity_id: str
    entity: Optional[RecordModel] = None


MutationListener = Callable[[MutationEvent], None]


class EntityStore(ABC, Generic[E]):
    """
    Observable collection of one entity type, mirrored to the local store.

    Subclasses set `collection`, `model` and `id_prefix` and implement
    `_load` / `_persist` over the matching local-store field.
    """

    collection: str = ""
    model: type = RecordModel
    id_prefix: str = ""
    newest_first: bool = False

    def __init__(self, local_store: LocalStore):
        self._local_store = local_store
        self._mutation_listeners: dict[int, MutationListener] = {}
        self._next_listener_id = 0
        self._items: Observable[list[E]] = Observable(self._load())
        self._items.subscribe(self._persist, immediate=False)

    # -------------------------------------------------------------------------
    # Persistence hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def _load(self) -> list[E]:
        """Read this collection from the local store."""
        pass

    @abstractmethod
    def _persist(self, items: list[E]) -> None:
        """Write this collection to the local store."""
        pass

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    @property
    def value(self) -> list[E]:
        return self._items.value

    @property
    def items(self) -> Observable[list[E]]:
        return self._items

    def subscribe(self, callback: Callable[[list[E]], None], immediate: bool = True) -> Unsubscribe:
        return self._items.subscribe(callback, immediate)

    def get_by_id(self, entity_id: str) -> Optional[E]:
        for item in self._items.value:
            if item.id == entity_id:
                return item
        return None

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def init(self) -> None:
        """Reload the collection from the local store."""
        self._items.set(self._load())

    def replace_all(self, items: Iterable[E]) -> None:
        self._items.set(list(items))

    def clear(self) -> None:
        self._items.set([])

    def _insert(self, entity: E) -> E:
        """Add a new entity at the front or back and announce it."""
        if self.newest_first:
            self._items.set([entity, *self._items.value])
        else:
            self._items.set([*self._items.value, entity])
        self._emit(UPSERT, entity)
        return entity

    def update(self, entity_id: str, updates: Mapping[str, Any]) -> bool:
        """
        Apply `updates` to the entity with `entity_id`.

        Keys may be field names or record keys. The id never changes.

        Returns:
            True if the entity existed and the update was applied
        """
        items = self._items.value
        index = next((i for i, item in enumerate(items) if item.id == entity_id), None)
        if index is None:
            return False

        current = items[index]
        changes = self._normalize_keys(updates)
        changes.pop("id", None)
        changes = self._prepare_update(current, changes)

        try:
            updated = self.model.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            logger.warning(
                "update_rejected",
                collection=self.collection,
                entity_id=entity_id,
                error_count=e.error_count(),
            )
            return False

        new_items = list(items)
        new_items[index] = updated
        self._items.set(new_items)
        self._emit(UPSERT, updated)
        return True

    def delete(self, entity_id: str) -> bool:
        """Remove the entity; True if it existed and was removed."""
        entity = self.get_by_id(entity_id)
        if entity is None or not self._can_delete(entity):
            return False

        self._items.set([item for item in self._items.value if item.id != entity_id])
        self._emit(DELETE, entity)
        return True

    def _prepare_update(self, current: E, changes: dict[str, Any]) -> dict[str, Any]:
        if "updated_at" in self.model.model_fields:
            changes["updated_at"] = utc_now()
        return changes

    def _can_delete(self, entity: E) -> bool:
        return True

    def _normalize_keys(self, updates: Mapping[str, Any]) -> dict[str, Any]:
        names = {}
        for name, field in self.model.model_fields.items():
            names[name] = name
            names[field.alias or to_camel(name)] = name
        return {names.get(key, key): value for key, value in updates.items()}

    # -------------------------------------------------------------------------
    # Mutation events
    # -------------------------------------------------------------------------

    def on_mutation(self, listener: MutationListener) -> Unsubscribe:
        """Register a listener for add/update/delete events."""
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        self._mutation_listeners[listener_id] = listener

        def unsubscribe() -> None:
            self._mutation_listeners.pop(listener_id, None)

        return unsubscribe

    def _emit(self, action: str, entity: E) -> None:
        event = MutationEvent(
            collection=self.collection,
            action=action,
            entity_id=entity.id,
            entity=entity,
        )
        for listener in list(self._mutation_listeners.values()):
            listener(event)
