"""
In-Memory Remote Store

Process-local implementations of the remote interfaces for tests and
offline sessions. Snapshots are delivered synchronously: once on
subscribe and again after every successful write.
"""

from itertools import count
from typing import Iterable, Optional

from expense_manager.services.remote.interface import (
    AlreadyExistsError,
    AuthCallback,
    AuthProvider,
    NotFoundError,
    Record,
    RemoteCollection,
    RemoteStorageError,
    SnapshotCallback,
    Unsubscribe,
)


class InMemoryRemoteCollection(RemoteCollection):
    """
    A remote collection held in a dict.

    Set `failure` to make every write raise it. `calls` records each
    write as (operation, record_id).
    """

    def __init__(self, records: Optional[Iterable[Record]] = None):
        self.records: dict[str, Record] = {r["id"]: dict(r) for r in records or []}
        self.failure: Optional[RemoteStorageError] = None
        self.calls: list[tuple[str, str]] = []
        self._subscribers: dict[int, tuple[str, SnapshotCallback]] = {}
        self._tokens = count()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def snapshot(self, owner_id: str) -> list[Record]:
        return [
            dict(record)
            for record in self.records.values()
            if record.get("userId") == owner_id
        ]

    def subscribe(self, owner_id: str, on_snapshot: SnapshotCallback) -> Unsubscribe:
        token = next(self._tokens)
        self._subscribers[token] = (owner_id, on_snapshot)
        on_snapshot(self.snapshot(owner_id))

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    def deliver(self, owner_id: str, records: list[Record]) -> None:
        """Push an arbitrary snapshot to the subscribers of `owner_id`."""
        for owner, callback in list(self._subscribers.values()):
            if owner == owner_id:
                callback([dict(record) for record in records])

    def _notify(self) -> None:
        for owner, callback in list(self._subscribers.values()):
            callback(self.snapshot(owner))

    def _check(self, operation: str, record_id: str) -> None:
        self.calls.append((operation, record_id))
        if self.failure is not None:
            raise self.failure

    async def create(self, record: Record) -> None:
        record_id = record["id"]
        self._check("create", record_id)
        if record_id in self.records:
            raise AlreadyExistsError(f"Record already exists: {record_id}")
        self.records[record_id] = dict(record)
        self._notify()

    async def update(self, record_id: str, fields: Record) -> None:
        self._check("update", record_id)
        if record_id not in self.records:
            raise NotFoundError(f"Record not found: {record_id}")
        self.records[record_id] = {**self.records[record_id], **fields}
        self._notify()

    async def delete(self, record_id: str) -> None:
        self._check("delete", record_id)
        if self.records.pop(record_id, None) is not None:
            self._notify()


class LocalAuthProvider(AuthProvider):
    """Identity set explicitly through sign_in / sign_out."""

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id
        self._listeners: dict[int, AuthCallback] = {}
        self._tokens = count()

    @property
    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def on_auth_state_changed(self, callback: AuthCallback) -> Unsubscribe:
        token = next(self._tokens)
        self._listeners[token] = callback

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def _transition(self, user_id: Optional[str]) -> None:
        if user_id == self._user_id:
            return
        self._user_id = user_id
        for callback in list(self._listeners.values()):
            callback(user_id)

    def sign_in(self, user_id: str) -> None:
        self._transition(user_id)

    def sign_out(self) -> None:
        self._transition(None)
