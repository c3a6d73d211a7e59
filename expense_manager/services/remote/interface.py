"""
Abstract Remote Store Interface

DESIGN DECISION: The sync bridge talks to the remote side only through
these two interfaces. This allows us to:
1. Run the whole sync path in tests with in-memory collections
2. Back the remote store with Google Sheets today and swap it later
3. Keep merge policy out of the storage adapters

The interface is intentionally small: one live subscription per owner
plus create / update / delete by id.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional


Record = dict[str, Any]
SnapshotCallback = Callable[[list[Record]], None]
AuthCallback = Callable[[Optional[str]], None]
Unsubscribe = Callable[[], None]


class RemoteCollection(ABC):
    """
    One remote collection of camelCase records keyed by `id`.

    Records are owned by a user through their `userId` field.
    """

    @abstractmethod
    def subscribe(self, owner_id: str, on_snapshot: SnapshotCallback) -> Unsubscribe:
        """
        Watch every record owned by `owner_id`.

        `on_snapshot` receives the full current list of owned records,
        once initially and again after every change.

        Returns:
            A function that cancels the subscription
        """
        pass

    @abstractmethod
    async def create(self, record: Record) -> None:
        """
        Create a record under its own `id`.

        Raises:
            AlreadyExistsError: If a record with this id exists
            RemoteStorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, record_id: str, fields: Record) -> None:
        """
        Overwrite the given fields of an existing record.

        Raises:
            NotFoundError: If no record has this id
            RemoteStorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """
        Delete a record; deleting a missing record is not an error.

        Raises:
            RemoteStorageError: If the delete fails
        """
        pass


class AuthProvider(ABC):
    """Source of the current user identity."""

    @property
    @abstractmethod
    def current_user_id(self) -> Optional[str]:
        """The signed-in user id, or None."""
        pass

    @abstractmethod
    def on_auth_state_changed(self, callback: AuthCallback) -> Unsubscribe:
        """
        Call `callback` with the new user id on every sign-in/sign-out
        transition (not on registration).
        """
        pass


# =============================================================================
# EXCEPTIONS
# =============================================================================

class RemoteStorageError(Exception):
    """Base exception for remote store errors."""
    pass


class AlreadyExistsError(RemoteStorageError):
    """Create hit an existing record id."""
    pass


class NotFoundError(RemoteStorageError):
    """Update targeted a record that does not exist."""
    pass


class RemoteUnavailableError(RemoteStorageError):
    """The remote store could not be reached."""
    pass
