"""
Remote Store Services

The interfaces the sync bridge depends on, with an in-memory
implementation and a Google Sheets implementation.
"""

from expense_manager.services.remote.interface import (
    AlreadyExistsError,
    AuthProvider,
    NotFoundError,
    Record,
    RemoteCollection,
    RemoteStorageError,
    RemoteUnavailableError,
)
from expense_manager.services.remote.memory import (
    InMemoryRemoteCollection,
    LocalAuthProvider,
)

__all__ = [
    # Interfaces
    "AuthProvider",
    "Record",
    "RemoteCollection",
    # Exceptions
    "AlreadyExistsError",
    "NotFoundError",
    "RemoteStorageError",
    "RemoteUnavailableError",
    # In-memory implementations
    "InMemoryRemoteCollection",
    "LocalAuthProvider",
]
