"""
Local Storage Package

Versioned key-value persistence for all collections, with
JSON/CSV export and JSON import.
"""

from expense_manager.storage.backends import (
    BackendError,
    FileBackend,
    KeyValueBackend,
    MemoryBackend,
)
from expense_manager.storage.local_store import (
    CSV_HEADERS,
    MIGRATIONS,
    LocalStore,
)

__all__ = [
    # Backends
    "BackendError",
    "FileBackend",
    "KeyValueBackend",
    "MemoryBackend",
    # Local store
    "CSV_HEADERS",
    "MIGRATIONS",
    "LocalStore",
]
