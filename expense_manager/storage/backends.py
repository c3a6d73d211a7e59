"""
Key-Value Backends for the Local Store

DESIGN DECISION: The local store only needs four operations on a
string-keyed, string-valued medium. Keeping that surface tiny lets us
run on a data directory in production and on a dict in tests.

Every backend failure is reported as BackendError so the local store
can degrade to defaults without knowing the medium.
"""

import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union


class BackendError(Exception):
    """The backing medium could not be read or written."""
    pass


class KeyValueBackend(ABC):
    """
    Abstract interface for the medium behind the local store.
    """

    @abstractmethod
    def is_available(self) -> bool:
        """True when the medium can currently be written."""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under `key`.

        Returns:
            The stored text, or None if nothing is stored

        Raises:
            BackendError: If the medium cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store `value` under `key`, replacing any previous value.

        Raises:
            BackendError: If the medium cannot be written
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove `key`; removing a missing key is not an error."""
        pass


class FileBackend(KeyValueBackend):
    """
    Stores each key as `<key>.json` inside a data directory.

    Writes go to a temporary file first and are moved into place,
    so a crash never leaves a half-written record behind.

    Availability is probed once with a throwaway write and remembered
    until a real read or write fails.
    """

    PROBE_KEY = "__storage_test__"

    def __init__(self, directory: Union[str, os.PathLike]):
        self._directory = Path(directory).expanduser()
        self._verified = False

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self._directory / f"{safe}.json"

    def is_available(self) -> bool:
        if self._verified:
            return True
        try:
            self.set(self.PROBE_KEY, self.PROBE_KEY)
            self.remove(self.PROBE_KEY)
        except BackendError:
            return False
        self._verified = True
        return True

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            self._verified = False
            raise BackendError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            self._verified = False
            raise BackendError(f"Failed to write {path}: {e}") from e

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            self._verified = False
            raise BackendError(f"Failed to remove {path}: {e}") from e


class MemoryBackend(KeyValueBackend):
    """
    In-process backend for tests and ephemeral sessions.

    `write_count` counts successful `set` calls; setting `available`
    to False makes every operation fail like an inaccessible medium.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})
        self.available = True
        self.write_count = 0

    def _check(self) -> None:
        if not self.available:
            raise BackendError("Memory backend is unavailable")

    def is_available(self) -> bool:
        return self.available

    def get(self, key: str) -> Optional[str]:
        self._check()
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check()
        self.data[key] = value
        self.write_count += 1

    def remove(self, key: str) -> None:
        self._check()
        self.data.pop(key, None)
