"""Storage contract shared by the SQL and JSON adapters.

Each adapter exposes three collections (marathons, users, participations)
with the same five operations. Participation keys are
``(marathon_id, user_id)`` tuples; marathons and users are keyed by id and
get their id allocated on insert.
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Generic, Hashable, Iterator, Optional, TypeVar

from .models import Marathon, Participation, User
from .settings import Settings

R = TypeVar("R")


class Collection(ABC, Generic[R]):
    @abstractmethod
    def list(self, **filters: Any) -> list[R]:
        """Records whose fields equal every given filter value."""

    @abstractmethod
    def get(self, key: Hashable) -> Optional[R]:
        ...

    @abstractmethod
    def insert(self, record: R) -> R:
        ...

    @abstractmethod
    def update(self, key: Hashable, **changes: Any) -> Optional[R]:
        ...

    @abstractmethod
    def delete(self, key: Hashable) -> bool:
        ...


class Storage(ABC):
    marathons: Collection[Marathon]
    users: Collection[User]
    participations: Collection[Participation]

    def __init__(self) -> None:
        self._locks_guard = threading.Lock()
        self._allocation_locks: dict[int, threading.Lock] = {}
        self._account_locks: dict[int, threading.RLock] = {}

    @abstractmethod
    def open(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    @contextmanager
    def allocation_lock(self, marathon_id: int) -> Iterator[None]:
        """Serialize entry-number allocation within one marathon."""
        with self._locks_guard:
            lock = self._allocation_locks.setdefault(int(marathon_id), threading.Lock())
        with lock:
            yield

    @contextmanager
    def account_lock(self, user_id: int) -> Iterator[None]:
        """Serialize registrations against deletion of the same account."""
        with self._locks_guard:
            lock = self._account_locks.setdefault(int(user_id), threading.RLock())
        with lock:
            yield

    def __enter__(self) -> "Storage":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def matches(record: Any, filters: dict[str, Any]) -> bool:
    return all(getattr(record, name) == value for name, value in filters.items())


def open_storage(settings: Settings) -> Storage:
    """Build and open the storage adapter selected by MARATHON_STORE."""
    if settings.MARATHON_STORE == "json":
        from .json_store import JsonStorage
        storage: Storage = JsonStorage(settings.MARATHON_DATA_DIR)
    else:
        from .db import SqlStorage
        storage = SqlStorage(settings.MARATHON_DB_URL)
    storage.open()
    return storage
