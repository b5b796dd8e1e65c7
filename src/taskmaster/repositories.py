from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import RLock
from typing import List

from .errors import StartupError
from .models import TaskEntity
from .settings import Settings


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for task storage backends."""

    @abstractmethod
    def create(self, text: str) -> TaskEntity:
        """Persist a task with store-assigned id and creation time; return it."""

    @abstractmethod
    def list(self) -> List[TaskEntity]:
        """Return every task ordered by created_at ascending (creation order)."""

    @abstractmethod
    def delete(self, task_id: str) -> bool:
        """Delete a task by id. Return True if a record was removed, False if absent."""

    def ping(self) -> None:
        """Raise if the backing store is unreachable. No-op for in-process stores."""

    def close(self) -> None:
        """Release connections held by the store."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and local development.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[str, TaskEntity] = {}

    def _allocate_id(self) -> str:
        return uuid.uuid4().hex

    def create(self, text: str) -> TaskEntity:
        entity: TaskEntity = {
            "id": self._allocate_id(),
            "text": text,
            "created_at": utcnow(),
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()  # type: ignore[return-value]

    def list(self) -> List[TaskEntity]:
        with self._lock:
            # sorted() is stable, so ties keep insertion order
            items = sorted(self._items.values(), key=lambda t: t["created_at"])
            return [t.copy() for t in items]  # type: ignore[misc]

    def delete(self, task_id: str) -> bool:
        with self._lock:
            return self._items.pop(task_id, None) is not None


# PUBLIC_INTERFACE
def get_repository(settings: Settings) -> Repository:
    """
    Factory returning the repository selected by the storage URL scheme.
    - memory://                    InMemoryRepository
    - sqlite:///path/to/tasks.db   SQLiteRepository
    - mongodb://, mongodb+srv://   MongoRepository

    Raises:
        StartupError: the scheme is not supported.
    """
    url = settings.storage_url.strip()
    scheme = url.split("://", 1)[0].lower() if "://" in url else ""

    if scheme == "memory":
        return InMemoryRepository()
    if scheme == "sqlite":
        from .db import SQLiteRepository, sqlite_path_from_url

        return SQLiteRepository(sqlite_path_from_url(url))
    if scheme in {"mongodb", "mongodb+srv"}:
        from .mongo import MongoRepository

        return MongoRepository.from_url(url, timeout_ms=settings.storage_timeout_ms)
    raise StartupError(f"Unsupported storage URL scheme: {scheme or url!r}")
