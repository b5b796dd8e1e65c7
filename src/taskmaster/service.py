from __future__ import annotations

from typing import List, Optional

import structlog

from .errors import StorageError, ValidationError
from .models import TaskEntity
from .repositories import Repository

log = structlog.get_logger(__name__)

LIST_FAILED = "Failed to fetch tasks"
CREATE_FAILED = "Failed to add task"
DELETE_FAILED = "Failed to delete task"
TEXT_REQUIRED = "text is required"


# PUBLIC_INTERFACE
class TaskService:
    """
    Stateless task operations on top of a Repository.

    Each operation is handled independently against the store. Any failure
    raised by the store is logged with full detail and replaced by a
    StorageError whose message is safe to show to clients.
    """

    def __init__(self, repository: Repository) -> None:
        self._repo = repository

    def list_tasks(self) -> List[TaskEntity]:
        """Return all tasks in creation order."""
        try:
            return self._repo.list()
        except Exception as e:
            log.exception("storage_operation_failed", operation="list", error_type=type(e).__name__)
            raise StorageError(LIST_FAILED) from e

    def create_task(self, text: Optional[str]) -> TaskEntity:
        """
        Validate and persist a new task.

        Raises:
            ValidationError: text is missing or blank after trimming; nothing is written.
            StorageError: the store failed. The task may or may not have been written.
        """
        cleaned = (text or "").strip()
        if not cleaned:
            raise ValidationError(TEXT_REQUIRED)
        try:
            created = self._repo.create(cleaned)
        except Exception as e:
            log.exception("storage_operation_failed", operation="create", error_type=type(e).__name__)
            raise StorageError(CREATE_FAILED) from e
        log.info("task_created", task_id=created["id"])
        return created

    def delete_task(self, task_id: str) -> None:
        """Delete a task by id. Deleting an absent id succeeds."""
        try:
            removed = self._repo.delete(task_id)
        except Exception as e:
            log.exception("storage_operation_failed", operation="delete", error_type=type(e).__name__)
            raise StorageError(DELETE_FAILED) from e
        log.info("task_deleted", task_id=task_id, removed=removed)
