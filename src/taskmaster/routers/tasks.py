from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Request, status

from ..repositories import Repository
from ..schemas import ErrorOut, TaskCreate, TaskOut
from ..service import TaskService

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
)


def _get_repo(request: Request) -> Repository:
    """
    Return the process-wide repository created at application startup.
    """
    return request.app.state.repository


def _get_service(repo: Repository = Depends(_get_repo)) -> TaskService:
    return TaskService(repo)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description="Return every task, ordered by creation time (oldest first).",
    responses={
        200: {"description": "Tasks retrieved successfully"},
        500: {"model": ErrorOut, "description": "Storage failure"},
    },
)
def list_tasks(service: TaskService = Depends(_get_service)) -> List[TaskOut]:
    """
    List all tasks in creation order.
    """
    return [TaskOut.from_entity(t) for t in service.list_tasks()]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task from trimmed, non-empty text and return it with its id and creation time.",
    responses={
        201: {"description": "Task created successfully"},
        400: {"model": ErrorOut, "description": "Text is empty after trimming"},
        500: {"model": ErrorOut, "description": "Storage failure"},
    },
)
def create_task(
    payload: Optional[TaskCreate] = Body(default=None),
    service: TaskService = Depends(_get_service),
) -> TaskOut:
    """
    Create a new Task. A missing body is treated like missing text (400).
    """
    return TaskOut.from_entity(service.create_task(payload.text if payload else None))


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    description="Delete a task by id. Deleting an id that does not exist also succeeds.",
    responses={
        204: {"description": "Task deleted or already absent"},
        500: {"model": ErrorOut, "description": "Storage failure"},
    },
)
def delete_task(task_id: str, service: TaskService = Depends(_get_service)) -> None:
    """
    Delete a Task. Returns 204 whether or not the task existed.
    """
    service.delete_task(task_id)
    return None
