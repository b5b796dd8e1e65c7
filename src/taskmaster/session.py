"""
Client-side connection/sync state for the task list.

The state is an explicit tagged value (Phase + SessionState) and every change
goes through the pure transition() function, so the rules below can be tested
without any HTTP or rendering:

- Unknown -> Checking -> Connected | Disconnected (single probe, no retry)
- Connected -> Loading -> Ready | LoadError (list kept as it was)
- Ready/LoadError/ActionError -> Pending -> Ready | ActionError
- The local list only changes after the service confirms a mutation.
- There is one error slot; each outcome replaces it.

TaskListSession wires transition() to a TaskApiClient.
"""
from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

import structlog

from .client import TaskApiClient
from .errors import ApiError
from .schemas import TaskOut

log = structlog.get_logger(__name__)

OFFLINE_MESSAGE = "Backend is offline or waking up. Please wait a few seconds."
LOAD_FAILED_MESSAGE = "Failed to load tasks. Please try again later."
ADD_FAILED_MESSAGE = "Failed to add task. Please try again."
DELETE_FAILED_MESSAGE = "Failed to delete task. Please try again."


class Phase(str, enum.Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    LOADING = "loading"
    READY = "ready"
    LOAD_ERROR = "load_error"
    PENDING = "pending"
    ACTION_ERROR = "action_error"


CONNECTED_PHASES = frozenset(
    {Phase.CONNECTED, Phase.LOADING, Phase.READY, Phase.LOAD_ERROR, Phase.PENDING, Phase.ACTION_ERROR}
)
# Connected and idle: a new request may start
IDLE_PHASES = frozenset({Phase.CONNECTED, Phase.READY, Phase.LOAD_ERROR, Phase.ACTION_ERROR})


@dataclass(frozen=True)
class SessionState:
    phase: Phase = Phase.UNKNOWN
    tasks: Tuple[TaskOut, ...] = ()
    error: Optional[str] = None
    draft: str = ""

    @property
    def is_connected(self) -> bool:
        return self.phase in CONNECTED_PHASES

    @property
    def can_mutate(self) -> bool:
        """False while disconnected or while a request is in flight."""
        return self.phase in IDLE_PHASES

    @property
    def is_loading(self) -> bool:
        return self.phase in {Phase.UNKNOWN, Phase.CHECKING, Phase.LOADING}


# Events


@dataclass(frozen=True)
class ProbeStarted:
    pass


@dataclass(frozen=True)
class ProbeSucceeded:
    pass


@dataclass(frozen=True)
class ProbeFailed:
    pass


@dataclass(frozen=True)
class LoadStarted:
    pass


@dataclass(frozen=True)
class LoadSucceeded:
    tasks: Tuple[TaskOut, ...]


@dataclass(frozen=True)
class LoadFailed:
    pass


@dataclass(frozen=True)
class DraftChanged:
    text: str


@dataclass(frozen=True)
class AddStarted:
    text: str


@dataclass(frozen=True)
class AddSucceeded:
    task: TaskOut


@dataclass(frozen=True)
class DeleteStarted:
    task_id: str


@dataclass(frozen=True)
class DeleteSucceeded:
    task_id: str


@dataclass(frozen=True)
class ActionFailed:
    message: str


Event = Union[
    ProbeStarted,
    ProbeSucceeded,
    ProbeFailed,
    LoadStarted,
    LoadSucceeded,
    LoadFailed,
    DraftChanged,
    AddStarted,
    AddSucceeded,
    DeleteStarted,
    DeleteSucceeded,
    ActionFailed,
]


# PUBLIC_INTERFACE
def transition(state: SessionState, event: Event) -> SessionState:
    """
    Return the state that follows `event`.

    Events that are not valid in the current phase leave the state unchanged
    and the same object is returned, so callers can detect a rejected event
    with an identity check.
    """
    phase = state.phase

    if isinstance(event, DraftChanged):
        return replace(state, draft=event.text)

    if isinstance(event, ProbeStarted) and phase is Phase.UNKNOWN:
        return replace(state, phase=Phase.CHECKING)
    if isinstance(event, ProbeSucceeded) and phase is Phase.CHECKING:
        return replace(state, phase=Phase.CONNECTED, error=None)
    if isinstance(event, ProbeFailed) and phase is Phase.CHECKING:
        return replace(state, phase=Phase.DISCONNECTED, error=OFFLINE_MESSAGE)

    if isinstance(event, LoadStarted) and phase in IDLE_PHASES:
        return replace(state, phase=Phase.LOADING)
    if isinstance(event, LoadSucceeded) and phase is Phase.LOADING:
        return replace(state, phase=Phase.READY, tasks=tuple(event.tasks), error=None)
    if isinstance(event, LoadFailed) and phase is Phase.LOADING:
        return replace(state, phase=Phase.LOAD_ERROR, error=LOAD_FAILED_MESSAGE)

    if isinstance(event, AddStarted) and phase in IDLE_PHASES and event.text.strip():
        return replace(state, phase=Phase.PENDING)
    if isinstance(event, DeleteStarted) and phase in IDLE_PHASES:
        return replace(state, phase=Phase.PENDING)

    if phase is Phase.PENDING:
        if isinstance(event, AddSucceeded):
            # Creation is always the newest, so appending keeps creation order
            return replace(state, phase=Phase.READY, tasks=state.tasks + (event.task,), draft="", error=None)
        if isinstance(event, DeleteSucceeded):
            remaining = tuple(t for t in state.tasks if t.id != event.task_id)
            return replace(state, phase=Phase.READY, tasks=remaining, error=None)
        if isinstance(event, ActionFailed):
            return replace(state, phase=Phase.ACTION_ERROR, error=event.message)

    return state


# PUBLIC_INTERFACE
class TaskListSession:
    """
    Drives the session state against the task service.

    One request at a time: while a request is in flight, add/delete/refresh
    calls are rejected and return False. Failures are never retried; they set
    the error slot and wait for the user to act again.
    """

    def __init__(self, client: TaskApiClient, state: Optional[SessionState] = None) -> None:
        self._client = client
        self._state = state or SessionState()
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    def _dispatch(self, event: Event) -> bool:
        """Apply an event; return False if the current phase rejected it."""
        with self._lock:
            before = self._state
            self._state = transition(before, event)
            return self._state is not before

    def start(self) -> SessionState:
        """Probe the service once and, when reachable, load the task list."""
        if not self._dispatch(ProbeStarted()):
            return self._state
        try:
            reachable = self._client.probe()
        except Exception:
            log.exception("connectivity_check_failed")
            reachable = False
        if reachable:
            self._dispatch(ProbeSucceeded())
            log.info("service_connected")
            self.refresh()
        else:
            self._dispatch(ProbeFailed())
            log.warning("service_unreachable")
        return self._state

    def refresh(self) -> bool:
        """Replace the local list with the service's. Returns True on success."""
        if not self._dispatch(LoadStarted()):
            return False
        try:
            tasks = self._client.list_tasks()
        except ApiError as e:
            log.warning("load_tasks_failed", error=e.message, status_code=e.status_code)
            self._dispatch(LoadFailed())
            return False
        except Exception:
            log.exception("load_tasks_failed")
            self._dispatch(LoadFailed())
            return False
        self._dispatch(LoadSucceeded(tuple(tasks)))
        return True

    def set_draft(self, text: str) -> None:
        self._dispatch(DraftChanged(text))

    def add(self, text: Optional[str] = None) -> bool:
        """
        Create a task from `text` (or the current draft) and append it once
        the service confirms. Returns True if the task was added.
        """
        text = self._state.draft if text is None else text
        if not self._dispatch(AddStarted(text)):
            return False
        try:
            task = self._client.create_task(text.strip())
        except ApiError as e:
            log.warning("add_task_failed", error=e.message, status_code=e.status_code)
            self._dispatch(ActionFailed(ADD_FAILED_MESSAGE))
            return False
        except Exception:
            log.exception("add_task_failed")
            self._dispatch(ActionFailed(ADD_FAILED_MESSAGE))
            return False
        self._dispatch(AddSucceeded(task))
        return True

    def delete(self, task_id: str) -> bool:
        """Delete a task and drop it locally once the service confirms."""
        if not self._dispatch(DeleteStarted(task_id)):
            return False
        try:
            self._client.delete_task(task_id)
        except ApiError as e:
            log.warning("delete_task_failed", task_id=task_id, error=e.message, status_code=e.status_code)
            self._dispatch(ActionFailed(DELETE_FAILED_MESSAGE))
            return False
        except Exception:
            log.exception("delete_task_failed", task_id=task_id)
            self._dispatch(ActionFailed(DELETE_FAILED_MESSAGE))
            return False
        self._dispatch(DeleteSucceeded(task_id))
        return True
