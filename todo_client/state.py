"""Client state container: immutable state, named actions and a pure reducer.

The store dispatches one action per outcome (tasks loaded, task created,
request failed, ...). ``reduce`` never mutates the state or action it is
given; it returns a new ClientState.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple, Union

from .models import FilterMode, Task, TaskId, Theme


@dataclass(frozen=True)
class OperationError:
    """A failed operation, kept in state so front ends can show it."""
    operation: str
    message: str

    def __str__(self) -> str:
        return f"{self.operation} failed: {self.message}"


@dataclass(frozen=True)
class ClientState:
    tasks: Tuple[Task, ...] = ()
    filter: FilterMode = FilterMode.ALL
    theme: Theme = Theme.LIGHT
    search: str = ''
    editing_id: Optional[TaskId] = None
    last_error: Optional[OperationError] = None
    pending_requests: int = 0

    @property
    def loading(self) -> bool:
        return self.pending_requests > 0

    def find(self, task_id: TaskId) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    @property
    def editing(self) -> Optional[Task]:
        if self.editing_id is None:
            return None
        return self.find(self.editing_id)


# ---- actions ----

@dataclass(frozen=True)
class TasksLoaded:
    tasks: Tuple[Task, ...]


@dataclass(frozen=True)
class TaskCreated:
    task: Task


@dataclass(frozen=True)
class TaskUpdated:
    task: Task


@dataclass(frozen=True)
class TaskDeleted:
    task_id: TaskId


@dataclass(frozen=True)
class FilterChanged:
    filter: FilterMode


@dataclass(frozen=True)
class ThemeChanged:
    theme: Theme


@dataclass(frozen=True)
class SearchChanged:
    search: str


@dataclass(frozen=True)
class EditStarted:
    task_id: TaskId


@dataclass(frozen=True)
class EditCancelled:
    pass


@dataclass(frozen=True)
class RequestStarted:
    operation: str


@dataclass(frozen=True)
class RequestSettled:
    operation: str


@dataclass(frozen=True)
class OperationFailed:
    error: OperationError


@dataclass(frozen=True)
class ErrorCleared:
    pass


Action = Union[
    TasksLoaded, TaskCreated, TaskUpdated, TaskDeleted, FilterChanged, ThemeChanged,
    SearchChanged, EditStarted, EditCancelled, RequestStarted, RequestSettled, OperationFailed,
    ErrorCleared,
]


def apply_filter(tasks: Iterable[Task], mode: Union[FilterMode, str]) -> List[Task]:
    """Return the tasks visible under ``mode``, in their original order.

    Always returns a new list; the input is left alone.
    """
    mode = FilterMode.parse(mode)
    if mode is FilterMode.PENDING:
        return [t for t in tasks if t.completed is False]
    if mode is FilterMode.FINISHED:
        return [t for t in tasks if t.completed is True]
    return list(tasks)


def reduce(state: ClientState, action: Action) -> ClientState:
    if isinstance(action, TasksLoaded):
        return replace(state, tasks=tuple(action.tasks), last_error=None)

    if isinstance(action, TaskCreated):
        return replace(state, tasks=state.tasks + (action.task,), last_error=None)

    if isinstance(action, TaskUpdated):
        updated = action.task
        tasks = tuple(updated if t.id == updated.id else t for t in state.tasks)
        return replace(state, tasks=tasks, last_error=None)

    if isinstance(action, TaskDeleted):
        tasks = tuple(t for t in state.tasks if t.id != action.task_id)
        editing_id = None if state.editing_id == action.task_id else state.editing_id
        return replace(state, tasks=tasks, editing_id=editing_id, last_error=None)

    if isinstance(action, FilterChanged):
        return replace(state, filter=action.filter)

    if isinstance(action, ThemeChanged):
        return replace(state, theme=action.theme)

    if isinstance(action, SearchChanged):
        return replace(state, search=action.search)

    if isinstance(action, EditStarted):
        return replace(state, editing_id=action.task_id)

    if isinstance(action, EditCancelled):
        return replace(state, editing_id=None)

    if isinstance(action, RequestStarted):
        return replace(state, pending_requests=state.pending_requests + 1)

    if isinstance(action, RequestSettled):
        return replace(state, pending_requests=max(0, state.pending_requests - 1))

    if isinstance(action, OperationFailed):
        return replace(state, last_error=action.error)

    if isinstance(action, ErrorCleared):
        return replace(state, last_error=None)

    raise TypeError(f"unknown action {action!r}")
