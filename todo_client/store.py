"""Task store: keeps the local task collection in step with the /tasks API.

Reconciliation rules:

- Local state only changes after the server confirmed an operation. The
  task the server sends back replaces whatever was held locally (the
  server may normalize what it stores).
- Updates are always full-record PUTs built from the last known full
  record of the task plus the requested changes, so an edit never drops
  ``completed`` or ``description``.
- Every request takes a ticket from one increasing counter. A response is
  applied only when its ticket is newer than the last one applied for the
  same task (or for the collection, in the case of fetches); older
  responses are dropped. A dropped mutation returns the newer known
  record, not what the server saved for that request.
- A full, unfiltered fetch forgets the bookkeeping of ids the server no
  longer lists.
- Failures never propagate. They are logged, stored in
  ``state.last_error`` and the operation returns None/False.
"""
from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Union

from .api import TasksApi
from .errors import (
    ApiPayloadError, TaskApiError, TodoClientError, UnknownTaskError, ValidationError,
)
from .models import FilterMode, Task, TaskId, Theme
from .state import (
    Action, ClientState, EditCancelled, EditStarted, ErrorCleared, FilterChanged,
    OperationError, OperationFailed, RequestSettled, RequestStarted, SearchChanged,
    TaskCreated, TaskDeleted, TaskUpdated, TasksLoaded, ThemeChanged, apply_filter, reduce,
)

logger = logging.getLogger(__name__)

__all__ = ['TaskStore', 'apply_filter']

Listener = Callable[[ClientState], None]

# ticket key for whole-collection fetches
_COLLECTION = object()


class TaskStore:
    def __init__(self, api: TasksApi, state: Optional[ClientState] = None,
                 server_side_filter: bool = False):
        self.api = api
        self.server_side_filter = server_side_filter
        self._state = state or ClientState()
        self._listeners: List[Listener] = []
        # last full record seen from the server for every task id, including
        # tasks outside the current (filtered) collection
        self._known: Dict[TaskId, Task] = {t.id: t for t in self._state.tasks}
        self._tickets = itertools.count(1)
        self._applied: Dict[object, int] = {}
        self._removed: Dict[TaskId, int] = {}

    @classmethod
    def from_config(cls, config, transport=None) -> 'TaskStore':
        api = TasksApi(config.server_url, timeout=config.timeout, verify=config.verify_ssl,
                       transport=transport)
        try:
            theme = Theme.parse(config.theme)
        except ValueError:
            logger.warning('unknown theme %r in config; using light', config.theme)
            theme = Theme.LIGHT
        return cls(api, ClientState(theme=theme), server_side_filter=config.server_side_filter)

    async def aclose(self) -> None:
        await self.api.aclose()

    # ---- state container ----

    @property
    def state(self) -> ClientState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the new state after every dispatch."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def dispatch(self, action: Action) -> ClientState:
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception('state listener %r failed', listener)
        return self._state

    def visible_tasks(self) -> List[Task]:
        return apply_filter(self._state.tasks, self._state.filter)

    def known_task(self, task_id: TaskId) -> Optional[Task]:
        return self._known.get(task_id)

    # ---- helpers ----

    def _issue(self) -> int:
        return next(self._tickets)

    def _is_current(self, key, ticket: int) -> bool:
        return ticket > self._applied.get(key, 0)

    def _mark(self, key, ticket: int) -> None:
        if ticket > self._applied.get(key, 0):
            self._applied[key] = ticket

    @contextmanager
    def _request(self, operation: str) -> Iterator[None]:
        self.dispatch(RequestStarted(operation))
        try:
            yield
        finally:
            self.dispatch(RequestSettled(operation))

    def _fail(self, operation: str, exc: TodoClientError) -> None:
        if isinstance(exc, ApiPayloadError):
            logger.exception('%s failed: bad response from server', operation)
        else:
            logger.warning('%s failed: %s', operation, exc)
        self.dispatch(OperationFailed(OperationError(operation, str(exc))))

    def _require_known(self, task_id: TaskId) -> Task:
        task = self._known.get(task_id)
        if task is None:
            raise UnknownTaskError(task_id)
        return task

    def _forget_missing(self, present, ticket: int) -> None:
        # only entries settled before the fetch was issued
        for task_id in [k for k, t in self._applied.items()
                        if k is not _COLLECTION and k not in present and t <= ticket]:
            del self._applied[task_id]
            self._known.pop(task_id, None)
        for task_id in [k for k, t in self._removed.items() if t <= ticket]:
            del self._removed[task_id]

    # ---- remote operations ----

    async def fetch_all(self, filter_mode: Union[FilterMode, str, None] = None,
                        search: Optional[str] = None) -> List[Task]:
        """Replace the local collection with the server's list.

        Returns the resulting collection; on failure (or when a newer fetch
        already landed) the current collection is returned unchanged.
        """
        ticket = self._issue()
        try:
            with self._request('fetch'):
                fetched = await self.api.list_tasks(status=filter_mode, search=search)
        except TaskApiError as e:
            self._fail('fetch', e)
            return list(self._state.tasks)

        if not self._is_current(_COLLECTION, ticket):
            logger.debug('dropping stale fetch response (ticket %d)', ticket)
            return list(self._state.tasks)
        self._mark(_COLLECTION, ticket)

        merged: List[Task] = []
        seen = set()
        for task in fetched:
            if self._removed.get(task.id, 0) > ticket:
                continue
            if self._applied.get(task.id, 0) > ticket:
                # changed by a request issued after this fetch; keep ours
                task = self._known.get(task.id, task)
            else:
                self._known[task.id] = task
                self._mark(task.id, ticket)
            merged.append(task)
            seen.add(task.id)
        for task in self._state.tasks:
            if task.id not in seen and self._applied.get(task.id, 0) > ticket:
                merged.append(task)

        if FilterMode.parse(filter_mode or FilterMode.ALL) is FilterMode.ALL and not search:
            self._forget_missing({task.id for task in fetched}, ticket)

        self.dispatch(TasksLoaded(tuple(merged)))
        logger.info('fetched %d tasks', len(merged))
        return merged

    async def refresh(self) -> List[Task]:
        """Re-fetch using the current search and, if enabled, the current filter."""
        filter_mode = self._state.filter if self.server_side_filter else None
        return await self.fetch_all(filter_mode, self._state.search or None)

    async def create(self, title: str, description: str = '') -> Optional[Task]:
        if not title or not title.strip():
            logger.debug('create ignored: blank title')
            return None
        ticket = self._issue()
        try:
            with self._request('create'):
                task = await self.api.create_task(title, description or '')
        except TaskApiError as e:
            self._fail('create', e)
            return None

        self._known[task.id] = task
        self._mark(task.id, ticket)
        if self._state.find(task.id) is not None:
            self.dispatch(TaskUpdated(task))
        else:
            self.dispatch(TaskCreated(task))
        logger.info('created task %s', task.id)
        return task

    async def update(self, task_id: TaskId, *, title: Optional[str] = None,
                     description: Optional[str] = None,
                     completed: Optional[bool] = None) -> Optional[Task]:
        """Send the last known record of ``task_id`` merged with the given fields."""
        try:
            base = self._require_known(task_id)
            if title is not None and not title.strip():
                raise ValidationError('title must not be blank')
        except TodoClientError as e:
            self._fail('update', e)
            return None
        return await self._replace('update', base.merged(title, description, completed))

    async def toggle_complete(self, task: Union[Task, TaskId]) -> Optional[Task]:
        task_id = task.id if isinstance(task, Task) else task
        try:
            base = self._require_known(task_id)
        except UnknownTaskError as e:
            self._fail('toggle', e)
            return None
        return await self._replace('toggle', base.merged(completed=not base.completed))

    async def _replace(self, operation: str, task: Task) -> Optional[Task]:
        ticket = self._issue()
        try:
            with self._request(operation):
                saved = await self.api.replace_task(task)
        except TaskApiError as e:
            self._fail(operation, e)
            return None

        if not self._is_current(task.id, ticket):
            logger.debug('dropping stale %s response for task %s (ticket %d)',
                         operation, task.id, ticket)
            return self._known.get(task.id)
        self._mark(task.id, ticket)
        self._known[task.id] = saved
        if self._state.find(saved.id) is not None:
            self.dispatch(TaskUpdated(saved))
        logger.info('%s task %s: completed=%s', operation, saved.id, saved.completed)
        return saved

    async def delete(self, task_id: TaskId) -> bool:
        ticket = self._issue()
        try:
            with self._request('delete'):
                await self.api.delete_task(task_id)
        except TaskApiError as e:
            self._fail('delete', e)
            return False

        self._removed[task_id] = ticket
        self._mark(task_id, ticket)
        self._known.pop(task_id, None)
        self.dispatch(TaskDeleted(task_id))
        logger.info('deleted task %s', task_id)
        return True

    # ---- view state ----

    async def set_filter(self, mode: Union[FilterMode, str]) -> List[Task]:
        mode = FilterMode.parse(mode)
        self.dispatch(FilterChanged(mode))
        if self.server_side_filter:
            await self.refresh()
        return self.visible_tasks()

    async def set_search(self, text: str) -> List[Task]:
        self.dispatch(SearchChanged((text or '').strip()))
        await self.refresh()
        return self.visible_tasks()

    def set_theme(self, theme: Union[Theme, str]) -> Theme:
        theme = Theme.parse(theme)
        self.dispatch(ThemeChanged(theme))
        return theme

    def toggle_theme(self) -> Theme:
        return self.set_theme(self._state.theme.toggled())

    def clear_error(self) -> None:
        self.dispatch(ErrorCleared())

    # ---- edit flow ----

    def begin_edit(self, task_id: TaskId) -> Optional[Task]:
        try:
            task = self._require_known(task_id)
        except UnknownTaskError as e:
            self._fail('edit', e)
            return None
        self.dispatch(EditStarted(task_id))
        return task

    def cancel_edit(self) -> None:
        self.dispatch(EditCancelled())

    async def submit(self, title: str, description: Optional[str] = None) -> Optional[Task]:
        """Save the form: update the task being edited, or create a new one."""
        if not title or not title.strip():
            return None
        editing_id = self._state.editing_id
        if editing_id is None:
            return await self.create(title, description or '')
        saved = await self.update(editing_id, title=title, description=description)
        if saved is not None and self._state.editing_id == editing_id:
            self.cancel_edit()
        return saved
