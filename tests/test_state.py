import pytest

from todo_client.models import FilterMode, Task, Theme
from todo_client.state import (
    ClientState, EditCancelled, EditStarted, ErrorCleared, FilterChanged, OperationError,
    OperationFailed, RequestSettled, RequestStarted, TaskCreated, TaskDeleted, TaskUpdated,
    TasksLoaded, ThemeChanged, apply_filter, reduce,
)


def make_tasks():
    return [
        Task(id=1, title='a', completed=False),
        Task(id=2, title='b', completed=True),
        Task(id=3, title='c', completed=False),
        Task(id=4, title='d', completed=True),
    ]


def test_apply_filter_pending_keeps_order():
    tasks = make_tasks()
    assert [t.id for t in apply_filter(tasks, FilterMode.PENDING)] == [1, 3]


def test_apply_filter_finished_is_complement_of_pending():
    tasks = make_tasks()
    pending = apply_filter(tasks, 'pending')
    finished = apply_filter(tasks, 'finished')
    assert [t.id for t in finished] == [2, 4]
    assert {t.id for t in pending} | {t.id for t in finished} == {t.id for t in tasks}
    assert not ({t.id for t in pending} & {t.id for t in finished})


def test_apply_filter_all_returns_equal_copy():
    tasks = make_tasks()
    out = apply_filter(tasks, FilterMode.ALL)
    assert out == tasks
    assert out is not tasks


def test_apply_filter_does_not_mutate_input():
    tasks = make_tasks()
    before = list(tasks)
    apply_filter(tasks, 'pending')
    apply_filter(tasks, 'finished')
    assert tasks == before


def test_apply_filter_accepts_capitalised_labels():
    assert [t.id for t in apply_filter(make_tasks(), 'Finished')] == [2, 4]
    with pytest.raises(ValueError):
        apply_filter(make_tasks(), 'done')


def test_reduce_tasks_loaded_replaces_collection_and_clears_error():
    state = ClientState(tasks=(Task(id=9, title='old'),),
                        last_error=OperationError('fetch', 'boom'))
    new = reduce(state, TasksLoaded(tuple(make_tasks())))
    assert [t.id for t in new.tasks] == [1, 2, 3, 4]
    assert new.last_error is None
    # previous state untouched
    assert [t.id for t in state.tasks] == [9]


def test_reduce_task_created_appends():
    state = ClientState(tasks=tuple(make_tasks()))
    new = reduce(state, TaskCreated(Task(id=5, title='e')))
    assert [t.id for t in new.tasks] == [1, 2, 3, 4, 5]


def test_reduce_task_updated_replaces_in_place():
    state = ClientState(tasks=tuple(make_tasks()))
    new = reduce(state, TaskUpdated(Task(id=3, title='C', completed=True)))
    assert [t.id for t in new.tasks] == [1, 2, 3, 4]
    assert new.find(3).title == 'C'
    assert new.find(3).completed is True


def test_reduce_task_updated_unknown_id_leaves_collection():
    state = ClientState(tasks=tuple(make_tasks()))
    new = reduce(state, TaskUpdated(Task(id=99, title='x')))
    assert new.tasks == state.tasks


def test_reduce_task_deleted_clears_matching_edit():
    state = ClientState(tasks=tuple(make_tasks()), editing_id=2)
    new = reduce(state, TaskDeleted(2))
    assert [t.id for t in new.tasks] == [1, 3, 4]
    assert new.editing_id is None

    other = reduce(ClientState(tasks=tuple(make_tasks()), editing_id=1), TaskDeleted(2))
    assert other.editing_id == 1


def test_reduce_view_actions():
    state = ClientState()
    state = reduce(state, FilterChanged(FilterMode.FINISHED))
    state = reduce(state, ThemeChanged(Theme.DARK))
    state = reduce(state, EditStarted(4))
    assert state.filter is FilterMode.FINISHED
    assert state.theme is Theme.DARK
    assert state.editing_id == 4
    assert reduce(state, EditCancelled()).editing_id is None


def test_reduce_request_counter_and_errors():
    state = reduce(ClientState(), RequestStarted('fetch'))
    state = reduce(state, RequestStarted('create'))
    assert state.loading
    state = reduce(state, RequestSettled('fetch'))
    state = reduce(state, OperationFailed(OperationError('create', 'HTTP 500')))
    assert state.loading
    assert str(state.last_error) == 'create failed: HTTP 500'
    state = reduce(state, RequestSettled('create'))
    assert not state.loading
    assert reduce(state, ErrorCleared()).last_error is None


def test_reduce_rejects_unknown_action():
    with pytest.raises(TypeError):
        reduce(ClientState(), object())
