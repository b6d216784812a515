import itertools
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import APIRouter, FastAPI, HTTPException, Request, Response
from pydantic import BaseModel

from todo_client.api import TasksApi
from todo_client.store import TaskStore

BASE_URL = 'http://test/api'


# --- in-memory /tasks server ---
# Behaves like the real API as far as the client can tell: ids are assigned
# by the server, titles are stripped before storing, PUT requires the full
# record (missing fields -> 422) and unknown ids -> 404.

class TaskCreate(BaseModel):
    title: str
    description: str = ''


class TaskReplace(BaseModel):
    title: str
    description: str
    completed: bool


def create_task_app() -> FastAPI:
    app = FastAPI()
    app.state.tasks = {}
    app.state.ids = itertools.count(1)
    app.state.requests = []
    router = APIRouter(prefix='/api')

    @app.middleware('http')
    async def record_requests(request: Request, call_next):
        app.state.requests.append((request.method, request.url.path))
        return await call_next(request)

    @router.get('/tasks')
    async def list_tasks(search: Optional[str] = None, status: Optional[str] = None):
        tasks = list(app.state.tasks.values())
        if status == 'pending':
            tasks = [t for t in tasks if not t['completed']]
        elif status == 'finished':
            tasks = [t for t in tasks if t['completed']]
        if search:
            needle = search.lower()
            tasks = [t for t in tasks if needle in t['title'].lower() or needle in t['description'].lower()]
        return tasks

    @router.post('/tasks')
    async def create_task(payload: TaskCreate):
        task_id = next(app.state.ids)
        task = {'id': task_id, 'title': payload.title.strip(),
                'description': payload.description, 'completed': False}
        app.state.tasks[task_id] = task
        return task

    @router.put('/tasks/{task_id}')
    async def replace_task(task_id: int, payload: TaskReplace):
        if task_id not in app.state.tasks:
            raise HTTPException(status_code=404, detail='Task not found')
        task = {'id': task_id, 'title': payload.title.strip(),
                'description': payload.description, 'completed': payload.completed}
        app.state.tasks[task_id] = task
        return task

    @router.delete('/tasks/{task_id}')
    async def delete_task(task_id: int):
        if app.state.tasks.pop(task_id, None) is None:
            raise HTTPException(status_code=404, detail='Task not found')
        return Response(status_code=204)

    app.include_router(router)
    return app


@pytest.fixture
def server():
    return create_task_app()


@pytest.fixture
def seed(server):
    """Put tasks straight into the server, bypassing the client."""
    def _seed(title: str, description: str = '', completed: bool = False) -> dict:
        task_id = next(server.state.ids)
        task = {'id': task_id, 'title': title, 'description': description, 'completed': completed}
        server.state.tasks[task_id] = task
        return task
    return _seed


@pytest_asyncio.fixture
async def api(server):
    async with TasksApi(BASE_URL, transport=httpx.ASGITransport(app=server)) as api:
        yield api


@pytest_asyncio.fixture
async def store(api):
    return TaskStore(api)


@pytest_asyncio.fixture
async def mock_store():
    """Factory: TaskStore whose requests are answered by ``handler``.

    The handler may be sync or async and gets the httpx.Request.
    """
    stores = []

    def make(handler, **kwargs):
        api = TasksApi(BASE_URL, transport=httpx.MockTransport(handler))
        s = TaskStore(api, **kwargs)
        stores.append(s)
        return s

    yield make
    for s in stores:
        await s.aclose()
