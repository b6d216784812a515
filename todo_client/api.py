"""Async client for the remote /tasks REST API."""

import logging
from typing import Any, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from .errors import ApiPayloadError, ApiStatusError, ApiTransportError
from .models import FilterMode, Task, TaskId

logger = logging.getLogger(__name__)

TASKS_PATH = '/tasks'

_task_list = TypeAdapter(List[Task])


class TasksApi:
    """Thin wrapper around one httpx.AsyncClient.

    Every method either returns validated Task objects or raises a
    TaskApiError subclass; nothing here touches local state.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, verify: bool = True,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            verify=verify,
            transport=transport,
            headers={'Content-Type': 'application/json', 'Accept': 'application/json'},
        )

    async def __aenter__(self) -> 'TasksApi':
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise ApiTransportError(f"{method} {url} failed: {e}") from e
        if response.status_code < 200 or response.status_code >= 300:
            raise ApiStatusError(response.status_code, _error_detail(response))
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ApiPayloadError(f"response is not JSON: {response.text[:200]!r}") from e

    def _task(self, response: httpx.Response) -> Task:
        data = self._json(response)
        try:
            return Task.model_validate(data)
        except PydanticValidationError as e:
            raise ApiPayloadError(f"malformed task payload: {e}") from e

    async def list_tasks(self, status: Optional[FilterMode] = None,
                         search: Optional[str] = None) -> List[Task]:
        """GET /tasks, optionally scoped by status filter and search text."""
        params = {}
        if status is not None and FilterMode.parse(status) is not FilterMode.ALL:
            params['status'] = FilterMode.parse(status).value
        if search:
            params['search'] = search
        response = await self._request('GET', TASKS_PATH, params=params)
        data = self._json(response)
        try:
            tasks = _task_list.validate_python(data)
        except PydanticValidationError as e:
            raise ApiPayloadError(f"malformed task list: {e}") from e
        logger.debug('GET %s params=%s -> %d tasks', TASKS_PATH, params, len(tasks))
        return tasks

    async def create_task(self, title: str, description: str = '') -> Task:
        payload = {'title': title, 'description': description}
        response = await self._request('POST', TASKS_PATH, json=payload)
        return self._task(response)

    async def replace_task(self, task: Task) -> Task:
        """PUT the full representation of ``task``; the server replaces its record."""
        response = await self._request('PUT', f"{TASKS_PATH}/{task.id}", json=task.to_payload())
        return self._task(response)

    async def delete_task(self, task_id: TaskId) -> None:
        # body (if any) is ignored
        await self._request('DELETE', f"{TASKS_PATH}/{task_id}")


def _error_detail(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:200] or None
    if isinstance(data, dict) and 'detail' in data:
        return str(data['detail'])
    return None
