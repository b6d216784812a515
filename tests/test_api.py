import httpx
import pytest

from todo_client.api import TasksApi
from todo_client.errors import ApiPayloadError, ApiStatusError, ApiTransportError
from todo_client.models import FilterMode, Task

from conftest import BASE_URL

pytestmark = pytest.mark.asyncio


async def test_create_and_list(api, server):
    task = await api.create_task('  Buy milk ', '2 litres')
    assert task.id == 1
    assert task.title == 'Buy milk'
    assert task.description == '2 litres'
    assert task.completed is False

    tasks = await api.list_tasks()
    assert tasks == [task]
    assert server.state.requests == [('POST', '/api/tasks'), ('GET', '/api/tasks')]


async def test_list_sends_status_and_search(api, seed):
    seed('milk', completed=True)
    seed('bread')
    seed('oat milk')

    assert [t.title for t in await api.list_tasks(status=FilterMode.FINISHED)] == ['milk']
    assert [t.title for t in await api.list_tasks(status='pending', search='milk')] == ['oat milk']
    # 'all' is not sent to the server
    assert len(await api.list_tasks(status=FilterMode.ALL)) == 3


async def test_replace_sends_full_record(api, seed):
    seed('walk dog', 'twice', completed=True)
    saved = await api.replace_task(Task(id=1, title='walk the dog', description='twice', completed=True))
    assert saved == Task(id=1, title='walk the dog', description='twice', completed=True)


async def test_replace_unknown_task_is_status_error(api):
    with pytest.raises(ApiStatusError) as exc:
        await api.replace_task(Task(id=42, title='x'))
    assert exc.value.status_code == 404
    assert exc.value.detail == 'Task not found'


async def test_delete(api, seed, server):
    seed('x')
    await api.delete_task(1)
    assert server.state.tasks == {}
    with pytest.raises(ApiStatusError):
        await api.delete_task(1)


async def test_transport_error():
    def handler(request):
        raise httpx.ConnectError('connection refused', request=request)

    async with TasksApi(BASE_URL, transport=httpx.MockTransport(handler)) as api:
        with pytest.raises(ApiTransportError):
            await api.list_tasks()


async def test_non_json_body_is_payload_error():
    def handler(request):
        return httpx.Response(200, text='<html>maintenance</html>')

    async with TasksApi(BASE_URL, transport=httpx.MockTransport(handler)) as api:
        with pytest.raises(ApiPayloadError):
            await api.list_tasks()


async def test_wrong_shape_is_payload_error():
    def handler(request):
        if request.method == 'GET':
            return httpx.Response(200, json={'tasks': []})
        return httpx.Response(200, json={'title': 'no id'})

    async with TasksApi(BASE_URL, transport=httpx.MockTransport(handler)) as api:
        with pytest.raises(ApiPayloadError):
            await api.list_tasks()
        with pytest.raises(ApiPayloadError):
            await api.create_task('x')


async def test_null_description_reads_as_empty():
    def handler(request):
        return httpx.Response(200, json=[{'id': 'a1', 'title': 't', 'description': None}])

    async with TasksApi(BASE_URL, transport=httpx.MockTransport(handler)) as api:
        tasks = await api.list_tasks()
    assert tasks == [Task(id='a1', title='t', description='', completed=False)]
