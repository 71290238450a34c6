import contextlib

import anyio
import pytest

from appcontroller.recorder import EVENT_NORMAL, EVENT_WARNING, EventRecorder

from factories import make_app
from fakes import api_error


@contextlib.asynccontextmanager
async def running(recorder):
    async with anyio.create_task_group() as tg:
        await tg.start(recorder)
        yield recorder
        recorder.stop()


@pytest.mark.anyio
async def test_record_creates_event(api_client, scheme):
    app = make_app('app1', uid='uid-app1')
    async with running(EventRecorder(api_client, scheme)) as recorder:
        recorder.record(app, EVENT_NORMAL, 'Synced', 'App synced successfully')
        await anyio.wait_all_tasks_blocked()

    (event,) = api_client.calls_of('create', kind='Event')
    assert event.metadata.namespace == 'ns'
    assert event.metadata.name.startswith('app1.')
    involved = event.involvedObject
    assert (involved.apiVersion, involved.kind, involved.name, involved.uid) == (
        'appcontroller.k8s.io/v1',
        'App',
        'app1',
        'uid-app1',
    )
    assert (event.type, event.reason, event.message) == (
        'Normal',
        'Synced',
        'App synced successfully',
    )
    assert event.source.component == 'appcontroller'
    assert event.count == 1


@pytest.mark.anyio
async def test_failures_are_not_raised(api_client, scheme):
    api_client.errors['create'] = [api_error(403, 'Forbidden', method='POST')]
    app = make_app()
    async with running(EventRecorder(api_client, scheme, component='test')) as recorder:
        recorder.record(app, EVENT_WARNING, 'ErrResourceExists', 'first')
        await anyio.wait_all_tasks_blocked()
        recorder.record(app, EVENT_WARNING, 'ErrResourceExists', 'second')
        await anyio.wait_all_tasks_blocked()

    assert [e.message for e in api_client.calls_of('create')] == ['first', 'second']


@pytest.mark.anyio
async def test_events_are_dropped_when_not_running(api_client, scheme):
    recorder = EventRecorder(api_client, scheme)
    recorder.record(make_app(), EVENT_NORMAL, 'Synced', 'App synced successfully')
    assert api_client.calls == []


@pytest.mark.anyio
async def test_unexpected_errors_do_not_stop_the_recorder(api_client, scheme):
    api_client.errors['create'] = [RuntimeError('boom')]
    app = make_app()
    async with running(EventRecorder(api_client, scheme)) as recorder:
        recorder.record(app, EVENT_NORMAL, 'Synced', 'first')
        await anyio.wait_all_tasks_blocked()
        assert recorder.is_running
        recorder.record(app, EVENT_NORMAL, 'Synced', 'second')
        await anyio.wait_all_tasks_blocked()

    assert [e.message for e in api_client.calls_of('create')] == ['first', 'second']
    assert [e.message for e in api_client.objects.values()] == ['second']
