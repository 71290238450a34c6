import contextlib

import anyio
import pytest

from lightkube.resources.core_v1 import Service

from appcontroller.controller import Controller
from appcontroller.exceptions import ApiObjectNotFound, ObjectNotFound, PermanentError
from appcontroller.resources import PartialObjectMetadata


class RecordingController(Controller):
    def __init__(self, *args, handler=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.handler = handler
        self.calls = []

    async def reconcile(self, key):
        self.calls.append(key)
        if self.handler is not None:
            await self.handler(key)


@pytest.fixture
def new_controller(client, cache, recorder, scheme):
    def _new_controller(**kwargs):
        kwargs.setdefault('wait_for_cache', False)
        return RecordingController(client, cache, recorder, scheme, Service, **kwargs)
    return _new_controller


@contextlib.asynccontextmanager
async def running(task):
    async with anyio.create_task_group() as tg:
        await tg.start(task)
        yield task
        task.stop()


async def fail(key):
    raise RuntimeError('boom')


@pytest.mark.anyio
async def test_success_forgets_failures(new_controller):
    controller = new_controller()
    async with running(controller.queue) as queue:
        await queue.add_rate_limited('ns/a')
        await controller.process('ns/a')
        assert controller.calls == ['ns/a']
        assert await queue.num_requeues('ns/a') == 0


@pytest.mark.anyio
async def test_failure_is_requeued_with_backoff(new_controller):
    controller = new_controller(handler=fail)
    async with running(controller.queue) as queue:
        await controller.process('ns/a')
        assert await queue.num_requeues('ns/a') == 1
        with anyio.fail_after(1):
            assert await queue.get() == ('ns/a', False)


@pytest.mark.anyio
async def test_failures_are_retried_forever_by_default(new_controller):
    controller = new_controller(handler=fail)
    async with running(controller.queue) as queue:
        for _ in range(20):
            await controller.process('ns/a')
        assert await queue.num_requeues('ns/a') == 20


@pytest.mark.anyio
async def test_retries_are_bounded_by_max_retries(new_controller):
    controller = new_controller(handler=fail, max_retries=1)
    async with running(controller.queue) as queue:
        await controller.process('ns/a')
        await controller.process('ns/a')
        assert await queue.num_requeues('ns/a') == 2
        # Given up on.
        await controller.process('ns/a')
        assert await queue.num_requeues('ns/a') == 0


@pytest.mark.anyio
@pytest.mark.parametrize(
    'error',
    [
        PermanentError('can not handle this'),
        ObjectNotFound(PartialObjectMetadata('a', namespace='ns')),
    ],
)
async def test_errors_that_are_not_retried(new_controller, error):
    async def raise_error(key):
        raise error

    controller = new_controller(handler=raise_error)
    async with running(controller.queue) as queue:
        await controller.process('ns/a')
        assert await queue.num_requeues('ns/a') == 0
        assert len(queue) == 0


@pytest.mark.anyio
async def test_not_found_from_the_api_server_is_retried(new_controller):
    async def raise_not_found(key):
        raise ApiObjectNotFound(Service, 'a', namespace='ns')

    controller = new_controller(handler=raise_not_found)
    async with running(controller.queue) as queue:
        await controller.process('ns/a')
        assert await queue.num_requeues('ns/a') == 1


@pytest.mark.anyio
async def test_invalid_keys_are_dropped(new_controller):
    controller = new_controller()
    async with running(controller.queue) as queue:
        await controller.process(42)
        assert controller.calls == []
        assert await queue.num_requeues(42) == 0


@pytest.mark.anyio
async def test_key_is_never_reconciled_concurrently(new_controller):
    in_flight = set()
    overlaps = []
    started = anyio.Event()
    release = anyio.Event()

    async def slow(key):
        if key in in_flight:
            overlaps.append(key)
        in_flight.add(key)
        try:
            started.set()
            await release.wait()
        finally:
            in_flight.discard(key)

    controller = new_controller(handler=slow, concurrent_reconciles=2)
    async with running(controller):
        await controller.queue.add('ns/a')
        with anyio.fail_after(1):
            await started.wait()
        await controller.queue.add('ns/a')
        await anyio.wait_all_tasks_blocked()
        # Deferred until the first run is done.
        assert controller.calls == ['ns/a']

        release.set()
        with anyio.fail_after(1):
            while len(controller.calls) < 2:
                await anyio.sleep(0.01)

    assert overlaps == []
    assert controller.calls == ['ns/a', 'ns/a']


@pytest.mark.anyio
async def test_distinct_keys_run_in_parallel(new_controller):
    both_running = anyio.Event()
    in_flight = set()

    async def handler(key):
        in_flight.add(key)
        if len(in_flight) == 2:
            both_running.set()
        await both_running.wait()

    controller = new_controller(handler=handler, concurrent_reconciles=2)
    async with running(controller):
        await controller.queue.add('ns/a')
        await controller.queue.add('ns/b')
        with anyio.fail_after(1):
            await both_running.wait()


@pytest.mark.anyio
async def test_stop_lets_work_in_flight_finish(new_controller):
    started = anyio.Event()
    release = anyio.Event()
    finished = []

    async def slow(key):
        started.set()
        await release.wait()
        finished.append(key)

    controller = new_controller(handler=slow)
    # Added before the controller runs.
    await controller.queue.add('ns/a')
    async with anyio.create_task_group() as tg:
        await tg.start(controller)
        with anyio.fail_after(1):
            await started.wait()
        controller.stop()
        await anyio.wait_all_tasks_blocked()
        assert finished == []
        release.set()
    assert finished == ['ns/a']


@pytest.mark.anyio
async def test_workers_wait_for_cache_sync(new_controller):
    controller = new_controller(wait_for_cache=True)
    await controller.queue.add('ns/a')
    with anyio.fail_after(1):
        async with running(controller):
            # Nothing lists, the cache never syncs.
            await anyio.wait_all_tasks_blocked()
            assert controller.calls == []
    assert controller.calls == []
