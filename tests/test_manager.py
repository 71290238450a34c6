import anyio
import pytest

from appcontroller.config import Config
from appcontroller.controllers import AppController, ServiceIngressController
from appcontroller.manager import Manager

from factories import make_app, make_service


async def wait_for(predicate):
    with anyio.fail_after(2):
        while not predicate():
            await anyio.sleep(0.01)


@pytest.mark.anyio
async def test_manager_builds_configured_controllers(api_client):
    manager = Manager(Config(controllers=['service-ingress'], ingress_workers=2), api_client=api_client)
    (controller,) = manager.controllers
    assert isinstance(controller, ServiceIngressController)
    assert controller.concurrent_reconciles == 2

    manager = Manager(Config(update_status=True, app_workers=4), api_client=api_client)
    app_controller, ingress_controller = manager.controllers
    assert isinstance(app_controller, AppController)
    assert app_controller.update_status is True
    assert app_controller.concurrent_reconciles == 4
    assert isinstance(ingress_controller, ServiceIngressController)


@pytest.mark.anyio
async def test_manager_reconciles_existing_objects(api_client):
    api_client.add(make_app('app1', deployment='app1-dep', replicas=2, service='svc1'))
    api_client.add(make_service('web', annotations={'ingress/http': ''}))
    manager = Manager(Config(), api_client=api_client)

    async with anyio.create_task_group() as tg:
        await tg.start(manager)

        def created(kind):
            return [obj.metadata.name for obj in api_client.calls_of('create', kind=kind)]

        await wait_for(lambda: created('Event') and created('Ingress'))
        assert created('Deployment') == ['app1-dep']
        assert created('Service') == ['svc1']
        assert created('Ingress') == ['web']

        manager.stop()
