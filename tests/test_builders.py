from lightkube.models.apps_v1 import DeploymentStatus

from appcontroller.controllers.builders import (
    app_labels,
    new_app_status,
    new_default_ingress,
    new_deployment,
    new_ingress,
    new_service,
)
from appcontroller.ownership import is_controlled_by
from appcontroller.resources import App, AppStatus
from appcontroller.scheme import GroupVersionKind

from factories import make_app, make_service


APP_GVK = GroupVersionKind('appcontroller.k8s.io', 'v1', 'App')
SERVICE_GVK = GroupVersionKind('', 'v1', 'Service')


def full_app(replicas=2):
    return make_app(
        'app1',
        deployment='app1-dep',
        replicas=replicas,
        service='svc1',
        ingress=('ing1', 'app.example.com'),
    )


def test_new_deployment():
    app = full_app()
    deployment = new_deployment(app, APP_GVK)
    assert (deployment.metadata.namespace, deployment.metadata.name) == ('ns', 'app1-dep')
    assert deployment.spec.replicas == 2
    assert deployment.spec.selector.matchLabels == {'app': 'app', 'controller': 'app1'}
    assert deployment.spec.template.metadata.labels == app_labels(app)
    (container,) = deployment.spec.template.spec.containers
    assert (container.name, container.image) == ('app1-dep', 'nginx')
    assert is_controlled_by(deployment, app, APP_GVK)


def test_new_deployment_without_replicas():
    deployment = new_deployment(full_app(replicas=None), APP_GVK)
    assert deployment.spec.replicas is None


def test_service_selects_the_deployment_pods():
    app = full_app()
    service = new_service(app, APP_GVK)
    assert service.metadata.name == 'svc1'
    assert service.spec.selector == new_deployment(app, APP_GVK).spec.template.metadata.labels
    (port,) = service.spec.ports
    assert (port.protocol, port.port, port.targetPort) == ('TCP', 80, 80)
    assert is_controlled_by(service, app, APP_GVK)


def test_new_ingress_routes_to_the_service():
    app = full_app()
    ingress = new_ingress(app, APP_GVK)
    assert ingress.metadata.name == 'ing1'
    (rule,) = ingress.spec.rules
    assert rule.host == 'app.example.com'
    (path,) = rule.http.paths
    assert (path.path, path.pathType) == ('/', 'Prefix')
    assert path.backend.service.name == 'svc1'
    assert path.backend.service.port.number == 80
    assert is_controlled_by(ingress, app, APP_GVK)


def test_new_default_ingress():
    service = make_service('svc1', uid='uid-svc1')
    ingress = new_default_ingress(service, 'example.com', SERVICE_GVK)
    assert (ingress.metadata.namespace, ingress.metadata.name) == ('ns', 'svc1')
    (ref,) = ingress.metadata.ownerReferences
    assert (ref.apiVersion, ref.kind, ref.name, ref.controller) == ('v1', 'Service', 'svc1', True)
    path = ingress.spec.rules[0].http.paths[0]
    assert ingress.spec.rules[0].host == 'example.com'
    assert (path.path, path.backend.service.name, path.backend.service.port.number) == ('/', 'svc1', 80)


def test_builders_do_not_touch_the_app():
    app = full_app()
    before = app.to_dict()
    new_deployment(app, APP_GVK)
    new_service(app, APP_GVK)
    new_ingress(app, APP_GVK)
    assert app.to_dict() == before


def test_new_app_status():
    app = full_app()
    deployment = new_deployment(app, APP_GVK)
    assert new_app_status(app, deployment) == AppStatus(availableReplicas=0)
    deployment.status = DeploymentStatus(availableReplicas=2)
    assert new_app_status(app, deployment) == AppStatus(availableReplicas=2)


def test_app_model():
    app = App.from_dict({
        'apiVersion': 'appcontroller.k8s.io/v1',
        'kind': 'App',
        'metadata': {'name': 'app1', 'namespace': 'ns'},
        'spec': {'deployment': {'name': 'app1-dep', 'image': 'nginx', 'replicas': 3}},
    })
    assert app.spec.deployment.replicas == 3
    assert app.spec.service is None
    assert app.status == AppStatus()
    assert app.to_dict()['kind'] == 'App'
    assert repr(app) == '<Object appcontroller.k8s.io/v1/App ns/app1>'
