"""Desired state of the objects the controllers create.

Everything here is a pure function of its arguments. The objects returned
carry a controller owner reference to the object they are built for.
"""

from lightkube.models.apps_v1 import DeploymentSpec
from lightkube.models.core_v1 import (
    Container,
    PodSpec,
    PodTemplateSpec,
    ServicePort,
    ServiceSpec,
)
from lightkube.models.meta_v1 import LabelSelector, ObjectMeta
from lightkube.models.networking_v1 import (
    HTTPIngressPath,
    HTTPIngressRuleValue,
    IngressBackend,
    IngressRule,
    IngressServiceBackend,
    IngressSpec,
    ServiceBackendPort,
)
from lightkube.resources.apps_v1 import Deployment
from lightkube.resources.core_v1 import Service
from lightkube.resources.networking_v1 import Ingress

from ..ownership import set_controller_reference
from ..resources import AppStatus


__all__ = [
    'app_labels',
    'new_app_status',
    'new_default_ingress',
    'new_deployment',
    'new_ingress',
    'new_service',
]


HTTP_PORT = 80


def app_labels(app):
    """Labels of the pods of an App, also used to select them."""
    return {
        'app': 'app',
        'controller': app.metadata.name,
    }


def _meta(name, owner, gvk, child):
    child.metadata = ObjectMeta(name=name, namespace=owner.metadata.namespace)
    set_controller_reference(owner, child, gvk)
    return child


def _http_rule(host, service_name):
    return IngressRule(
        host=host,
        http=HTTPIngressRuleValue(
            paths=[
                HTTPIngressPath(
                    path='/',
                    pathType='Prefix',
                    backend=IngressBackend(
                        service=IngressServiceBackend(
                            name=service_name,
                            port=ServiceBackendPort(number=HTTP_PORT),
                        ),
                    ),
                ),
            ],
        ),
    )


def new_deployment(app, gvk):
    spec = app.spec.deployment
    labels = app_labels(app)
    deployment = Deployment(
        spec=DeploymentSpec(
            replicas=spec.replicas,
            selector=LabelSelector(matchLabels=dict(labels)),
            template=PodTemplateSpec(
                metadata=ObjectMeta(labels=dict(labels)),
                spec=PodSpec(
                    containers=[
                        Container(name=spec.name, image=spec.image),
                    ],
                ),
            ),
        ),
    )
    return _meta(spec.name, app, gvk, deployment)


def new_service(app, gvk):
    service = Service(
        spec=ServiceSpec(
            selector=app_labels(app),
            ports=[
                ServicePort(protocol='TCP', port=HTTP_PORT, targetPort=HTTP_PORT),
            ],
        ),
    )
    return _meta(app.spec.service.name, app, gvk, service)


def new_ingress(app, gvk):
    spec = app.spec.ingress
    ingress = Ingress(
        spec=IngressSpec(
            rules=[_http_rule(spec.hostname, app.spec.service.name)],
        ),
    )
    return _meta(spec.name, app, gvk, ingress)


def new_default_ingress(service, host, gvk):
    """Ingress routing `host` to port 80 of service, named like the service."""
    ingress = Ingress(
        spec=IngressSpec(
            rules=[_http_rule(host, service.metadata.name)],
        ),
    )
    return _meta(service.metadata.name, service, gvk, ingress)


def new_app_status(app, deployment):
    status = deployment.status
    available = getattr(status, 'availableReplicas', None) or 0
    return AppStatus(availableReplicas=available)
