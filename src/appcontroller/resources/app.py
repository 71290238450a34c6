from dataclasses import field

from . import crd
from .resources import ObjectMeta


@crd.model
class AppDeploymentSpec:
    """The workload the App runs."""

    name: str = None
    image: str = None
    replicas: int = None


@crd.model
class AppServiceSpec:
    """The service exposing the workload inside the cluster."""

    name: str = None


@crd.model
class AppIngressSpec:
    """The ingress routing `hostname` to the service."""

    name: str = None
    hostname: str = None


@crd.model
class AppSpec:
    """AppSpec defines the desired state of an App.

    Each section is optional, a missing section or name elides that child.
    """

    deployment: AppDeploymentSpec = None
    service: AppServiceSpec = None
    ingress: AppIngressSpec = None


@crd.subresource
class AppStatus:
    """AppStatus is derived from the observed state of the App's children."""

    availableReplicas: int = 0


@crd.resource(
    group='appcontroller.k8s.io',
    version='v1',
    scope='Namespaced',
)
class App:
    """App declares a deployment, a service and an ingress."""

    metadata: ObjectMeta = None
    spec: AppSpec = field(default_factory=AppSpec)
    status: AppStatus = field(default_factory=AppStatus)
