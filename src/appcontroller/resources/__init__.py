from .resources import (
    ObjectMeta,
    PartialObjectMetadata,
    is_same_version,
    resource__repr__,
)
from . import crd
from .app import (
    App,
    AppDeploymentSpec,
    AppIngressSpec,
    AppServiceSpec,
    AppSpec,
    AppStatus,
)

__all__ = [
    'App',
    'AppDeploymentSpec',
    'AppIngressSpec',
    'AppServiceSpec',
    'AppSpec',
    'AppStatus',
    'ObjectMeta',
    'PartialObjectMetadata',
    'crd',
    'is_same_version',
    'resource__repr__',
]
