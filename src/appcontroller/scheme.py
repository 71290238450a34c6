import dataclasses
import types

from collections.abc import Mapping

from lightkube.core import resource as lkr
from lightkube.resources.apps_v1 import Deployment
from lightkube.resources.core_v1 import Service
from lightkube.resources.networking_v1 import Ingress

from .exceptions import ResourceNotRegistered
from .resources import App


__all__ = [
    'GroupVersionKind',
    'Scheme',
    'default_scheme',
]


@dataclasses.dataclass(frozen=True)
class GroupVersionKind:
    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        if self.group:
            return f'{self.group}/{self.version}'
        return self.version

    def __str__(self):
        return f'{self.api_version}/{self.kind}'

    @classmethod
    def from_api_version(cls, api_version, kind):
        group, _, version = api_version.rpartition('/')
        return cls(group, version, kind)


class Scheme(Mapping):
    """Maps kinds to resource classes and back.

    Built once at startup and read-only afterwards, then handed to
    everything that needs to know which apiVersion/kind an object has.
    """

    def __init__(self, *resources):
        by_gvk = {}
        by_resource = {}
        for resource in resources:
            info = lkr.api_info(resource).resource
            gvk = GroupVersionKind(info.group, info.version, info.kind)
            by_gvk[gvk] = resource
            by_resource[resource] = gvk
        self._by_gvk = types.MappingProxyType(by_gvk)
        self._by_resource = types.MappingProxyType(by_resource)

    def __repr__(self):
        kinds = ', '.join(str(gvk) for gvk in self._by_gvk)
        return f'<Scheme {kinds}>'

    def __getitem__(self, gvk):
        return self._by_gvk[gvk]

    def __iter__(self):
        return iter(self._by_gvk)

    def __len__(self):
        return len(self._by_gvk)

    def gvk_for(self, resource_or_obj) -> GroupVersionKind:
        """Return the GroupVersionKind of a resource class or an instance of one."""
        resource = resource_or_obj
        if not isinstance(resource, type):
            resource = type(resource)
        try:
            return self._by_resource[resource]
        except KeyError as e:
            raise ResourceNotRegistered(f'{resource.__name__} is not registered') from e

    def kind_of(self, resource_or_obj) -> str:
        return self.gvk_for(resource_or_obj).kind

    def resource_for(self, api_version, kind):
        gvk = GroupVersionKind.from_api_version(api_version, kind)
        try:
            return self._by_gvk[gvk]
        except KeyError as e:
            raise ResourceNotRegistered(f'{gvk} is not registered') from e


def default_scheme():
    """The scheme of every kind the controllers in this package work with."""
    return Scheme(App, Deployment, Service, Ingress)
