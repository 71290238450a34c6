"""
Decorators that turn plain annotated classes into lightkube models and
resources, so custom resources can be used with the lightkube client just
like the builtin ones.

```
@crd.model
class FooSpec:
    size: int = 1


@crd.subresource
class FooStatus:
    ready: bool = False


@crd.resource(group='example.com', version='v1')
class Foo:
    metadata: ObjectMeta = None
    spec: FooSpec = None
    status: FooStatus = dataclasses.field(default_factory=FooStatus)
```
"""

import dataclasses

from dataclasses import dataclass
from typing import dataclass_transform

from lightkube.core.schema import DictMixin
from lightkube.core import resource as lkr

from .resources import resource__repr__


_resource_verbs = [
    'delete',
    'deletecollection',
    'get',
    'global_list',
    'global_watch',
    'list',
    'patch',
    'post',
    'put',
    'watch',
]

_subresource_verbs = [
    'get',
    'patch',
    'put',
]


class ModelMixin(DictMixin):
    @classmethod
    def from_dict(cls, d, lazy=True):
        # Custom Resource models can not be lazy.
        if isinstance(d, cls):
            return d
        return super(ModelMixin, cls).from_dict(d, lazy=False)


def _class_dict(cls):
    # Ensure class __dict__ does not contain a nested __dict__ key.
    cls_dict = dict(cls.__dict__)
    cls_dict.pop('__dict__', None)
    cls_dict.pop('__weakref__', None)
    return cls_dict


@dataclass_transform()
def model(cls=None, /):
    def _wrap(cls):
        model = type(cls.__name__, (ModelMixin,), _class_dict(cls))
        if not dataclasses.is_dataclass(model):
            model = dataclass(model)
        return model

    if cls is None:
        return _wrap
    return _wrap(cls)


@dataclass_transform()
def subresource(cls=None, /):
    """Like `model`, but also marks the model as a subresource of its parent."""
    def _wrap(cls):
        sub = model(cls)
        sub.__subresource__ = True
        return sub

    if cls is None:
        return _wrap
    return _wrap(cls)


# @see https://mypy.readthedocs.io/en/stable/additional_features.html
@dataclass_transform()
def resource(
    group,
    version,
    kind=None,
    scope='Namespaced',
    singular=None,
    plural=None,
):
    def _wrap(cls):
        nonlocal kind, singular, plural

        if not kind:
            kind = cls.__name__
        if singular is None:
            singular = kind.lower()
        if plural is None:
            if singular[-1] == 's':
                plural = f'{singular}es'
            else:
                plural = f'{singular}s'

        definition = lkr.ResourceDef(group, version, kind)

        # apiVersion and kind become real fields so they are serialized.
        cls.__annotations__ = {
            'apiVersion': str,
            'kind': str,
            **cls.__annotations__,
        }
        cls.apiVersion = definition.api_version
        cls.kind = kind
        model = dataclass(cls, kw_only=True)
        model_dict = _class_dict(model)

        if scope == 'Cluster':
            bases = (lkr.GlobalResource, ModelMixin)
            status_bases = (lkr.GlobalSubResource, ModelMixin)
        else:
            bases = (lkr.NamespacedResourceG, ModelMixin)
            status_bases = (lkr.NamespacedSubResource, ModelMixin)

        _Resource = type(kind, bases, model_dict)
        _Resource._api_info = lkr.ApiInfo(
            resource=definition,
            plural=plural,
            verbs=_resource_verbs,
        )
        _Resource.__repr__ = resource__repr__

        status = model.__dataclass_fields__.get('status', None)
        if status is not None and getattr(status.type, '__subresource__', False):
            _StatusResource = type(f'{kind}Status', status_bases, model_dict)
            _StatusResource._api_info = lkr.ApiInfo(
                resource=definition,
                parent=definition,
                plural=plural,
                verbs=_subresource_verbs,
                action='status',
            )
            _StatusResource.__repr__ = resource__repr__
            _Resource.Status = _StatusResource

        return _Resource

    return _wrap
