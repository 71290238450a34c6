from dataclasses import dataclass

from lightkube.models import meta_v1


def resource__repr__(self):
    """Short `repr` for resources: `<Object group/version/Kind ns/name rv>`."""
    metadata = self.metadata
    name = getattr(metadata, 'name', None)
    namespace = getattr(metadata, 'namespace', None)
    resource_version = getattr(metadata, 'resourceVersion', None)
    out = [f'{self.apiVersion}/{self.kind}']
    if namespace is not None:
        out.append(f'{namespace}/{name}')
    elif name is not None:
        out.append(f'{name}')
    if resource_version is not None:
        out.append(resource_version)
    ident = ' '.join(out)
    return f'<Object {ident}>'


def is_same_version(o1, o2):
    o1_resource_version = o1.metadata.resourceVersion
    o2_resource_version = o2.metadata.resourceVersion
    return (
        o1_resource_version is not None and o1_resource_version == o2_resource_version
    )


@dataclass
class ObjectMeta(meta_v1.ObjectMeta):
    def __post_init__(self, **kwargs):
        # Set defaults for commonly used nested data structures.
        if self.annotations is None:
            self.annotations = {}
        if self.finalizers is None:
            self.finalizers = []
        if self.labels is None:
            self.labels = {}
        if self.ownerReferences is None:
            self.ownerReferences = []


class PartialObjectMetadata:
    """Just enough of an object to identify it by name and namespace."""

    def __init__(self, name, namespace=None):
        if name is None:
            raise TypeError('PartialObjectMetadata: name can not be None')
        self.metadata = meta_v1.ObjectMeta(name=name, namespace=namespace)

    def __repr__(self):
        if self.metadata.namespace is not None:
            return f'<PartialObjectMetadata {self.metadata.namespace}/{self.metadata.name}>'
        return f'<PartialObjectMetadata {self.metadata.name}>'
