"""Owner references between child objects and the objects controlling them.

An owner reference is a back-link from a child to its owner, identified by
apiVersion, kind, name and uid. It is only ever compared, never followed.
"""

from lightkube.models.meta_v1 import OwnerReference

from .scheme import GroupVersionKind


__all__ = [
    'get_controller_of',
    'is_controlled_by',
    'set_controller_reference',
    'set_owner_reference',
]


def _group(api_version):
    group, _, _ = (api_version or '').rpartition('/')
    return group


def get_controller_of(obj):
    """Return the owner reference marked as controller, or None."""
    metadata = getattr(obj, 'metadata', None)
    refs = getattr(metadata, 'ownerReferences', None) or []
    for ref in refs:
        if ref.controller:
            return ref
    return None


def is_controlled_by(obj, owner, gvk: GroupVersionKind) -> bool:
    """Check that `owner` is the controller of `obj`.

    The reference has to match the owner's group, kind and name, and its uid
    when both sides have one. Owner references never cross namespaces.
    """
    ref = get_controller_of(obj)
    if ref is None:
        return False
    if obj.metadata.namespace != owner.metadata.namespace:
        return False
    if (_group(ref.apiVersion), ref.kind, ref.name) != (gvk.group, gvk.kind, owner.metadata.name):
        return False
    if ref.uid and owner.metadata.uid:
        return ref.uid == owner.metadata.uid
    return True


def set_owner_reference(
    owner, subject, gvk: GroupVersionKind, block_owner_deletion=False, controller=False
):
    if subject.metadata.ownerReferences is None:
        subject.metadata.ownerReferences = []
    if controller:
        existing = get_controller_of(subject)
        if existing is not None:
            raise ValueError(
                f'{subject.metadata.name} is already controlled by {existing.kind} {existing.name}'
            )
    ref = OwnerReference(
        apiVersion=gvk.api_version,
        kind=gvk.kind,
        name=owner.metadata.name,
        uid=owner.metadata.uid,
        blockOwnerDeletion=block_owner_deletion,
        controller=controller,
    )
    subject.metadata.ownerReferences.append(ref)
    return ref


def set_controller_reference(owner, subject, gvk: GroupVersionKind):
    """Mark `owner` as the controller of `subject`."""
    return set_owner_reference(
        owner,
        subject,
        gvk,
        block_owner_deletion=True,
        controller=True,
    )
