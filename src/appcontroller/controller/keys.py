"""Workqueue keys and the event handlers that produce them.

A key is the string `namespace/name` (or just `name` for cluster scoped
objects). Handlers get an informer event and return the keys to enqueue.
"""

import logging

from ..cache import DeletedFinalStateUnknown, meta_namespace_key_func
from ..exceptions import InvalidKeyError, ObjectNotFound, StoreKeyError
from ..invocation import nonblocking
from ..ownership import get_controller_of


log = logging.getLogger(__name__)


def key_for_object(obj):
    return meta_namespace_key_func(unwrap_tombstone(obj))


def split_key(key):
    """Split a key into `(namespace, name)`, namespace is None for `name` keys."""
    if not isinstance(key, str):
        raise InvalidKeyError(key)
    parts = key.split('/')
    match parts:
        case [name] if name:
            return None, name
        case [namespace, name] if name:
            return namespace or None, name
    raise InvalidKeyError(key)


def unwrap_tombstone(obj):
    if isinstance(obj, DeletedFinalStateUnknown):
        log.debug('recovered deleted object %r from tombstone', obj.key)
        return obj.obj
    return obj


def _objects_of(event):
    match type(event):
        case event.CreateEvent | event.DeleteEvent:
            return [unwrap_tombstone(event.obj)]
        case event.UpdateEvent:
            return [obj for obj in (event.old, event.new) if obj is not None]
    return []


@nonblocking
def keys_from_event_for_object(event):
    """Enqueue the object itself when it is created or updated."""
    match type(event):
        case event.CreateEvent:
            obj = event.obj
        case event.UpdateEvent:
            obj = event.new
        case _:
            return []
    try:
        return [key_for_object(obj)]
    except StoreKeyError as e:
        log.error('can not create key: %s', e)
        return []


async def keys_from_event_for_owner(event, owner=None, cache=None, scheme=None):
    """Enqueue the object controlling the object of the event.

    Objects without a controller reference, or controlled by some other
    kind, are ignored. So are objects whose controller is not in the cache
    (anymore).
    """
    owner_kind = scheme.kind_of(owner)
    keys = []
    for obj in _objects_of(event):
        ref = get_controller_of(obj)
        if ref is None or ref.kind != owner_kind:
            continue
        namespace = obj.metadata.namespace
        try:
            parent = await cache.get(owner, name=ref.name, namespace=namespace)
        except ObjectNotFound:
            log.debug(
                "ignoring orphaned object '%s/%s' of %s '%s'",
                namespace,
                obj.metadata.name,
                owner_kind,
                ref.name,
            )
            continue
        key = key_for_object(parent)
        if key not in keys:
            keys.append(key)
    return keys


@nonblocking
def ignore_unchanged_updates(event):
    """Predicate dropping updates where old and new object are identical.

    Relists deliver updates that change nothing.
    """
    match type(event):
        case event.UpdateEvent:
            return event.old != event.new
    return True


@nonblocking
def only_deletes(event):
    match type(event):
        case event.DeleteEvent:
            return True
    return False
