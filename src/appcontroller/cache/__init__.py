from .events import (
    CreateEvent,
    DeletedFinalStateUnknown,
    DeleteEvent,
    Event,
    UpdateEvent,
)
from .store import Store, meta_namespace_key_func
from .informer import Informer
from .cache import Cache, ALL_NAMESPACES

__all__ = [
    'ALL_NAMESPACES',
    'Cache',
    'CreateEvent',
    'DeleteEvent',
    'DeletedFinalStateUnknown',
    'Event',
    'Informer',
    'Store',
    'UpdateEvent',
    'meta_namespace_key_func',
]
