from .keys import (
    ignore_unchanged_updates,
    key_for_object,
    keys_from_event_for_object,
    keys_from_event_for_owner,
    only_deletes,
    split_key,
    unwrap_tombstone,
)

from .controller import (
    Controller,
    ReconcilerLoggerAdapter,
)

__all__ = [
    'Controller',
    'ReconcilerLoggerAdapter',
    'ignore_unchanged_updates',
    'key_for_object',
    'keys_from_event_for_object',
    'keys_from_event_for_owner',
    'only_deletes',
    'split_key',
    'unwrap_tombstone',
]
