import pytest

from lightkube.resources.core_v1 import Service

from appcontroller.cache import (
    CreateEvent,
    DeletedFinalStateUnknown,
    DeleteEvent,
    UpdateEvent,
)
from appcontroller.controller import (
    ignore_unchanged_updates,
    key_for_object,
    keys_from_event_for_object,
    keys_from_event_for_owner,
    only_deletes,
    split_key,
)
from appcontroller.exceptions import InvalidKeyError, PermanentError
from appcontroller.resources import App

from factories import make_app, make_ingress, make_service, owner_ref


@pytest.mark.parametrize(
    'key, expected',
    [
        ('ns/name', ('ns', 'name')),
        ('name', (None, 'name')),
        ('/name', (None, 'name')),
    ],
)
def test_split_key(key, expected):
    assert split_key(key) == expected


@pytest.mark.parametrize('key', ['', 'ns/', 'a/b/c', None, 42, ('ns', 'name')])
def test_split_invalid_key(key):
    with pytest.raises(InvalidKeyError) as exc_info:
        split_key(key)
    assert isinstance(exc_info.value, PermanentError)


def test_key_for_object_unwraps_tombstones():
    svc = make_service('a')
    assert key_for_object(svc) == 'ns/a'
    assert key_for_object(DeletedFinalStateUnknown('ns/a', svc)) == 'ns/a'


def test_keys_from_event_for_object():
    old, new = make_service('a'), make_service('b')
    assert keys_from_event_for_object(CreateEvent(old)) == ['ns/a']
    assert keys_from_event_for_object(UpdateEvent(old, new)) == ['ns/b']
    assert keys_from_event_for_object(DeleteEvent(old)) == []


@pytest.fixture
async def owner_cache(cache):
    cache.register(App)
    cache.register(Service)
    cache.get_store(App).add(make_app('app1'))
    cache.get_store(Service).add(make_service('svc1'))
    return cache


@pytest.mark.anyio
async def test_keys_from_event_for_owner(owner_cache, scheme):
    child = make_service('child', owner=owner_ref('App', 'app1'))
    for event in (
        CreateEvent(child),
        UpdateEvent(child, child),
        DeleteEvent(child),
        DeleteEvent(DeletedFinalStateUnknown('ns/child', child)),
    ):
        keys = await keys_from_event_for_owner(
            event, owner=App, cache=owner_cache, scheme=scheme
        )
        assert keys == ['ns/app1']


@pytest.mark.anyio
async def test_keys_from_event_for_owner_follows_old_and_new(owner_cache, scheme):
    owner_cache.get_store(App).add(make_app('app2', uid='uid-app2'))
    old = make_service('child', owner=owner_ref('App', 'app1'))
    new = make_service('child', owner=owner_ref('App', 'app2'))
    keys = await keys_from_event_for_owner(
        UpdateEvent(old, new), owner=App, cache=owner_cache, scheme=scheme
    )
    assert keys == ['ns/app1', 'ns/app2']


@pytest.mark.anyio
@pytest.mark.parametrize(
    'owner',
    [
        None,
        owner_ref('App', 'app1', controller=False),
        owner_ref('Service', 'app1', api_version='v1'),
        # Not in the cache.
        owner_ref('App', 'orphan'),
    ],
)
async def test_keys_from_event_for_owner_ignores(owner_cache, scheme, owner):
    child = make_service('child', owner=owner)
    keys = await keys_from_event_for_owner(
        CreateEvent(child), owner=App, cache=owner_cache, scheme=scheme
    )
    assert keys == []


@pytest.mark.anyio
async def test_deleted_ingress_enqueues_its_service(owner_cache, scheme):
    ingress = make_ingress('svc1', owner=owner_ref('Service', 'svc1', api_version='v1'))
    keys = await keys_from_event_for_owner(
        DeleteEvent(ingress), owner=Service, cache=owner_cache, scheme=scheme
    )
    assert keys == ['ns/svc1']


def test_ignore_unchanged_updates():
    a = make_service('a')
    changed = make_service('a', annotations={'ingress/http': 'true'})
    assert ignore_unchanged_updates(CreateEvent(a))
    assert not ignore_unchanged_updates(UpdateEvent(a, make_service('a')))
    assert ignore_unchanged_updates(UpdateEvent(a, changed))


def test_only_deletes():
    a = make_service('a')
    assert only_deletes(DeleteEvent(a))
    assert not only_deletes(CreateEvent(a))
    assert not only_deletes(UpdateEvent(a, a))
