import copy
import logging

import anyio

from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus
from lightkube.core import resource as lkr

from ..tasks import Task
from ..exceptions import ObjectNotFound
from ..resources import PartialObjectMetadata
from .informer import Informer
from .store import Store


log = logging.getLogger(__name__)


ALL_NAMESPACES = '*'


def is_namespaced_resource(resource):
    return issubclass(resource, (lkr.NamespacedResource, lkr.NamespacedSubResource))


class Cache(Task):
    """Read-through cache over one informer per watched resource and namespace.

    All informers of a resource share one store. Objects handed out are
    copies, the stores are only ever written by the informers.
    """

    def __init__(self, api_client, namespaces=None, resync_after=None):
        super().__init__()
        self.api_client = api_client
        # No namespaces means all namespaces.
        self.namespaces = set(namespaces or [])
        self.resync_after = resync_after
        self._task_group = None
        self._stores = {}
        self._informers = []

    def __repr__(self):
        resources = {f'{r._api_info.resource.api_version}/{r._api_info.resource.kind}'
                     for r in self._stores}
        namespaces = self.namespaces or ALL_NAMESPACES
        return f'<Cache namespaces: {namespaces} resources: {resources}>'

    def is_watched_resource(self, resource):
        return resource in self._stores

    def _informer_namespaces(self, resource):
        if not is_namespaced_resource(resource):
            return [None]
        if not self.namespaces:
            return [ALL_NAMESPACES]
        return sorted(self.namespaces)

    def register(self, resource):
        """Ensure the given resource is watched and return its store."""
        if resource in self._stores:
            return self._stores[resource]
        store = self._stores[resource] = Store()
        for namespace in self._informer_namespaces(resource):
            kwargs = {}
            if self.resync_after is not None:
                kwargs['resync_after'] = self.resync_after
            informer = Informer(
                self.api_client,
                store,
                resource,
                namespace=namespace,
                **kwargs,
            )
            self._informers.append(informer)
            if self._task_group is not None:
                self._task_group.start_soon(informer)
        return store

    def get_store(self, resource):
        return self._stores[resource]

    def get_informers_by(self, resource=None, namespace=None):
        return [
            informer
            for informer in self._informers
            if all(
                (
                    (namespace is None or informer.namespace == namespace),
                    (resource is None or informer.resource == resource),
                )
            )
        ]

    def has_synced(self):
        """True once every informer completed its initial listing."""
        return all(informer.has_synced for informer in self._informers)

    async def wait_for_cache_sync(self):
        for informer in self._informers:
            await informer
        log.info('caches synced %s', self)

    def stop(self):
        log.debug('stop %r', self)
        self._stop.set()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        log.debug('starting %r', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg

                try:
                    for informer in self._informers:
                        await tg.start(informer)

                    log.info('started %s', self)
                    self._running.set()
                    task_status.started()

                    # Wait until told otherwise.
                    await self._stop.wait()
                    tg.cancel_scope.cancel()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

                finally:
                    log.debug('stopping %s', self)
                    self._task_group = None

        finally:
            log.info('stopped %s', self)

    async def get(self, resource, name, namespace=None):
        """Get a copy of an object from the cache.

        Raises ObjectNotFound if the object is not in the cache.
        """
        store = self.get_store(resource)
        key_obj = PartialObjectMetadata(name, namespace=namespace)
        try:
            obj = store.get(key_obj)
        except KeyError as e:
            raise ObjectNotFound(key_obj) from e
        # Callers may change what we return, the store must stay untouched.
        return copy.deepcopy(obj)
