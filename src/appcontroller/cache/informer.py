import dataclasses
import logging
import random

import anyio
import httpx

from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus
from lightkube.core import resource as lkr
from lightkube.core.exceptions import ApiError

from ..exceptions import HttpError
from ..tasks import Task
from ..resources import is_same_version
from .events import CreateEvent, UpdateEvent, DeleteEvent, DeletedFinalStateUnknown


log = logging.getLogger(__name__)


def _default_resync_after():
    # 10 hours + 0..9 minutes, so not all informers relist at once.
    return 10 * 60 * 60 + 60 * random.randint(0, 9)


@dataclasses.dataclass(eq=False)
class Informer(Task):
    """Lists and then watches one kind of resource.

    Keeps `store` in sync with the API server and sends a Create/Update/Delete
    event to every connected stream for each change. The informer counts as
    synced once the first listing completed.
    """

    api_client: object
    store: object
    resource: lkr.Resource
    namespace: str = None
    resync_after: float = dataclasses.field(default_factory=_default_resync_after)
    timeout: float = 60
    retry_delay: float = 1
    resource_version: str = None

    @property
    def api_version(self) -> str:
        return self.resource._api_info.resource.api_version

    @property
    def kind(self) -> str:
        return self.resource._api_info.resource.kind

    def __post_init__(self):
        super().__init__()
        self._task_group = None
        self._streams = {}

    def __repr__(self):
        _out = [f'{self.api_version}/{self.kind}']
        if self.namespace is not None:
            _out.append(self.namespace)
        if self.resource_version:
            _out.append(self.resource_version)
        _s = ' '.join(_out)
        return f'<Informer {_s}>'

    @property
    def has_synced(self):
        return self.is_running

    def add_stream(self, stream, key=None):
        if key is None:
            key = stream
        self._streams[key] = stream

    def has_stream(self, stream=None, key=None):
        if key is None:
            key = stream
        return key in self._streams

    def remove_stream(self, stream=None, key=None):
        if key is None:
            key = stream
        self._streams.pop(key, None)

    def purge_streams(self):
        for stream in self._streams.values():
            stream.close()
        self._streams.clear()

    async def _dispatch(self, event):
        """Send the event to all our streams."""
        # The dict may change while we're sending.
        for key in list(self._streams.keys()):
            stream = self._streams.get(key)
            if stream is None:
                continue
            try:
                await stream.send(event)
            except (anyio.ClosedResourceError, anyio.BrokenResourceError):
                log.debug('%r: dropping closed stream %r', self, key)
                self.remove_stream(key=key)

    async def _add_or_update(self, obj):
        try:
            old = self.store.get(obj)
        except KeyError:
            self.store.add(obj)
            await self._dispatch(CreateEvent(obj))
        else:
            if not is_same_version(obj, old):
                self.store.update(obj)
                await self._dispatch(UpdateEvent(old, obj))

    async def _delete(self, obj):
        self.store.delete(obj)
        await self._dispatch(DeleteEvent(obj))

    def _lists_key(self, key):
        # Informers of other namespaces may share our store.
        if self.namespace in (None, '*'):
            return True
        return self.store.get_by_key(key).metadata.namespace == self.namespace

    async def _list(self):
        log.debug('start listing %s/%s', self.api_version, self.kind)
        known = {key for key in self.store.keys() if self._lists_key(key)}
        listed = set()
        try:
            with anyio.fail_after(self.timeout):
                resource_list = self.api_client.list(
                    self.resource, namespace=self.namespace
                )
                async for obj in resource_list:
                    listed.add(self.store.key_func(obj))
                    await self._process_event('LISTED', obj)
                self.resource_version = getattr(resource_list, 'resourceVersion', None)
        except ApiError:
            raise
        except httpx.HTTPStatusError as e:
            raise HttpError(
                e.request.method,
                e.request.url,
                e.response.status_code,
                message=f'HTTP error while listing {self.api_version}/{self.kind}'
            ) from e
        except TimeoutError as e:
            raise TimeoutError(
                f'TimeoutError while listing {self.api_version}/{self.kind}'
            ) from e

        # Objects we knew about but that are gone now were deleted while
        # we were not watching.
        for key in known - listed:
            obj = self.store.get_by_key(key)
            del self.store[key]
            await self._dispatch(DeleteEvent(DeletedFinalStateUnknown(key, obj)))

        log.debug(
            'done listing %s/%s %s',
            self.api_version,
            self.kind,
            self.resource_version,
        )

    async def _watch(self):
        log.debug(
            'start watching %s/%s %s',
            self.api_version,
            self.kind,
            self.resource_version,
        )
        try:
            async for event, obj in self.api_client.watch(
                self.resource,
                namespace=self.namespace,
                resource_version=self.resource_version,
            ):
                await self._process_event(event, obj)
                self.resource_version = obj.metadata.resourceVersion
        except ApiError:
            raise
        except httpx.HTTPStatusError as e:
            raise HttpError(
                e.request.method,
                e.request.url,
                e.response.status_code,
                message=f'HTTP error while watching {self.api_version}/{self.kind}'
            ) from e

    async def _listwatch(self):
        while True:
            try:
                await self._list()

                # Our store is synced.
                self._running.set()

                if self.resync_after is None:
                    await self._watch()
                else:
                    with anyio.move_on_after(self.resync_after) as scope:
                        await self._watch()
                    if scope.cancelled_caught:
                        log.debug(
                            'resyncing %s/%s %s',
                            self.api_version,
                            self.kind,
                            self.resource_version,
                        )
                        continue

            except (ApiError, HttpError, TimeoutError, httpx.TransportError) as e:
                log.error('%r: list/watch failed: %s', self, e)
            await anyio.sleep(self.retry_delay)

    async def _process_event(self, event, obj):
        match event:
            case 'ADDED' | 'LISTED' | 'MODIFIED':
                await self._add_or_update(obj)
            case 'DELETED':
                await self._delete(obj)
            case _:
                log.warning('%r: ignoring unknown event type %r', self, event)

    def stop(self):
        self._stop.set()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg

                try:
                    tg.start_soon(self._listwatch)
                    task_status.started()

                    # Wait until told otherwise.
                    await self._stop.wait()
                    tg.cancel_scope.cancel()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

                finally:
                    log.debug('stopping %s', self)
                    self.purge_streams()

        finally:
            log.info('stopped %s', self)
