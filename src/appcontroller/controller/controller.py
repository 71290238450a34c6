import logging
import typing

import anyio
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus

from lightkube.core import resource as lkr

from ..tasks import Task
from ..workqueue import Workqueue
from ..source import EventSource
from ..exceptions import (
    ApiObjectNotFound,
    ObjectNotFound,
    PermanentError,
)

from .keys import keys_from_event_for_object, keys_from_event_for_owner


log = logging.getLogger(__name__)


class ReconcilerLoggerAdapter(logging.LoggerAdapter):
    """Prefixes the log message with reconcilers number"""

    def process(self, msg, kwargs):
        reconciler = 'reconciler[%i]' % self.extra['num']
        return '%s: %s' % (reconciler, msg), kwargs


class Controller(Task):
    """Runs `reconcile(key)` for keys taken off its workqueue.

    Subclasses implement `reconcile`. The controller watches its own
    resource, more watches are added with `watch` and `watch_owner`
    before it is started.
    """

    client: object
    cache: object
    recorder: object
    scheme: object
    resource: lkr.Resource
    name: str = None
    predicates: typing.List[typing.Callable] = None
    concurrent_reconciles: int = 1
    # None retries forever.
    max_retries: int = None
    wait_for_cache: bool = True

    def __init__(self, client, cache, recorder, scheme, resource,
        name=None, predicates=None,
        concurrent_reconciles=1, max_retries=None, wait_for_cache=True):
        super().__init__()
        self.client = client
        self.cache = cache
        self.recorder = recorder
        self.scheme = scheme
        self.resource = resource
        self.name = name or scheme.kind_of(resource).lower()
        self.predicates = predicates or []
        self.concurrent_reconciles = concurrent_reconciles
        self.max_retries = max_retries
        self.wait_for_cache = wait_for_cache

        self.queue = Workqueue(name=self.name)
        self._event_sources = []
        self._sync_scope = None
        self._workers_done = anyio.Event()

        self.watch(self.resource, keys_from_event_for_object)

    def __repr__(self):
        gvk = self.scheme.gvk_for(self.resource)
        return f'<{self.__class__.__name__} {self.name} {gvk.api_version}/{gvk.kind}>'

    @property
    def event_sources(self):
        return self._event_sources

    def watch(self, resource, handler, predicates=None, **kwargs):
        """Add the keys `handler(event, **kwargs)` returns for events of resource."""
        self.cache.register(resource)
        source = EventSource(
            self.queue,
            resource,
            handler,
            kwargs,
            predicates=[*self.predicates, *(predicates or [])],
        )
        self._event_sources.append(source)
        return source

    def watch_owner(self, resource, predicates=None):
        """Add the key of our resource controlling the objects of resource."""
        return self.watch(
            resource,
            keys_from_event_for_owner,
            predicates=predicates,
            owner=self.resource,
            cache=self.cache,
            scheme=self.scheme,
        )

    async def reconcile(self, key):
        raise NotImplementedError()

    async def _retry(self, key, error, logger):
        requeues = await self.queue.num_requeues(key)
        if self.max_retries is None or requeues <= self.max_retries:
            logger.error("error syncing '%s': %s, requeuing", key, error)
            logger.debug('traceback', exc_info=True)
            await self.queue.add_rate_limited(key)
        else:
            logger.error(
                "dropping '%s' out of the queue after %i retries: %s",
                key,
                requeues,
                error,
            )
            await self.queue.forget(key)

    async def process(self, key, logger=log):
        """Reconcile a single key and tell the queue how it went."""
        try:
            if not isinstance(key, str):
                logger.error('expected string in workqueue but got %r', key)
                await self.queue.forget(key)
                return
            try:
                await self.reconcile(key)
            except ApiObjectNotFound as e:
                # The API server lost an object our cache still knows.
                await self._retry(key, e, logger)
            except ObjectNotFound as e:
                # Gone from the cache, a retry would not find it either.
                logger.debug('%s', e)
                await self.queue.forget(key)
            except PermanentError as e:
                logger.error("error syncing '%s': %s", key, e)
                await self.queue.forget(key)
            except Exception as e:
                await self._retry(key, e, logger)
            else:
                await self.queue.forget(key)
                logger.info("Successfully synced '%s'", key)
        finally:
            logger.debug('done processing %r', key)
            await self.queue.done(key)

    async def _reconciler(self, num):
        logger = ReconcilerLoggerAdapter(log, {'num': num})
        logger.debug('started')
        while True:
            key, shutting_down = await self.queue.get()
            if shutting_down:
                break
            logger.debug('processing %r', key)
            await self.process(key, logger)
        logger.debug('stopped')

    async def _run_reconcilers(self):
        try:
            if self.wait_for_cache:
                scope = self._sync_scope
                with scope:
                    log.info('%s waiting for caches to sync', self)
                    await self.cache.wait_for_cache_sync()
                if scope.cancel_called:
                    return
            log.info('%s starting %i workers', self, self.concurrent_reconciles)
            async with anyio.create_task_group() as tg:
                for num in range(self.concurrent_reconciles):
                    tg.start_soon(self._reconciler, num)
        finally:
            self._workers_done.set()

    def stop(self):
        log.debug('stop %r', self)
        self._stop.set()
        if self._sync_scope is not None:
            self._sync_scope.cancel()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                try:
                    for source in self._event_sources:
                        await tg.start(source)
                        for informer in self.cache.get_informers_by(resource=source.resource):
                            source.add_informer(informer)

                    await tg.start(self.queue)

                    self._sync_scope = anyio.CancelScope()
                    if self._stop.is_set():
                        self._sync_scope.cancel()
                    tg.start_soon(self._run_reconcilers)

                    log.info('started %s', self)
                    self._running.set()
                    task_status.started()

                    # Wait until told otherwise.
                    await self._stop.wait()

                    # No new work, the work in flight is finished.
                    await self.queue.shutdown()
                    await self._workers_done.wait()
                    tg.cancel_scope.cancel()

                except anyio.get_cancelled_exc_class():
                    log.debug('canceled %s', self)
                    raise

                finally:
                    log.debug('stopping %s', self)
                    self._sync_scope = None

        finally:
            log.info('stopped %s', self)
