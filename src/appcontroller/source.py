import dataclasses
import logging
import math
import typing

import anyio

from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus
from lightkube.core import resource as lkr

from .tasks import Task
from .invocation import invoke


__all__ = [
    'EventSource',
]

log = logging.getLogger(__name__)


@dataclasses.dataclass(eq=False)
class EventSource(Task):
    """Turns informer events into workqueue keys.

    Every event received from a connected informer is passed through the
    predicates, then to `handler(event, **kwargs)` which returns the keys to
    add to `queue`.
    """

    queue: object
    resource: lkr.Resource
    handler: typing.Callable
    kwargs: dict = None
    predicates: typing.List[typing.Callable] = None

    def __post_init__(self):
        Task.__init__(self)
        self.kwargs = self.kwargs or {}
        self.predicates = self.predicates or []
        self._task_group = None
        self._informer_streams = {}
        self.tx, self.rx = anyio.create_memory_object_stream(math.inf)

    def __repr__(self):
        api_version = self.resource._api_info.resource.api_version
        kind = self.resource._api_info.resource.kind
        return f'<{self.__class__.__name__} {api_version}/{kind}>'

    async def _accepts(self, event):
        for predicate in self.predicates:
            if not await invoke(predicate, event):
                log.debug('predicate %r prevented event: %r', predicate, event)
                return False
        return True

    async def handle(self, event):
        """Add the keys for a single event to the queue."""
        if not await self._accepts(event):
            return
        try:
            keys = await invoke(self.handler, event, **self.kwargs)
        except Exception:
            log.exception('%r: failed to get keys for %r', self, event)
            return
        for key in keys or ():
            log.debug('%r: adding %r', self, key)
            await self.queue.add(key)

    async def event_stream_handler(self):
        async with self.rx:
            async for event in self.rx:
                log.debug('received event: %r', event)
                await self.handle(event)

    def stop(self):
        self._stop.set()

    def add_informer(self, informer):
        # Create a stream dedicated for the given informer.
        if informer.has_stream(key=self):
            return
        stream = self.tx.clone()
        self._informer_streams[informer] = stream
        informer.add_stream(stream, key=self)

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg

                try:
                    tg.start_soon(self.event_stream_handler)

                    log.debug('started %s', self)
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
                    # Remove our streams from the informers to which we added them.
                    for informer, stream in self._informer_streams.items():
                        informer.remove_stream(key=self)
                        stream.close()
                    self._informer_streams.clear()

        finally:
            log.debug('stopped %s', self)
