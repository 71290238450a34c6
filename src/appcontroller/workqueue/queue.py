import logging

import anyio
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus

from ..tasks import Task

from .limiters import default_controller_rate_limiter


log = logging.getLogger(__name__)


class Queue:
    """FIFO of unique items."""

    def __init__(self):
        self._items = {}

    def push(self, item):
        self._items[item] = None

    def pop(self):
        item = next(iter(self._items))
        del self._items[item]
        return item

    def __contains__(self, item):
        return item in self._items

    def __len__(self):
        return len(self._items)


class Workqueue(Task):
    """Rate limited work queue.

    * An item added several times before it is taken off the queue is
      processed once.
    * An item is never handed to two workers at the same time. If it is
      added again while being processed it is marked dirty and queued
      again once `done` is called for it.
    * `add_rate_limited` re-adds an item after a delay that grows with the
      number of times it failed, `forget` resets that count.

    The queue runs as a task so delayed items can be scheduled in its task
    group. Items added before it runs are buffered and queued at startup.
    """

    def __init__(self, name=None, rate_limiter=None):
        super().__init__()
        self.name = name
        if rate_limiter is None:
            rate_limiter = default_controller_rate_limiter()
        self._rate_limiter = rate_limiter
        self._task_group = None
        self._buffer = []
        self._queue = Queue()
        self._delayed = {}
        self._processing = set()
        self._dirty = set()
        self._shutting_down = False
        self._condition = anyio.Condition()

    def __len__(self):
        return len(self._queue)

    def __repr__(self):
        name = f' {self.name}' if self.name else ''
        return (
            f'<Workqueue{name} queued: {len(self)}, delayed: {len(self._delayed)}, '
            f'dirty: {len(self._dirty)}, processing: {len(self._processing)}>'
        )

    @property
    def shutting_down(self):
        return self._shutting_down

    async def _add(self, item):
        async with self._condition:
            if self._shutting_down:
                return
            if item in self._dirty:
                # Already waiting to be processed.
                return
            self._dirty.add(item)
            if item in self._processing:
                # Requeued by `done`.
                return
            self._queue.push(item)
            self._condition.notify()

    async def add(self, item):
        """Mark item as needing processing."""
        if self.is_running:
            await self._add(item)
        else:
            self._buffer.append(item)

    async def get(self):
        """Block until an item can be processed.

        Returns a tuple `(item, shutting_down)`. Once the queue is shut down
        `(None, True)` is returned and the caller should stop.
        """
        async with self._condition:
            while len(self._queue) == 0 and not self._shutting_down:
                await self._condition.wait()
            if self._shutting_down:
                return None, True
            item = self._queue.pop()
            self._processing.add(item)
            self._dirty.discard(item)
            return item, False

    async def done(self, item):
        """Mark item as done processing.

        If the item was added again while it was being processed, it is
        queued again.
        """
        async with self._condition:
            self._processing.discard(item)
            if item in self._dirty and not self._shutting_down:
                self._queue.push(item)
                self._condition.notify()
            elif not self._processing:
                # Wake up a `shutdown_with_drain`.
                self._condition.notify_all()

    async def _add_after(self, item, delay):
        self._delayed[item] = delay
        try:
            await anyio.sleep(delay)
            await self.add(item)
        finally:
            self._delayed.pop(item, None)

    async def add_after(self, item, delay):
        """Add item once `delay` seconds have passed."""
        if self._shutting_down:
            return
        if delay <= 0 or self._task_group is None:
            await self.add(item)
        else:
            self._task_group.start_soon(self._add_after, item, delay)

    async def add_rate_limited(self, item):
        """Add item once the rate limiter says it is ok."""
        await self.add_after(item, self._rate_limiter.delay(item))

    async def forget(self, item):
        """Stop tracking failures of item."""
        self._rate_limiter.forget(item)

    async def num_requeues(self, item):
        return self._rate_limiter.count(item)

    async def shutdown(self):
        """Stop handing out items and wake up everybody waiting in `get`."""
        async with self._condition:
            log.debug('shutting down %r', self)
            self._shutting_down = True
            self._condition.notify_all()

    async def shutdown_with_drain(self):
        """Shut down, then wait until all items being processed are done."""
        await self.shutdown()
        async with self._condition:
            while self._processing:
                await self._condition.wait()

    def stop(self):
        self._stop.set()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg
                self._running.set()
                while self._buffer:
                    await self._add(self._buffer.pop(0))
                task_status.started()
                await self._stop.wait()
                # Pending delayed adds are dropped.
                tg.cancel_scope.cancel()
        finally:
            self._task_group = None
