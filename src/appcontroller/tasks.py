import anyio
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus


class Task:
    """A long running component that can be awaited until it is running.

    Subclasses implement `__call__` to run inside a task group and set
    `self._running` once they are ready to serve. `stop()` asks them to
    wind down.
    """

    def __init__(self):
        self._running = anyio.Event()
        self._stop = anyio.Event()

    @property
    def is_running(self):
        return self._running.is_set()

    def __await__(self):
        return self._running.wait().__await__()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        raise NotImplementedError()

    def stop(self):
        raise NotImplementedError()
