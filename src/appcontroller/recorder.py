import datetime
import logging
import time

import anyio
import httpx

from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus
from lightkube.core.exceptions import ApiError
from lightkube.models.core_v1 import EventSource as EventSourceModel, ObjectReference
from lightkube.models.meta_v1 import ObjectMeta
from lightkube.resources.core_v1 import Event

from .tasks import Task


__all__ = [
    'EVENT_NORMAL',
    'EVENT_WARNING',
    'EventRecorder',
]

log = logging.getLogger(__name__)


EVENT_NORMAL = 'Normal'
EVENT_WARNING = 'Warning'


class EventRecorder(Task):
    """Attaches notices to objects as core/v1 Events.

    `record` returns immediately, the Event is created in the background.
    A notice that can not be written is logged and otherwise lost.
    """

    def __init__(self, api_client, scheme, component='appcontroller'):
        super().__init__()
        self.api_client = api_client
        self.scheme = scheme
        self.component = component
        self._task_group = None

    def __repr__(self):
        return f'<EventRecorder {self.component}>'

    def new_event(self, obj, type, reason, message):
        gvk = self.scheme.gvk_for(obj)
        metadata = obj.metadata
        now = datetime.datetime.now(datetime.timezone.utc)
        return Event(
            metadata=ObjectMeta(
                name=f'{metadata.name}.{time.time_ns():x}',
                namespace=metadata.namespace or 'default',
            ),
            involvedObject=ObjectReference(
                apiVersion=gvk.api_version,
                kind=gvk.kind,
                name=metadata.name,
                namespace=metadata.namespace,
                uid=metadata.uid,
                resourceVersion=metadata.resourceVersion,
            ),
            reason=reason,
            message=message,
            type=type,
            source=EventSourceModel(component=self.component),
            reportingComponent=self.component,
            firstTimestamp=now,
            lastTimestamp=now,
            count=1,
        )

    def record(self, obj, type, reason, message):
        """Record a notice of the given type (Normal or Warning) for obj."""
        log.info(
            'event: %s/%s %s %s: %s',
            obj.metadata.namespace,
            obj.metadata.name,
            type,
            reason,
            message,
        )
        event = self.new_event(obj, type, reason, message)
        if self._task_group is None:
            log.debug('%r not running, dropping event %s', self, event.metadata.name)
            return
        self._task_group.start_soon(self._create, event)

    async def _create(self, event):
        try:
            await self.api_client.create(event)
        except (ApiError, httpx.HTTPError) as e:
            log.warning('failed to write event %s: %s', event.metadata.name, e)
        except Exception:
            # Notices never take the recorder down.
            log.exception('failed to write event %s', event.metadata.name)

    def stop(self):
        self._stop.set()

    async def __call__(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        log.debug('starting %s', self)
        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg
                self._running.set()
                task_status.started()
                # Events still being written when we are told to stop
                # get their chance to finish.
                await self._stop.wait()
        finally:
            self._task_group = None
            log.debug('stopped %s', self)
