import functools
import logging
import signal

import uvloop
import anyio
from anyio import open_signal_receiver
from anyio import TASK_STATUS_IGNORED
from anyio.abc import TaskStatus

from lightkube import AsyncClient as LightkubeAsyncClient

from . import exceptions
from .cache import Cache
from .client import Client
from .config import Config
from .controllers import AppController, ServiceIngressController
from .recorder import EventRecorder
from .scheme import default_scheme
from .tasks import Task


__all__ = [
    'Manager',
]

log = logging.getLogger(__name__)


async def signal_handler(manager):
    with open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            if signum == signal.SIGINT:
                log.info('Ctrl+C pressed!')
            else:
                log.info('Terminated!')

            manager.stop()
            return


class Manager(Task):
    """Wires the cache, the client and the configured controllers together.

    On stop the controllers are stopped first and allowed to finish the
    work they have in flight, then everything else is torn down.
    """

    def __init__(self, config: Config = None, api_client=None):
        super().__init__()
        self.config = config or Config()
        if api_client is None:
            api_client = LightkubeAsyncClient()
        self.api_client = api_client
        self.scheme = default_scheme()
        self.cache = Cache(
            self.api_client,
            namespaces=self.config.namespaces,
            resync_after=self.config.resync_after,
        )
        self.client = Client(self.api_client, self.cache)
        self.recorder = EventRecorder(self.api_client, self.scheme)
        self.controllers = [self._new_controller(name) for name in self.config.controllers]
        self._controllers_done = anyio.Event()

    def __repr__(self):
        names = ', '.join(c.name for c in self.controllers)
        return f'<Manager controllers: {names} {self.cache}>'

    def _new_controller(self, name):
        config = self.config
        components = (self.client, self.cache, self.recorder, self.scheme)
        match name:
            case 'app':
                return AppController(
                    *components,
                    concurrent_reconciles=config.app_workers,
                    update_status=config.update_status,
                )
            case 'service-ingress':
                return ServiceIngressController(
                    *components,
                    concurrent_reconciles=config.ingress_workers,
                    max_retries=config.ingress_max_retries,
                    annotation=config.ingress_annotation,
                    host=config.ingress_host,
                )
        raise ValueError(f'unknown controller: {name}')

    def run(self, debug=False):
        """Run until SIGINT or SIGTERM."""
        anyio.run(
            functools.partial(self, setup_signal_handler=True, debug=debug),
            backend_options={'loop_factory': uvloop.new_event_loop},
        )

    def stop(self):
        log.debug('stop %r', self)
        self._stop.set()

    async def _run_controllers(self, task_status: TaskStatus[None] = TASK_STATUS_IGNORED):
        try:
            async with anyio.create_task_group() as tg:
                # Controllers connect to the informers before those start, so
                # no event of the initial listing is missed.
                for controller in self.controllers:
                    await tg.start(controller)
                task_status.started()

                await self._stop.wait()
                for controller in self.controllers:
                    controller.stop()
        finally:
            self._controllers_done.set()

    async def __call__(
        self, setup_signal_handler=False, debug=False,
        task_status: TaskStatus[None] = TASK_STATUS_IGNORED,
    ):
        log.debug('starting %s', self)

        try:
            async with anyio.create_task_group() as tg:
                if setup_signal_handler:
                    tg.start_soon(signal_handler, self)

                await tg.start(self.recorder)
                await tg.start(self._run_controllers)
                await tg.start(self.cache)

                log.info('started %s', self)
                self._running.set()
                task_status.started()

                await self._controllers_done.wait()
                self.cache.stop()
                self.recorder.stop()
                tg.cancel_scope.cancel()
        except* exceptions.Error as eg:
            if debug:
                raise
            error_messages = []
            for error in exceptions.iterate_errors(eg):
                error_messages.append(str(error))
            raise exceptions.FatalError(' '.join(error_messages)) from eg

        log.info('stopped %s', self)
