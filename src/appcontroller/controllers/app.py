import logging

from lightkube.resources.apps_v1 import Deployment
from lightkube.resources.core_v1 import Service
from lightkube.resources.networking_v1 import Ingress

from ..controller import Controller, split_key
from ..exceptions import ApiObjectAlreadyExists, ObjectNotFound, ResourceExistsError
from ..ownership import is_controlled_by
from ..recorder import EVENT_NORMAL, EVENT_WARNING
from ..resources import App

from .builders import new_app_status, new_deployment, new_ingress, new_service


__all__ = [
    'AppController',
    'ERR_RESOURCE_EXISTS',
    'MESSAGE_RESOURCE_EXISTS',
    'MESSAGE_RESOURCE_SYNCED',
    'SUCCESS_SYNCED',
]

log = logging.getLogger(__name__)


# Reason of the Event recorded when an App was synced.
SUCCESS_SYNCED = 'Synced'
# Reason of the Event recorded when a child of an App exists but is not
# controlled by it.
ERR_RESOURCE_EXISTS = 'ErrResourceExists'

MESSAGE_RESOURCE_EXISTS = 'Resource "%s" already exists and is not managed by App'
MESSAGE_RESOURCE_SYNCED = 'App synced successfully'


class AppController(Controller):
    """Keeps the Deployment, Service and Ingress of every App in place.

    Children are looked up by the names given in the App's spec, created
    when missing and never touched when some other object controls them.
    Of the existing children only the replica count of the Deployment is
    kept in sync.
    """

    def __init__(self, client, cache, recorder, scheme,
        concurrent_reconciles=2, update_status=False, **kwargs):
        super().__init__(
            client,
            cache,
            recorder,
            scheme,
            App,
            name='apps',
            concurrent_reconciles=concurrent_reconciles,
            **kwargs,
        )
        self.update_status = update_status
        self.gvk = scheme.gvk_for(App)
        for resource in (Deployment, Service, Ingress):
            self.watch_owner(resource)

    async def reconcile(self, key):
        namespace, name = split_key(key)
        try:
            app = await self.client.get(App, name, namespace=namespace)
        except ObjectNotFound:
            log.info("App '%s' in work queue no longer exists", key)
            return

        await self.sync_deployment(key, app)
        await self.sync_service(key, app)
        await self.sync_ingress(key, app)

        self.recorder.record(app, EVENT_NORMAL, SUCCESS_SYNCED, MESSAGE_RESOURCE_SYNCED)

    async def get_or_create(self, resource, desired):
        """Return the existing object named like desired, or create desired."""
        name = desired.metadata.name
        namespace = desired.metadata.namespace
        try:
            return await self.client.get(resource, name, namespace=namespace)
        except ObjectNotFound:
            pass
        try:
            return await self.client.create(desired)
        except ApiObjectAlreadyExists:
            # Created since our cache last saw it.
            log.debug('%r appeared while creating it', desired)
            return await self.client.get(resource, name, namespace=namespace, cached=False)

    def check_controlled(self, app, obj):
        if is_controlled_by(obj, app, self.gvk):
            return
        msg = MESSAGE_RESOURCE_EXISTS % obj.metadata.name
        self.recorder.record(app, EVENT_WARNING, ERR_RESOURCE_EXISTS, msg)
        raise ResourceExistsError(obj, msg)

    async def sync_deployment(self, key, app):
        spec = app.spec.deployment
        if spec is None or not spec.name:
            # Requeuing would not help, the next change of the App will.
            log.error('%s: deployment name must be specified', key)
            return

        deployment = await self.get_or_create(Deployment, new_deployment(app, self.gvk))
        self.check_controlled(app, deployment)

        if spec.replicas is not None and spec.replicas != deployment.spec.replicas:
            log.info(
                'App %s replicas: %s, deployment replicas: %s',
                app.metadata.name,
                spec.replicas,
                deployment.spec.replicas,
            )
            deployment = await self.client.update(new_deployment(app, self.gvk))

        if self.update_status:
            await self.sync_status(app, deployment)

    async def sync_status(self, app, deployment):
        """Copy the available replicas of the deployment to the App's status."""
        status = new_app_status(app, deployment)
        if status == app.status:
            return
        # `app` is our own copy, the cache is not affected.
        app.status = status
        await self.client.update_status(app)

    async def sync_service(self, key, app):
        spec = app.spec.service
        if spec is None or not spec.name:
            log.error('%s: service name must be specified', key)
            return

        service = await self.get_or_create(Service, new_service(app, self.gvk))
        self.check_controlled(app, service)

    async def sync_ingress(self, key, app):
        spec = app.spec.ingress
        if spec is None or not spec.name:
            log.error('%s: ingress name must be specified', key)
            return
        if not spec.hostname:
            log.error('%s: ingress hostname must be specified', key)
            return
        if app.spec.service is None or not app.spec.service.name:
            log.error('%s: ingress needs a service to route to', key)
            return

        ingress = await self.get_or_create(Ingress, new_ingress(app, self.gvk))
        self.check_controlled(app, ingress)
