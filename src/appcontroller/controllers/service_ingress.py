import logging

from lightkube.resources.core_v1 import Service
from lightkube.resources.networking_v1 import Ingress

from ..controller import Controller, ignore_unchanged_updates, only_deletes, split_key
from ..exceptions import ObjectNotFound

from .builders import new_default_ingress


__all__ = [
    'DEFAULT_ANNOTATION',
    'DEFAULT_HOST',
    'ServiceIngressController',
]

log = logging.getLogger(__name__)


DEFAULT_ANNOTATION = 'ingress/http'
DEFAULT_HOST = 'example.com'


class ServiceIngressController(Controller):
    """Gives every Service carrying `annotation` an Ingress of the same name.

    The Ingress routes `/` on `host` to port 80 of the Service and is
    controlled by it. A deleted Ingress is created again as long as the
    annotation is there.

    Removing the annotation does not remove the Ingress, that is only logged.
    """

    def __init__(self, client, cache, recorder, scheme,
        concurrent_reconciles=5, max_retries=10,
        annotation=DEFAULT_ANNOTATION, host=DEFAULT_HOST, **kwargs):
        super().__init__(
            client,
            cache,
            recorder,
            scheme,
            Service,
            name='ingress-manage',
            predicates=[ignore_unchanged_updates],
            concurrent_reconciles=concurrent_reconciles,
            max_retries=max_retries,
            **kwargs,
        )
        self.annotation = annotation
        self.host = host
        self.gvk = scheme.gvk_for(Service)
        self.watch_owner(Ingress, predicates=[only_deletes])

    def wants_ingress(self, service):
        annotations = service.metadata.annotations or {}
        return self.annotation in annotations

    async def reconcile(self, key):
        namespace, name = split_key(key)
        try:
            service = await self.client.get(Service, name, namespace=namespace)
        except ObjectNotFound:
            return

        try:
            ingress = await self.client.get(Ingress, name, namespace=namespace)
        except ObjectNotFound:
            ingress = None

        match (self.wants_ingress(service), ingress is not None):
            case (True, False):
                log.info('creating ingress for service %s', key)
                ingress = new_default_ingress(service, self.host, self.gvk)
                await self.client.create(ingress)
            case (False, True):
                log.info(
                    'service %s lost annotation %r, ingress %s is left in place',
                    key,
                    self.annotation,
                    ingress.metadata.name,
                )
