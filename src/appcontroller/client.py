import contextlib
import logging

from lightkube.core.exceptions import ApiError

from .exceptions import from_api_error

__all__ = [
    'Client',
]

log = logging.getLogger(__name__)


@contextlib.contextmanager
def translate_api_errors(obj=None, **kwargs):
    try:
        yield
    except ApiError as e:
        error = from_api_error(e, obj, **kwargs)
        if error is e:
            raise
        raise error from e


class Client:
    """Reads go to the cache, writes go to the API server.

    lightkube ApiErrors are translated into ApiObjectAlreadyExists,
    ApiObjectNotFound and ApiConflict. Any other error is raised unchanged.
    """

    def __init__(self, api_client, cache):
        self.api_client = api_client
        self.cache = cache

    def __repr__(self):
        return f'<Client {self.cache}>'

    async def get(self, resource, name, namespace=None, cached=True):
        """Get from cache, or from the API server for unwatched resources.

        With `cached=False` the API server is always asked.
        """
        if cached and self.cache.is_watched_resource(resource):
            return await self.cache.get(
                resource,
                name=name,
                namespace=namespace,
            )
        with translate_api_errors(resource=resource, name=name, namespace=namespace):
            return await self.api_client.get(
                resource,
                name=name,
                namespace=namespace,
            )

    async def create(self, obj):
        """Create in API server."""
        log.debug('creating %r', obj)
        with translate_api_errors(obj):
            return await self.api_client.create(obj)

    async def update(self, obj):
        """Replace the whole object on the API server."""
        log.debug('updating %r', obj)
        with translate_api_errors(obj):
            return await self.api_client.replace(obj)

    async def update_status(self, obj):
        """Replace the status subresource of the object on the API server."""
        log.debug('updating status of %r', obj)
        status_obj = type(obj).Status.from_dict(obj.to_dict())
        with translate_api_errors(obj):
            return await self.api_client.replace(status_obj)
