from lightkube.core import resource as lkr
from lightkube.core.exceptions import ApiError

__all__ = [
    'ApiConflict',
    'ApiError',
    'ApiObjectAlreadyExists',
    'ApiObjectNotFound',
    'Error',
    'FatalError',
    'HttpError',
    'InvalidKeyError',
    'ObjectError',
    'ObjectNotFound',
    'PermanentError',
    'ResourceExistsError',
    'ResourceNotRegistered',
    'StoreKeyError',
    'from_api_error',
    'iterate_errors',
]


def iterate_errors(exc):
    """
    iterate over all non-exceptiongroup parts of an exception(group)
    """
    if isinstance(exc, BaseExceptionGroup):
        for e in exc.exceptions:
            yield from iterate_errors(e)
    else:
        yield exc


def _describe(api_version, kind, namespace, name):
    out = []
    if api_version is not None and kind is not None:
        out.append(f'{api_version}/{kind}')
    if namespace is not None:
        out.append(f'{namespace}/{name}')
    else:
        out.append(str(name))
    return ' '.join(out)


class FatalError(Exception):
    """A fatal error that we can not recover from."""


class Error(Exception):
    """Base class for all custom Exceptions."""

    def __init__(self, message=None):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.__repr__()

    def __repr__(self):
        return f'{self.__class__.__name__}: {self.message}'


class HttpError(Error):
    """An error that occured on the transport level while talking to the api."""

    def __init__(self, http_method, url, status_code, message=None):
        super().__init__(message)
        self.http_method = http_method
        self.url = url
        self.status_code = status_code

    def __str__(self):
        if self.message:
            return self.message
        else:
            return '{0} to {1} failed with status: {2}'.format(
                self.http_method, self.url, self.status_code
            )


class ObjectError(Error):
    def __init__(self, obj):
        super().__init__()
        self.obj = obj

    def __repr__(self):
        obj = self.obj
        metadata = getattr(obj, 'metadata', None)
        msg = _describe(
            getattr(obj, 'apiVersion', None),
            getattr(obj, 'kind', None),
            getattr(metadata, 'namespace', None),
            getattr(metadata, 'name', None),
        )
        return f'{self.__class__.__name__}: {msg}'


class ObjectNotFound(ObjectError):
    """The object does not exist in the local cache."""


class ApiObjectNotFound(ObjectNotFound):
    """The API server answered 404 Not Found."""

    def __init__(self, resource, name, namespace=None):
        super().__init__(None)
        self.resource = resource
        self.name = name
        self.namespace = namespace

    def __repr__(self):
        info = lkr.api_info(self.resource)
        msg = _describe(
            info.resource.api_version,
            info.resource.kind,
            self.namespace,
            self.name,
        )
        return f'{self.__class__.__name__}: {msg}'


class ApiObjectAlreadyExists(ObjectError):
    """A create was rejected because an object with that name exists."""


class ApiConflict(ObjectError):
    """A write was rejected because the object changed in the meantime."""


class StoreKeyError(ObjectError):
    pass


class PermanentError(Error):
    """Raised by a reconcile function when a non-recoverably error occurs."""


class InvalidKeyError(PermanentError):
    """A workqueue key is not of the form `name` or `namespace/name`."""

    def __init__(self, key):
        super().__init__(f'invalid resource key: {key!r}')
        self.key = key


class ResourceExistsError(Error):
    """A child resource exists but is not controlled by the expected owner.

    Retrying does not resolve a naming collision, yet it is handled like any
    other reconcile failure and requeued with backoff.
    """

    def __init__(self, obj, message):
        super().__init__(message)
        self.obj = obj


class ResourceNotRegistered(Error):
    """A resource or kind was looked up that is not part of the scheme."""


def from_api_error(error: ApiError, obj=None, resource=None, name=None, namespace=None):
    """Translate a lightkube ApiError into one of our errors.

    Returns the original error if it does not match a known category so
    the caller can re-raise it unchanged.
    """
    status = error.status
    code = getattr(status, 'code', None)
    reason = getattr(status, 'reason', None)
    match (code, reason):
        case (409, 'AlreadyExists'):
            return ApiObjectAlreadyExists(obj)
        case (409, _):
            return ApiConflict(obj)
        case (404, _):
            if obj is not None:
                resource = type(obj)
                name = obj.metadata.name
                namespace = obj.metadata.namespace
            return ApiObjectNotFound(resource, name, namespace=namespace)
    return error
