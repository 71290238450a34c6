import pytest

from appcontroller.cache import Cache
from appcontroller.client import Client
from appcontroller.scheme import default_scheme

from fakes import FakeApiClient, FakeRecorder


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture
def api_client():
    return FakeApiClient()


@pytest.fixture
def scheme():
    return default_scheme()


@pytest.fixture
def recorder():
    return FakeRecorder()


@pytest.fixture
async def cache(api_client):
    return Cache(api_client)


@pytest.fixture
async def client(api_client, cache):
    return Client(api_client, cache)
