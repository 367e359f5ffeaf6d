"""Test configuration and fixtures."""

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from cnb_registry_client import RegistryConfig
from tests.helpers import FakeRegistry, FakeRemoteImageFactory


@pytest.fixture
def registry_config():
    """Registry configuration fixture."""
    return RegistryConfig(timeout=10)


@pytest.fixture
def fake_factory():
    """In-memory remote image factory."""
    return FakeRemoteImageFactory()


@pytest.fixture
def fake_registry():
    """Anonymous fake registry state."""
    return FakeRegistry()


@pytest.fixture
def auth_registry():
    """Fake registry state requiring a bearer token for user/secret."""
    return FakeRegistry(credentials=("user", "secret"))


async def _serve(registry: FakeRegistry):
    server = TestServer(registry.app(), host="127.0.0.1")
    await server.start_server()
    try:
        yield f"127.0.0.1:{server.port}"
    finally:
        await server.close()


@pytest_asyncio.fixture
async def registry_host(fake_registry):
    """Serve the anonymous fake registry; yields its host:port."""
    async for host in _serve(fake_registry):
        yield host


@pytest.fixture
def other_registry():
    """A second anonymous fake registry."""
    return FakeRegistry()


@pytest_asyncio.fixture
async def other_registry_host(other_registry):
    async for host in _serve(other_registry):
        yield host


@pytest_asyncio.fixture
async def auth_registry_host(auth_registry):
    """Serve the token-protected fake registry; yields its host:port."""
    async for host in _serve(auth_registry):
        yield host

