"""Tests for the per-endpoint admin client cache."""

import pytest

from kusto_schema.database.clients import AdminClient, ClientCache
from kusto_schema.database.connections import ConnectionDescriptor
from .fixtures import MockKustoClient


@pytest.fixture
def created():
    return []


@pytest.fixture
def cache(created):
    def factory(descriptor):
        client = MockKustoClient(descriptor.data_source)
        created.append(client)
        return client

    return ClientCache(factory)


class TestClientCache:
    """Test client reuse and release."""

    def test_mock_client_satisfies_protocol(self):
        assert isinstance(MockKustoClient(), AdminClient)

    def test_acquire_creates_once_per_data_source(self, cache, created):
        """Test the same data source always yields the same client."""
        descriptor = ConnectionDescriptor("https://a.example.com")

        first = cache.acquire(descriptor)
        second = cache.acquire(ConnectionDescriptor("https://a.example.com", "OtherCatalog"))

        assert first is second
        assert len(created) == 1
        assert "https://a.example.com" in cache

    def test_distinct_data_sources_get_distinct_clients(self, cache, created):
        a = cache.acquire(ConnectionDescriptor("https://a.example.com"))
        b = cache.acquire(ConnectionDescriptor("https://b.example.com"))

        assert a is not b
        assert len(cache) == 2
        assert cache.data_sources == ["https://a.example.com", "https://b.example.com"]

    @pytest.mark.asyncio
    async def test_release_all_closes_and_clears(self, cache, created):
        """Test release closes every client and empties the cache."""
        cache.acquire(ConnectionDescriptor("https://a.example.com"))
        cache.acquire(ConnectionDescriptor("https://b.example.com"))

        await cache.release_all()

        assert all(c.closed for c in created)
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_release_all_on_empty_cache(self, cache):
        await cache.release_all()

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_close_failure_propagates(self, cache, created):
        """Test a client that fails to close surfaces its error."""
        cache.acquire(ConnectionDescriptor("https://a.example.com"))
        created[0].close_error = RuntimeError("socket already closed")

        with pytest.raises(RuntimeError, match="socket already closed"):
            await cache.release_all()

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_acquire_after_release_creates_new_client(self, cache, created):
        descriptor = ConnectionDescriptor("https://a.example.com")
        cache.acquire(descriptor)
        await cache.release_all()

        cache.acquire(descriptor)

        assert len(created) == 2
