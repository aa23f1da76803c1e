"""Administrative client creation and per-endpoint client caching."""

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from .connections import ConnectionDescriptor

logger = logging.getLogger(__name__)


@runtime_checkable
class AdminClient(Protocol):
    """Async client able to run management commands against one cluster.

    Matches `azure.kusto.data.aio.KustoClient`.
    """

    async def execute_mgmt(self, database: Optional[str], query: str, properties: Any = None) -> Any:
        """Run a management command and return the response data set."""
        ...

    async def close(self) -> None:
        """Release the client's network resources."""
        ...


ClientFactory = Callable[[ConnectionDescriptor], AdminClient]


def create_admin_client(descriptor: ConnectionDescriptor) -> AdminClient:
    """Create an async Kusto client for a connection descriptor."""
    try:
        from azure.kusto.data import KustoConnectionStringBuilder
        from azure.kusto.data.aio import KustoClient
    except ImportError:
        raise ImportError(
            "azure-kusto-data with async support is required. "
            "Install it with: pip install 'azure-kusto-data[aio]'"
        )

    kcsb = KustoConnectionStringBuilder(descriptor.to_connection_string())
    logger.info("Creating admin client for %s", descriptor.data_source)
    return KustoClient(kcsb)


class ClientCache:
    """Holds one reusable admin client per data source.

    Clients are created on first use and kept until `release_all()`.
    Not safe for concurrent mutation; callers serialize access.
    """

    def __init__(self, factory: Optional[ClientFactory] = None):
        self._factory = factory or create_admin_client
        self._clients: Dict[str, AdminClient] = {}

    def acquire(self, descriptor: ConnectionDescriptor) -> AdminClient:
        """Get the client for a descriptor's data source, creating it if needed."""
        client = self._clients.get(descriptor.data_source)
        if client is None:
            client = self._factory(descriptor)
            self._clients[descriptor.data_source] = client
        return client

    async def release_all(self) -> None:
        """Close every cached client and empty the cache.

        Close failures propagate to the caller.
        """
        clients: List[AdminClient] = list(self._clients.values())
        self._clients.clear()

        for client in clients:
            await client.close()
        if clients:
            logger.info("Released %d admin client(s)", len(clients))

    @property
    def data_sources(self) -> List[str]:
        return list(self._clients)

    def __contains__(self, data_source: str) -> bool:
        return data_source in self._clients

    def __len__(self) -> int:
        return len(self._clients)
