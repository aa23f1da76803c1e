"""Abstract base class for schema symbol loaders."""

import asyncio
from abc import ABC, abstractmethod
from typing import List, Optional

from .models import DatabaseName, DatabaseSymbol


class SymbolLoader(ABC):
    """Abstract base class for loading database schemas as symbols.

    Subclasses decide where schemas come from (a live cluster, a local
    cache, ...). Loaders own resources and must be closed.
    """

    @property
    @abstractmethod
    def default_cluster(self) -> str:
        """Canonical name of the default cluster."""
        pass

    @property
    @abstractmethod
    def default_domain(self) -> str:
        """Domain used to fully qualify short cluster names."""
        pass

    @abstractmethod
    async def get_database_names(
        self,
        cluster_name: Optional[str] = None,
        throw_on_error: bool = False,
        cancellation: Optional[asyncio.Event] = None,
    ) -> Optional[List[DatabaseName]]:
        """List the databases of a cluster.

        Args:
            cluster_name: Cluster name or URI; empty means the default cluster
            throw_on_error: Raise failures instead of returning None
            cancellation: Optional event that aborts in-flight commands

        Returns:
            Database names, or None if they could not be determined
        """
        pass

    @abstractmethod
    async def load_database(
        self,
        database_name: str,
        cluster_name: Optional[str] = None,
        throw_on_error: bool = False,
        cancellation: Optional[asyncio.Event] = None,
    ) -> Optional[DatabaseSymbol]:
        """Load the schema of one database.

        Args:
            database_name: Database to load
            cluster_name: Cluster name or URI; empty means the default cluster
            throw_on_error: Raise failures instead of returning None
            cancellation: Optional event that aborts in-flight commands

        Returns:
            DatabaseSymbol, or None if the database could not be loaded
        """
        pass

    @abstractmethod
    async def close(self):
        """Release all resources held by the loader."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class SerializedSymbolLoader(SymbolLoader):
    """Wraps a loader so that concurrent calls run one at a time.

    Loaders keep caches that are not safe for concurrent mutation; this
    wrapper lets several tasks share one loader.
    """

    def __init__(self, inner: SymbolLoader):
        self.inner = inner
        self._lock = asyncio.Lock()

    @property
    def default_cluster(self) -> str:
        return self.inner.default_cluster

    @property
    def default_domain(self) -> str:
        return self.inner.default_domain

    async def get_database_names(self, cluster_name=None, throw_on_error=False, cancellation=None):
        async with self._lock:
            return await self.inner.get_database_names(cluster_name, throw_on_error, cancellation)

    async def load_database(self, database_name, cluster_name=None, throw_on_error=False, cancellation=None):
        async with self._lock:
            return await self.inner.load_database(database_name, cluster_name, throw_on_error, cancellation)

    async def close(self):
        async with self._lock:
            await self.inner.close()
