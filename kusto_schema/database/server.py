"""Symbol loader that reads schemas from a live Kusto cluster."""

import asyncio
import logging
from typing import Dict, FrozenSet, List, Optional, Union

from ..config import settings
from ..errors import ConnectionResolutionError, LoaderClosedError
from .assemblers import (
    load_entity_groups,
    load_external_tables,
    load_functions,
    load_materialized_views,
    load_tables,
)
from .base import SymbolLoader
from .caches import BadDatabaseCache
from .clients import AdminClient, ClientCache, ClientFactory
from .commands import SHOW_DATABASES, CommandExecutor, NotFound
from .connections import ADMIN_CATALOG, ConnectionDescriptor, EndpointResolver
from .models import DatabaseName, DatabaseSymbol
from .records import ShowDatabasesResult, validate_record_types
from .type_mappers import KustoTypeMapper

logger = logging.getLogger(__name__)


class ServerSymbolLoader(SymbolLoader):
    """Loads database schemas from a Kusto cluster through management commands.

    One admin client is kept per cluster endpoint until `close()`. Databases
    the server reports as missing are remembered per cluster and never
    queried again by this loader. Successful loads are not cached.

    Not safe for concurrent use; wrap in `SerializedSymbolLoader` to share
    one instance between tasks.
    """

    def __init__(
        self,
        cluster_connection: Union[str, ConnectionDescriptor],
        default_domain: Optional[str] = None,
        admin_catalog: str = ADMIN_CATALOG,
        client_factory: Optional[ClientFactory] = None,
        executor: Optional[CommandExecutor] = None,
        follow_up_concurrency: int = 1,
    ):
        """Initialize the loader.

        Args:
            cluster_connection: Connection string, URI or descriptor of the
                default cluster
            default_domain: Domain used to turn short cluster names into full
                host names. Must start with a dot. Defaults to
                `.kusto.windows.net`
            admin_catalog: Initial catalog used for non-default clusters
            client_factory: Creates admin clients; defaults to the async
                azure-kusto-data client
            executor: Command executor; mainly for tests
            follow_up_concurrency: Maximum concurrent per-object schema calls
                when loading external tables and materialized views
        """
        if isinstance(cluster_connection, ConnectionDescriptor):
            connection = cluster_connection
        else:
            connection = ConnectionDescriptor.from_connection_string(cluster_connection)

        validate_record_types()

        self.resolver = EndpointResolver(connection, default_domain, admin_catalog)
        self.clients = ClientCache(client_factory)
        self.executor = executor or CommandExecutor()
        self.type_mapper = KustoTypeMapper()
        self.follow_up_concurrency = max(1, follow_up_concurrency)
        self._bad_databases = BadDatabaseCache()
        self._closed = False

    @classmethod
    def from_settings(cls, client_factory: Optional[ClientFactory] = None) -> "ServerSymbolLoader":
        """Create a loader from the `KUSTO_*` settings."""
        if not settings.kusto_connection_string:
            raise ConnectionResolutionError("KUSTO_CONNECTION_STRING is not set")
        return cls(
            settings.kusto_connection_string,
            default_domain=settings.kusto_default_domain,
            admin_catalog=settings.kusto_admin_catalog,
            client_factory=client_factory,
            follow_up_concurrency=settings.kusto_follow_up_concurrency,
        )

    @property
    def default_cluster(self) -> str:
        return self.resolver.default_cluster_name

    @property
    def default_domain(self) -> str:
        return self.resolver.default_domain

    @property
    def default_database(self) -> Optional[str]:
        """The initial catalog of the default connection."""
        return self.resolver.default_connection.initial_catalog

    @property
    def bad_databases(self) -> Dict[str, FrozenSet[str]]:
        """Databases recorded as missing, by canonical cluster name."""
        return self._bad_databases.snapshot()

    async def close(self):
        """Close every admin client. The loader cannot be used afterwards."""
        self._closed = True
        await self.clients.release_all()

    def _get_client(self, cluster_name: Optional[str]) -> Optional[AdminClient]:
        connection = self.resolver.resolve(cluster_name)
        if connection is None:
            logger.warning("Cannot resolve cluster %r", cluster_name)
            return None
        return self.clients.acquire(connection)

    def _check_open(self):
        if self._closed:
            raise LoaderClosedError()

    async def get_database_names(
        self,
        cluster_name: Optional[str] = None,
        throw_on_error: bool = False,
        cancellation: Optional[asyncio.Event] = None,
    ) -> Optional[List[DatabaseName]]:
        """List the databases of a cluster with their display names."""
        self._check_open()

        cluster = self.resolver.canonical_cluster_name(cluster_name)
        client = self._get_client(cluster_name) if cluster else None
        if client is None:
            return None

        databases = await self.executor.execute(
            client, "", SHOW_DATABASES, ShowDatabasesResult, throw_on_error, cancellation
        )
        if databases is None:
            logger.warning("Could not list databases on %s", cluster)
            return None

        return [DatabaseName(name=d.database_name, pretty_name=d.pretty_name or None) for d in databases]

    async def load_database(
        self,
        database_name: str,
        cluster_name: Optional[str] = None,
        throw_on_error: bool = False,
        cancellation: Optional[asyncio.Event] = None,
    ) -> Optional[DatabaseSymbol]:
        """Load one database's tables, external tables, materialized views,
        functions and entity groups into a DatabaseSymbol.

        Returns None when the cluster cannot be reached or resolved, or the
        database does not exist. Only a database the server reports as
        missing is remembered; transient failures are not.
        """
        self._check_open()

        cluster = self.resolver.canonical_cluster_name(cluster_name)
        if not cluster:
            logger.warning("Cannot resolve cluster %r", cluster_name)
            return None

        # if we've already determined this database name is bad, then bail out
        if self._bad_databases.contains(cluster, database_name):
            logger.debug("Skipping known missing database %r on %s", database_name, cluster)
            return None

        client = self._get_client(cluster_name)
        if client is None:
            return None

        databases = await self.executor.execute(
            client, "", SHOW_DATABASES, ShowDatabasesResult, throw_on_error, cancellation
        )
        if databases is None:
            logger.warning("Could not reach cluster %s to load %r", cluster, database_name)
            return None

        tables = await load_tables(
            self.executor, client, database_name, throw_on_error, cancellation, self.type_mapper
        )
        if isinstance(tables, NotFound):
            logger.info("Database %r not found on %s", database_name, cluster)
            self._bad_databases.add(cluster, database_name)
            return None
        if not tables.ok:
            logger.warning("Could not load tables of %r on %s: %s", database_name, cluster, tables.cause)
            return None

        external_tables = await load_external_tables(
            self.executor, client, database_name, throw_on_error, cancellation, self.follow_up_concurrency
        )
        materialized_views = await load_materialized_views(
            self.executor, client, database_name, throw_on_error, cancellation, self.follow_up_concurrency
        )
        functions = await load_functions(self.executor, client, database_name, throw_on_error, cancellation)
        entity_groups = await load_entity_groups(self.executor, client, database_name, throw_on_error, cancellation)

        members = list(tables.value)
        for label, result in (
            ("external tables", external_tables),
            ("materialized views", materialized_views),
            ("functions", functions),
            ("entity groups", entity_groups),
        ):
            if result.ok:
                members.extend(result.value)
            else:
                logger.warning("Could not load %s of %r on %s", label, database_name, cluster)

        return DatabaseSymbol(name=database_name, members=members)
