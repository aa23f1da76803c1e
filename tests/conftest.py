"""Shared pytest fixtures for kusto-schema tests."""

import pytest
from typing import Dict, List

from kusto_schema.database.connections import ConnectionDescriptor
from kusto_schema.database.server import ServerSymbolLoader
from kusto_schema.database.commands import CommandExecutor
from .database.fixtures import MockKustoClient, create_mock_cluster


DEFAULT_CONNECTION_STRING = (
    "Data Source=https://help.kusto.windows.net;Initial Catalog=Samples;"
    "Application Client Id=app-id;Application Key=secret;Authority Id=tenant"
)


@pytest.fixture
def connection_string():
    """Connection string of the default test cluster."""
    return DEFAULT_CONNECTION_STRING


@pytest.fixture
def default_connection(connection_string):
    """Descriptor of the default test cluster, with application credentials."""
    return ConnectionDescriptor.from_connection_string(connection_string)


@pytest.fixture
def mock_cluster():
    """A mock admin client serving one fully populated `Samples` database."""
    return create_mock_cluster()


@pytest.fixture
def client_registry(mock_cluster):
    """Mock clients by data source, plus the descriptors they were created for.

    The default cluster is served by `mock_cluster`; any other data source
    gets a fresh, empty MockKustoClient.
    """
    clients: Dict[str, MockKustoClient] = {"https://help.kusto.windows.net": mock_cluster}
    created: List[ConnectionDescriptor] = []

    def factory(descriptor: ConnectionDescriptor) -> MockKustoClient:
        created.append(descriptor)
        if descriptor.data_source not in clients:
            clients[descriptor.data_source] = MockKustoClient(descriptor.data_source)
        return clients[descriptor.data_source]

    return {"clients": clients, "created": created, "factory": factory}


@pytest.fixture
def loader(default_connection, client_registry):
    """A ServerSymbolLoader wired to mock clients."""
    return ServerSymbolLoader(
        default_connection,
        client_factory=client_registry["factory"],
        executor=CommandExecutor(),
    )
