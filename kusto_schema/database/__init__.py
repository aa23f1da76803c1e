"""Schema discovery for Kusto clusters.

This module loads database schemas from a cluster through management
commands and assembles them into symbol trees.
"""

from .models import (
    SymbolKind,
    ColumnSymbol,
    TableSymbol,
    ExternalTableSymbol,
    MaterializedViewSymbol,
    ParameterSymbol,
    FunctionSymbol,
    EntityGroupSymbol,
    DatabaseSymbol,
    DatabaseName,
)
from .base import SymbolLoader, SerializedSymbolLoader
from .connections import ConnectionDescriptor, EndpointResolver
from .clients import AdminClient, ClientCache, create_admin_client
from .caches import BadDatabaseCache
from .commands import CommandExecutor, CommandResult, Success, NotFound, Failed
from .type_mappers import KustoTypeMapper
from .server import ServerSymbolLoader

__all__ = [
    # Symbols
    "SymbolKind",
    "ColumnSymbol",
    "TableSymbol",
    "ExternalTableSymbol",
    "MaterializedViewSymbol",
    "ParameterSymbol",
    "FunctionSymbol",
    "EntityGroupSymbol",
    "DatabaseSymbol",
    "DatabaseName",
    # Loaders
    "SymbolLoader",
    "SerializedSymbolLoader",
    "ServerSymbolLoader",
    # Connections and clients
    "ConnectionDescriptor",
    "EndpointResolver",
    "AdminClient",
    "ClientCache",
    "create_admin_client",
    "BadDatabaseCache",
    # Commands
    "CommandExecutor",
    "CommandResult",
    "Success",
    "NotFound",
    "Failed",
    "KustoTypeMapper",
]
