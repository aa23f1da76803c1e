"""Assemblers that turn management command responses into schema symbols.

Each assembler issues the commands for one kind of database member and
returns a `CommandResult` whose value is the list of symbols. A failed
defining command yields a non-success result, distinct from a successful
empty list. With throw_on_error set, any failure is raised instead.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from .clients import AdminClient
from .commands import (
    SHOW_ENTITY_GROUPS,
    SHOW_EXTERNAL_TABLES,
    SHOW_FUNCTIONS,
    SHOW_MATERIALIZED_VIEWS,
    CommandExecutor,
    CommandResult,
    NotFound,
    Success,
    show_database_schema,
    show_external_table_schema,
    show_materialized_view_schema,
)
from .models import (
    ColumnSymbol,
    EntityGroupSymbol,
    ExternalTableSymbol,
    FunctionSymbol,
    MaterializedViewSymbol,
    TableSymbol,
)
from .records import (
    ShowDatabaseSchemaResult,
    ShowEntityGroupsResult,
    ShowExternalTableSchemaResult,
    ShowExternalTablesResult,
    ShowFunctionsResult,
    ShowMaterializedViewSchemaResult,
    ShowMaterializedViewsResult,
)
from .type_mappers import KustoTypeMapper

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


def _raise_if_strict(result: CommandResult, throw_on_error: bool) -> CommandResult:
    if not result.ok:
        result.unwrap(throw_on_error)
    return result


def _doc(text: Optional[str]) -> Optional[str]:
    return text or None


async def _map_in_order(
    func: Callable[[ItemT], Awaitable[ResultT]],
    items: Sequence[ItemT],
    concurrency: int = 1,
) -> List[ResultT]:
    """Apply an async function to items, keeping item order.

    Runs one item at a time unless concurrency is above 1.
    """
    if concurrency <= 1:
        return [await func(item) for item in items]

    semaphore = asyncio.Semaphore(concurrency)

    async def bounded(item: ItemT) -> ResultT:
        async with semaphore:
            return await func(item)

    tasks = [asyncio.ensure_future(bounded(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


async def load_tables(
    executor: CommandExecutor,
    client: AdminClient,
    database_name: str,
    throw_on_error: bool = False,
    cancellation: Optional[asyncio.Event] = None,
    type_mapper: Optional[KustoTypeMapper] = None,
) -> CommandResult:
    """Load table symbols from `.show database <db> schema`.

    Rows are grouped by table name in first-seen order. The row with an
    empty column name carries the table's doc string; every other row is
    a column. A response with no rows at all is reported as NotFound.
    """
    mapper = type_mapper or KustoTypeMapper()
    command = show_database_schema(database_name)
    result = await executor.run(client, database_name, command, ShowDatabaseSchemaResult, cancellation)
    if not result.ok:
        return _raise_if_strict(result, throw_on_error)

    rows: List[ShowDatabaseSchemaResult] = result.value
    if not rows:
        logger.debug("No schema rows for database %r", database_name)
        return NotFound()

    grouped: Dict[str, List[ShowDatabaseSchemaResult]] = {}
    for row in rows:
        if row.table_name:
            grouped.setdefault(row.table_name, []).append(row)

    tables = []
    for table_name, table_rows in grouped.items():
        table_doc = next(
            (r.doc_string for r in table_rows if not r.column_name and r.doc_string),
            None,
        )
        columns = [
            ColumnSymbol(
                name=r.column_name,
                type=mapper.to_scalar_type(r.column_type),
                description=_doc(r.doc_string),
            )
            for r in table_rows
            if r.column_name
        ]
        tables.append(TableSymbol(name=table_name, columns=columns, description=table_doc))

    return Success(tables)


async def load_external_tables(
    executor: CommandExecutor,
    client: AdminClient,
    database_name: str,
    throw_on_error: bool = False,
    cancellation: Optional[asyncio.Event] = None,
    concurrency: int = 1,
) -> CommandResult:
    """Load external table symbols.

    Lists external tables, then fetches each one's CSL schema. Tables whose
    schema call fails or returns no rows are left out.
    """
    listing = await executor.run(client, database_name, SHOW_EXTERNAL_TABLES, ShowExternalTablesResult, cancellation)
    if not listing.ok:
        return _raise_if_strict(listing, throw_on_error)

    async def describe(table: ShowExternalTablesResult) -> Optional[ExternalTableSymbol]:
        result = await executor.run(
            client,
            database_name,
            show_external_table_schema(table.table_name),
            ShowExternalTableSchemaResult,
            cancellation,
        )
        schemas = result.unwrap(throw_on_error)
        if not schemas:
            logger.debug("Skipping external table %r: no schema", table.table_name)
            return None
        return ExternalTableSymbol(
            name=table.table_name,
            schema="(" + schemas[0].schema_text + ")",
            description=_doc(table.doc_string),
        )

    symbols = await _map_in_order(describe, listing.value, concurrency)
    return Success([s for s in symbols if s is not None])


async def load_materialized_views(
    executor: CommandExecutor,
    client: AdminClient,
    database_name: str,
    throw_on_error: bool = False,
    cancellation: Optional[asyncio.Event] = None,
    concurrency: int = 1,
) -> CommandResult:
    """Load materialized view symbols, following the same two-step pattern as external tables."""
    listing = await executor.run(client, database_name, SHOW_MATERIALIZED_VIEWS, ShowMaterializedViewsResult, cancellation)
    if not listing.ok:
        return _raise_if_strict(listing, throw_on_error)

    async def describe(view: ShowMaterializedViewsResult) -> Optional[MaterializedViewSymbol]:
        result = await executor.run(
            client,
            database_name,
            show_materialized_view_schema(view.name),
            ShowMaterializedViewSchemaResult,
            cancellation,
        )
        schemas = result.unwrap(throw_on_error)
        if not schemas:
            logger.debug("Skipping materialized view %r: no schema", view.name)
            return None
        return MaterializedViewSymbol(
            name=view.name,
            schema="(" + schemas[0].schema_text + ")",
            query=view.query or "",
            description=_doc(view.doc_string),
        )

    symbols = await _map_in_order(describe, listing.value, concurrency)
    return Success([s for s in symbols if s is not None])


async def load_functions(
    executor: CommandExecutor,
    client: AdminClient,
    database_name: str,
    throw_on_error: bool = False,
    cancellation: Optional[asyncio.Event] = None,
) -> CommandResult:
    """Load function symbols from `.show functions`."""
    result = await executor.run(client, database_name, SHOW_FUNCTIONS, ShowFunctionsResult, cancellation)
    if not result.ok:
        return _raise_if_strict(result, throw_on_error)

    return Success([
        FunctionSymbol(
            name=f.name,
            parameters=f.parameters or "()",
            body=f.body or "",
            description=_doc(f.doc_string),
        )
        for f in result.value
    ])


async def load_entity_groups(
    executor: CommandExecutor,
    client: AdminClient,
    database_name: str,
    throw_on_error: bool = False,
    cancellation: Optional[asyncio.Event] = None,
) -> CommandResult:
    """Load entity group symbols from `.show entity_groups`."""
    result = await executor.run(client, database_name, SHOW_ENTITY_GROUPS, ShowEntityGroupsResult, cancellation)
    if not result.ok:
        return _raise_if_strict(result, throw_on_error)

    return Success([
        EntityGroupSymbol(name=eg.name, definition=eg.entities or "")
        for eg in result.value
    ])
