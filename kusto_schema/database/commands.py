"""Management command text and the command executor.

Every command runs once, with no retry. Its outcome is returned as an
explicit result (`Success`, `NotFound` or `Failed`); callers choose with
`unwrap(throw_on_error)` whether a failure is raised or turned into None.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar, Union

from ..errors import CommandCancelledError, RecordShapeError
from .clients import AdminClient
from .records import KustoRecord, decode_rows

logger = logging.getLogger(__name__)


SHOW_DATABASES = ".show databases"
SHOW_EXTERNAL_TABLES = ".show external tables"
SHOW_MATERIALIZED_VIEWS = ".show materialized-views"
SHOW_FUNCTIONS = ".show functions"
SHOW_ENTITY_GROUPS = ".show entity_groups"


# Names are embedded verbatim, without escaping
def show_database_schema(database_name: str) -> str:
    return f".show database {database_name} schema"


def show_external_table_schema(table_name: str) -> str:
    return f".show external table {table_name} cslschema"


def show_materialized_view_schema(view_name: str) -> str:
    return f".show materialized-view {view_name} cslschema"


T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """The command ran and its response decoded."""
    value: T

    ok = True

    def unwrap(self, throw_on_error: bool = False) -> T:
        return self.value


@dataclass(frozen=True)
class NotFound:
    """The server reported the target entity as missing, or returned nothing for it."""
    cause: Optional[Exception] = None

    ok = False
    value = None

    def unwrap(self, throw_on_error: bool = False) -> None:
        if throw_on_error and self.cause is not None:
            raise self.cause
        return None


@dataclass(frozen=True)
class Failed:
    """The command could not be issued or its response could not be decoded."""
    cause: Exception

    ok = False
    value = None

    def unwrap(self, throw_on_error: bool = False) -> None:
        if throw_on_error:
            raise self.cause
        return None


CommandResult = Union[Success, NotFound, Failed]


NOT_FOUND_MARKERS = ("entitynotfound", "was not found", "does not exist")


def is_not_found_error(error: Exception) -> bool:
    """Whether an error reports a missing database or entity rather than a transport problem."""
    if isinstance(error, RecordShapeError):
        return False
    text = str(error).lower()
    return any(marker in text for marker in NOT_FOUND_MARKERS)


def decode_response(
    record_type: Type[KustoRecord],
    response: Any,
    command: Optional[str] = None,
    database: Optional[str] = None,
) -> List[KustoRecord]:
    """Decode the primary result table of a management command response."""
    tables = getattr(response, "primary_results", None)
    if not tables:
        raise RecordShapeError(
            "Response has no primary result table",
            command=command,
            database=database,
        )

    table = tables[0]
    columns = [c.column_name for c in table.columns]
    return decode_rows(record_type, columns, list(table), command=command, database=database)


class CommandExecutor:
    """Runs management commands and decodes their responses into records."""

    def __init__(self, not_found_classifier: Optional[Callable[[Exception], bool]] = None):
        self._is_not_found = not_found_classifier or is_not_found_error

    async def run(
        self,
        client: AdminClient,
        database: str,
        command: str,
        record_type: Type[KustoRecord],
        cancellation: Optional[asyncio.Event] = None,
    ) -> CommandResult:
        """Run one command and return its outcome; never raises for command errors.

        Args:
            client: Admin client bound to the target cluster
            database: Database to scope the command to ("" for cluster-wide)
            command: Command text
            record_type: Record model for the response rows
            cancellation: Optional event that aborts the command when set

        Returns:
            Success with the decoded records, NotFound, or Failed
        """
        logger.debug("Executing %r against database %r", command, database)
        try:
            response = await self._issue(client, database, command, cancellation)
            records = decode_response(record_type, response, command=command, database=database)
        except Exception as e:
            if self._is_not_found(e):
                logger.debug("Command %r reported not found: %s", command, e)
                return NotFound(e)
            logger.debug("Command %r failed: %s", command, e)
            return Failed(e)

        logger.debug("Command %r returned %d row(s)", command, len(records))
        return Success(records)

    async def execute(
        self,
        client: AdminClient,
        database: str,
        command: str,
        record_type: Type[KustoRecord],
        throw_on_error: bool = False,
        cancellation: Optional[asyncio.Event] = None,
    ) -> Optional[List[KustoRecord]]:
        """Run one command and return its records.

        Returns None on failure, or raises the failure when throw_on_error
        is set.
        """
        result = await self.run(client, database, command, record_type, cancellation)
        return result.unwrap(throw_on_error)

    async def _issue(
        self,
        client: AdminClient,
        database: str,
        command: str,
        cancellation: Optional[asyncio.Event],
    ) -> Any:
        if cancellation is None:
            return await client.execute_mgmt(database, command)

        if cancellation.is_set():
            raise CommandCancelledError(command, database)

        command_task = asyncio.ensure_future(client.execute_mgmt(database, command))
        cancel_task = asyncio.ensure_future(cancellation.wait())
        try:
            done, _ = await asyncio.wait(
                {command_task, cancel_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_task.cancel()
            if not command_task.done():
                command_task.cancel()

        if command_task in done:
            return command_task.result()

        # Drain the abandoned command so its outcome is always retrieved
        await asyncio.gather(command_task, return_exceptions=True)
        raise CommandCancelledError(command, database)
