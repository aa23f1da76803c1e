"""Pydantic models for management command response rows.

Each record type maps the documented columns of one command's primary
result table to named fields. Columns are matched by name, so extra or
reordered columns are tolerated; a missing required column is not.
"""

from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError

from ..errors import RecordShapeError


class KustoRecord(BaseModel):
    """Base class for a decoded response row."""

    # Column names of the command's documented response, in server order
    documented_columns: ClassVar[Tuple[str, ...]] = ()

    class Config:
        populate_by_name = True
        extra = "ignore"

    @classmethod
    def column_aliases(cls) -> List[str]:
        """Response column names this record reads."""
        return [f.alias or name for name, f in cls.model_fields.items()]

    @classmethod
    def required_columns(cls) -> List[str]:
        """Response column names that must be present."""
        return [f.alias or name for name, f in cls.model_fields.items() if f.is_required()]


class ShowDatabasesResult(KustoRecord):
    """Row of `.show databases`."""
    documented_columns: ClassVar[Tuple[str, ...]] = (
        "DatabaseName", "PersistentStorage", "Version", "IsCurrent", "DatabaseAccessMode",
        "PrettyName", "ReservedSlot1", "DatabaseId", "InTransitionTo",
    )

    database_name: str = Field(alias="DatabaseName")
    persistent_storage: Optional[str] = Field(default=None, alias="PersistentStorage")
    version: Optional[str] = Field(default=None, alias="Version")
    is_current: Optional[bool] = Field(default=None, alias="IsCurrent")
    database_access_mode: Optional[str] = Field(default=None, alias="DatabaseAccessMode")
    pretty_name: Optional[str] = Field(default=None, alias="PrettyName")
    reserved_slot1: Optional[bool] = Field(default=None, alias="ReservedSlot1")
    database_id: Union[UUID, str, None] = Field(default=None, alias="DatabaseId")
    in_transition_to: Optional[str] = Field(default=None, alias="InTransitionTo")


class ShowDatabaseSchemaResult(KustoRecord):
    """Row of `.show database <db> schema`.

    Table-level rows carry an empty ColumnName; database-level rows carry
    an empty TableName.
    """
    documented_columns: ClassVar[Tuple[str, ...]] = (
        "DatabaseName", "TableName", "ColumnName", "ColumnType", "IsDefaultTable",
        "IsDefaultColumn", "PrettyName", "Version", "Folder", "DocString",
    )

    database_name: str = Field(alias="DatabaseName")
    table_name: Optional[str] = Field(alias="TableName")
    column_name: Optional[str] = Field(alias="ColumnName")
    column_type: Optional[str] = Field(alias="ColumnType")
    is_default_table: Optional[bool] = Field(default=None, alias="IsDefaultTable")
    is_default_column: Optional[bool] = Field(default=None, alias="IsDefaultColumn")
    pretty_name: Optional[str] = Field(default=None, alias="PrettyName")
    version: Optional[str] = Field(default=None, alias="Version")
    folder: Optional[str] = Field(default=None, alias="Folder")
    doc_string: Optional[str] = Field(default=None, alias="DocString")


class ShowExternalTablesResult(KustoRecord):
    """Row of `.show external tables`."""
    documented_columns: ClassVar[Tuple[str, ...]] = ("TableName", "DocString")

    table_name: str = Field(alias="TableName")
    doc_string: Optional[str] = Field(default=None, alias="DocString")


class ShowExternalTableSchemaResult(KustoRecord):
    """Row of `.show external table <name> cslschema`."""
    documented_columns: ClassVar[Tuple[str, ...]] = ("TableName", "Schema")

    table_name: Optional[str] = Field(default=None, alias="TableName")
    schema_text: str = Field(alias="Schema")


class ShowMaterializedViewsResult(KustoRecord):
    """Row of `.show materialized-views`."""
    documented_columns: ClassVar[Tuple[str, ...]] = ("Name", "DocString", "Query")

    name: str = Field(alias="Name")
    doc_string: Optional[str] = Field(default=None, alias="DocString")
    query: Optional[str] = Field(default=None, alias="Query")


class ShowMaterializedViewSchemaResult(KustoRecord):
    """Row of `.show materialized-view <name> cslschema`."""
    documented_columns: ClassVar[Tuple[str, ...]] = ("Name", "Schema")

    name: Optional[str] = Field(default=None, alias="Name")
    schema_text: str = Field(alias="Schema")


class ShowFunctionsResult(KustoRecord):
    """Row of `.show functions`."""
    documented_columns: ClassVar[Tuple[str, ...]] = ("Name", "Parameters", "Body", "Folder", "DocString")

    name: str = Field(alias="Name")
    parameters: Optional[str] = Field(default=None, alias="Parameters")
    body: Optional[str] = Field(default=None, alias="Body")
    folder: Optional[str] = Field(default=None, alias="Folder")
    doc_string: Optional[str] = Field(default=None, alias="DocString")


class ShowEntityGroupsResult(KustoRecord):
    """Row of `.show entity_groups`."""
    documented_columns: ClassVar[Tuple[str, ...]] = ("Name", "Entities")

    name: str = Field(alias="Name")
    entities: Optional[str] = Field(default=None, alias="Entities")


RECORD_TYPES: Tuple[Type[KustoRecord], ...] = (
    ShowDatabasesResult,
    ShowDatabaseSchemaResult,
    ShowExternalTablesResult,
    ShowExternalTableSchemaResult,
    ShowMaterializedViewsResult,
    ShowMaterializedViewSchemaResult,
    ShowFunctionsResult,
    ShowEntityGroupsResult,
)


def validate_record_types(record_types: Sequence[Type[KustoRecord]] = RECORD_TYPES) -> None:
    """Check every record type against its documented response columns.

    Raises:
        RecordShapeError: if a record reads a column the command does not
            document, or documents no columns at all
    """
    for record_type in record_types:
        documented = set(record_type.documented_columns)
        if not documented:
            raise RecordShapeError(f"{record_type.__name__} documents no response columns")
        unknown = [c for c in record_type.column_aliases() if c not in documented]
        if unknown:
            raise RecordShapeError(
                f"{record_type.__name__} reads undocumented columns: {', '.join(unknown)}",
                missing_columns=unknown,
            )


R = TypeVar("R", bound=KustoRecord)


def decode_rows(
    record_type: Type[R],
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    command: Optional[str] = None,
    database: Optional[str] = None,
) -> List[R]:
    """Decode tabular rows into records by column name.

    Args:
        record_type: Record model for the command
        columns: Column names of the result table
        rows: Row values, positionally aligned with columns
        command: Command text, for error reporting
        database: Database the command ran against, for error reporting

    Returns:
        List of decoded records

    Raises:
        RecordShapeError: if a required column is missing or a row does
            not validate
    """
    missing = [c for c in record_type.required_columns() if c not in columns]
    if missing:
        raise RecordShapeError(
            f"Response for {record_type.__name__} is missing columns: {', '.join(missing)}",
            missing_columns=missing,
            command=command,
            database=database,
        )

    wanted = set(record_type.column_aliases())
    indexes: Dict[str, int] = {name: i for i, name in enumerate(columns) if name in wanted}

    records = []
    for row in rows:
        values = {name: row[i] for name, i in indexes.items()}
        try:
            records.append(record_type.model_validate(values))
        except ValidationError as e:
            raise RecordShapeError(
                f"Invalid {record_type.__name__} row: {e}",
                command=command,
                database=database,
            ) from e
    return records
