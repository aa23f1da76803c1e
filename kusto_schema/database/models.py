"""Symbol models for a Kusto database schema."""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional, Union

from .type_mappers import parse_columns, parse_entity_references, parse_parameters, quote_name


class SymbolKind(str, Enum):
    """Kinds of schema symbols."""
    DATABASE = "database"
    TABLE = "table"
    EXTERNAL_TABLE = "external_table"
    MATERIALIZED_VIEW = "materialized_view"
    FUNCTION = "function"
    ENTITY_GROUP = "entity_group"
    COLUMN = "column"
    PARAMETER = "parameter"


@dataclass
class ColumnSymbol:
    """Represents a table column."""
    name: str
    type: str
    description: Optional[str] = None

    kind: ClassVar[SymbolKind] = SymbolKind.COLUMN

    @property
    def declaration(self) -> str:
        """Column declaration in CSL schema form (`name:type`)."""
        return f"{quote_name(self.name)}:{self.type}"


def _columns_from_schema(schema: str) -> List[ColumnSymbol]:
    return [ColumnSymbol(name=name, type=type_text) for name, type_text in parse_columns(schema)]


def _schema_text(columns: List[ColumnSymbol]) -> str:
    return "(" + ", ".join(c.declaration for c in columns) + ")"


@dataclass
class TableSymbol:
    """Represents a database table."""
    name: str
    columns: List[ColumnSymbol] = field(default_factory=list)
    description: Optional[str] = None

    kind: ClassVar[SymbolKind] = SymbolKind.TABLE

    @property
    def schema(self) -> str:
        """Table schema in CSL form, e.g. `(id:long, name:string)`."""
        return _schema_text(self.columns)

    def get_column(self, name: str) -> Optional[ColumnSymbol]:
        """Find a column by name."""
        for column in self.columns:
            if column.name == name:
                return column
        return None


@dataclass
class ExternalTableSymbol:
    """Represents an external table.

    The schema text is kept as reported by the server, wrapped in
    parentheses; columns are derived from it.
    """
    name: str
    schema: str
    description: Optional[str] = None
    columns: List[ColumnSymbol] = field(init=False, repr=False)

    kind: ClassVar[SymbolKind] = SymbolKind.EXTERNAL_TABLE

    def __post_init__(self):
        self.columns = _columns_from_schema(self.schema)

    def get_column(self, name: str) -> Optional[ColumnSymbol]:
        """Find a column by name."""
        return next((c for c in self.columns if c.name == name), None)


@dataclass
class MaterializedViewSymbol:
    """Represents a materialized view and its defining query."""
    name: str
    schema: str
    query: str
    description: Optional[str] = None
    columns: List[ColumnSymbol] = field(init=False, repr=False)

    kind: ClassVar[SymbolKind] = SymbolKind.MATERIALIZED_VIEW

    def __post_init__(self):
        self.columns = _columns_from_schema(self.schema)

    def get_column(self, name: str) -> Optional[ColumnSymbol]:
        """Find a column by name."""
        return next((c for c in self.columns if c.name == name), None)


@dataclass
class ParameterSymbol:
    """Represents a function parameter."""
    name: str
    type: str
    default: Optional[str] = None

    kind: ClassVar[SymbolKind] = SymbolKind.PARAMETER

    @property
    def is_tabular(self) -> bool:
        """Whether the parameter takes a table, e.g. `T:(*)`."""
        return self.type.startswith("(")


@dataclass
class FunctionSymbol:
    """Represents a stored function."""
    name: str
    parameters: str
    body: str
    description: Optional[str] = None
    parameter_symbols: List[ParameterSymbol] = field(init=False, repr=False)

    kind: ClassVar[SymbolKind] = SymbolKind.FUNCTION

    def __post_init__(self):
        self.parameter_symbols = [
            ParameterSymbol(name=name, type=type_text, default=default)
            for name, type_text, default in parse_parameters(self.parameters)
        ]

    @property
    def signature(self) -> str:
        """Function name followed by its parameter list."""
        params = self.parameters.strip() if self.parameters else "()"
        if not params.startswith("("):
            params = f"({params})"
        return f"{self.name}{params}"


@dataclass
class EntityGroupSymbol:
    """Represents an entity group and its member entities."""
    name: str
    definition: str
    description: Optional[str] = None
    entities: List[str] = field(init=False, repr=False)

    kind: ClassVar[SymbolKind] = SymbolKind.ENTITY_GROUP

    def __post_init__(self):
        self.entities = parse_entity_references(self.definition)


Symbol = Union[
    TableSymbol,
    ExternalTableSymbol,
    MaterializedViewSymbol,
    FunctionSymbol,
    EntityGroupSymbol,
]


@dataclass
class DatabaseSymbol:
    """Represents a database and its members, in load order."""
    name: str
    members: List[Symbol] = field(default_factory=list)

    kind: ClassVar[SymbolKind] = SymbolKind.DATABASE

    def _members_of(self, kind: SymbolKind) -> list:
        return [m for m in self.members if m.kind == kind]

    @property
    def tables(self) -> List[TableSymbol]:
        return self._members_of(SymbolKind.TABLE)

    @property
    def external_tables(self) -> List[ExternalTableSymbol]:
        return self._members_of(SymbolKind.EXTERNAL_TABLE)

    @property
    def materialized_views(self) -> List[MaterializedViewSymbol]:
        return self._members_of(SymbolKind.MATERIALIZED_VIEW)

    @property
    def functions(self) -> List[FunctionSymbol]:
        return self._members_of(SymbolKind.FUNCTION)

    @property
    def entity_groups(self) -> List[EntityGroupSymbol]:
        return self._members_of(SymbolKind.ENTITY_GROUP)

    def get_member(self, name: str) -> Optional[Symbol]:
        """Find a member by name (first match in load order)."""
        for member in self.members:
            if member.name == name:
                return member
        return None


@dataclass(frozen=True)
class DatabaseName:
    """A database name as listed by the cluster, with its display name."""
    name: str
    pretty_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.pretty_name or self.name
