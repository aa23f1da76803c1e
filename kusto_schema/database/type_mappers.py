"""Column type resolution and schema text parsing for Kusto symbols."""

import logging
import re
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


# CLR type names reported by `.show database schema` and their Kusto scalar types
CLR_TYPE_MAP: Dict[str, str] = {
    "system.string": "string",
    "system.int64": "long",
    "system.int32": "int",
    "system.double": "real",
    "system.single": "real",
    "system.boolean": "bool",
    "system.sbyte": "bool",
    "system.datetime": "datetime",
    "system.timespan": "timespan",
    "system.guid": "guid",
    "system.object": "dynamic",
    "system.decimal": "decimal",
    "system.data.sqltypes.sqldecimal": "decimal",
}

# Kusto type names and their aliases
KUSTO_TYPE_MAP: Dict[str, str] = {
    "string": "string",
    "long": "long",
    "int64": "long",
    "int": "int",
    "int32": "int",
    "real": "real",
    "double": "real",
    "bool": "bool",
    "boolean": "bool",
    "datetime": "datetime",
    "date": "datetime",
    "timespan": "timespan",
    "time": "timespan",
    "guid": "guid",
    "uniqueid": "guid",
    "dynamic": "dynamic",
    "decimal": "decimal",
}

DEFAULT_SCALAR_TYPE = "dynamic"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class KustoTypeMapper:
    """Maps column type names from management command responses to Kusto scalar types."""

    def to_scalar_type(self, column_type: Optional[str]) -> str:
        """Convert a CLR or Kusto type name to a Kusto scalar type name.

        Unrecognized types resolve to `dynamic`.
        """
        if not column_type:
            return DEFAULT_SCALAR_TYPE

        key = column_type.strip().lower()
        if key in CLR_TYPE_MAP:
            return CLR_TYPE_MAP[key]
        if key in KUSTO_TYPE_MAP:
            return KUSTO_TYPE_MAP[key]

        logger.debug("Unknown column type %r, using %s", column_type, DEFAULT_SCALAR_TYPE)
        return DEFAULT_SCALAR_TYPE


def quote_name(name: str) -> str:
    """Bracket-quote a name unless it is a plain identifier."""
    if _IDENTIFIER.match(name):
        return name
    return "['" + name.replace("'", "\\'") + "']"


def unquote_name(name: str) -> str:
    """Strip bracket quoting (`['x']` or `["x"]`) from a name."""
    name = name.strip()
    if len(name) >= 4 and name.startswith("[") and name.endswith("]"):
        inner = name[1:-1].strip()
        if len(inner) >= 2 and inner[0] == inner[-1] and inner[0] in ("'", '"'):
            return inner[1:-1].replace("\\'", "'").replace('\\"', '"')
    return name


def strip_parens(text: str) -> str:
    """Remove one pair of enclosing parentheses, if present."""
    text = text.strip()
    if text.startswith("(") and text.endswith(")") and _closing_index(text, 0) == len(text) - 1:
        return text[1:-1].strip()
    return text


def _closing_index(text: str, open_index: int) -> int:
    """Return the index of the bracket closing the one at open_index, or -1."""
    depth = 0
    quote = None
    for i in range(open_index, len(text)):
        ch = text[i]
        if quote:
            if ch == quote and text[i - 1] != "\\":
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split text on a separator that is not nested in brackets or quotes."""
    parts: List[str] = []
    depth = 0
    quote = None
    current: List[str] = []

    for i, ch in enumerate(text):
        if quote:
            current.append(ch)
            if ch == quote and text[i - 1] != "\\":
                quote = None
            continue

        if ch in ("'", '"'):
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == separator and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


def split_declaration(declaration: str) -> Tuple[str, str]:
    """Split `name:type` into (name, type), honoring bracket-quoted names."""
    declaration = declaration.strip()
    start = 0
    if declaration.startswith("["):
        close = _closing_index(declaration, 0)
        if close > 0:
            start = close
    colon = declaration.find(":", start)
    if colon < 0:
        return unquote_name(declaration), DEFAULT_SCALAR_TYPE
    return unquote_name(declaration[:colon]), declaration[colon + 1:].strip()


def parse_columns(schema: str) -> List[Tuple[str, str]]:
    """Parse CSL schema text such as `(a:string, ['b c']:long)` into (name, type) pairs."""
    if not schema:
        return []
    return [split_declaration(part) for part in split_top_level(strip_parens(schema))]


def parse_parameters(parameters: str) -> List[Tuple[str, str, Optional[str]]]:
    """Parse a function parameter list into (name, type, default) triples.

    Handles scalar parameters (`x:long = 10`) and tabular ones (`T:(*)`).
    """
    if not parameters:
        return []

    result = []
    for part in split_top_level(strip_parens(parameters)):
        default = None
        pieces = split_top_level(part, "=")
        if len(pieces) > 1:
            part, default = pieces[0], "=".join(pieces[1:]).strip()
        name, type_text = split_declaration(part)
        result.append((name, type_text, default))
    return result


def parse_entity_references(entities: str) -> List[str]:
    """Parse an entity group's member list, e.g. `[cluster('a').database('b'), ...]`."""
    if not entities:
        return []
    text = entities.strip()
    if text.startswith("[") and text.endswith("]") and _closing_index(text, 0) == len(text) - 1:
        text = text[1:-1]
    return split_top_level(text)
