from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
import json

import jsonschema

from ..errors import InvalidArgumentError

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Combinator(str, Enum):
    AND = "and"
    OR = "or"
    XOR = "xor"


class Direction(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


CLAUSE_KEYS: Tuple[str, ...] = ("where", "group", "having", "order", "limit", "offset")

# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------

_QUOTES = ("'", '"', "`")


def find_placeholders(sql: str) -> List[int]:
    """
    Return the character offsets of every `?` placeholder in `sql`.

    A `?` inside a quoted segment ('...', "..." or `...`) is literal text, not a
    placeholder. Inside quotes a backslash escapes the next character and a
    doubled quote character stands for itself.
    """
    positions: List[int] = []
    quote: Optional[str] = None
    i, n = 0, len(sql)
    while i < n:
        ch = sql[i]
        if quote is not None:
            if ch == "\\" and quote != "`":
                i += 2
                continue
            if ch == quote:
                if i + 1 < n and sql[i + 1] == quote:
                    i += 2
                    continue
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == "?":
            positions.append(i)
        i += 1
    return positions


def is_sequence_value(value: Any) -> bool:
    """Bound values that expand to several placeholders (IN lists)."""
    return isinstance(value, (list, tuple))

# ---------------------------------------------------------------------------
# Filter tree
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Leaf:
    """
    A raw condition with `?` placeholders and one bound value per placeholder.
    A list/tuple value expands to `(?,?,...)` when compiled.
    """
    sql: str
    args: Tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.sql, str):
            raise InvalidArgumentError(f"Condition must be a string, got {type(self.sql).__name__}")
        object.__setattr__(self, "args", tuple(self.args))
        placeholders = len(find_placeholders(self.sql))
        if placeholders != len(self.args):
            raise InvalidArgumentError(
                f"Condition {self.sql!r} has {placeholders} placeholder(s) "
                f"but {len(self.args)} argument(s)"
            )
        for arg in self.args:
            if is_sequence_value(arg) and len(arg) == 0:
                raise InvalidArgumentError(f"Empty list bound to condition {self.sql!r}")


@dataclass(frozen=True)
class Group:
    """
    Ordered (combinator, node) pairs. The combinator of the first child is
    ignored. Always compiles to one parenthesized expression.
    """
    children: Tuple[Tuple[Combinator, "FilterNode"], ...] = ()

    @classmethod
    def of(cls, *nodes: "FilterNode", combinator: Combinator = Combinator.AND) -> "Group":
        return cls(tuple((combinator, n) for n in nodes))

    def _with(self, combinator: Combinator, node: "FilterNode") -> "Group":
        return Group(self.children + ((combinator, node),))

    def and_(self, node: "FilterNode") -> "Group":
        return self._with(Combinator.AND, node)

    def or_(self, node: "FilterNode") -> "Group":
        return self._with(Combinator.OR, node)

    def xor(self, node: "FilterNode") -> "Group":
        return self._with(Combinator.XOR, node)


FilterNode = Union[Leaf, Group]


def _combinator_for(name: Any) -> Optional[Combinator]:
    if not isinstance(name, str):
        return None
    try:
        return Combinator(name.strip().lower())
    except ValueError:
        return None


def _parse_element(item: Any) -> Tuple[Combinator, FilterNode]:
    # {"or": node}
    if isinstance(item, Mapping):
        if len(item) != 1:
            raise InvalidArgumentError("Combinator mappings must hold exactly one key")
        (name, node), = item.items()
        comb = _combinator_for(name)
        if comb is None:
            raise InvalidArgumentError(f"Unknown combinator: {name!r}")
        return comb, _parse_node(node)
    # ["or", node]
    if isinstance(item, (list, tuple)) and len(item) == 2:
        comb = _combinator_for(item[0])
        if comb is not None:
            return comb, _parse_node(item[1])
    return Combinator.AND, _parse_node(item)


def _parse_node(value: Any) -> FilterNode:
    if isinstance(value, (Leaf, Group)):
        return value
    if isinstance(value, str):
        return Leaf(value)
    if isinstance(value, (list, tuple)):
        if not value:
            raise InvalidArgumentError("Empty condition group")
        # a leading string makes this a single condition with its arguments
        if isinstance(value[0], str):
            return Leaf(value[0], tuple(value[1:]))
        return Group(tuple(_parse_element(item) for item in value))
    raise InvalidArgumentError(f"Invalid condition: {value!r}")


def parse_conditions(value: Any, *args: Any) -> Optional[FilterNode]:
    """
    Build a filter tree from the nested condition shapes accepted by the
    query builder. Returns None when the input clears the conditions.

        "age > ?", 18                      -> Leaf
        ["age > ?", 18]                    -> Leaf
        [["a = ?", 1], ["or", ["b = ?", 2]]] -> Group
    """
    if value is None or (isinstance(value, str) and value == "" and not args):
        if args:
            raise InvalidArgumentError("Arguments given without a condition")
        return None
    if isinstance(value, str):
        return Leaf(value, args)
    if args:
        raise InvalidArgumentError("Extra arguments are only accepted with a string condition")
    if isinstance(value, (Leaf, Group)):
        return value
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        return _parse_node(value)
    raise InvalidArgumentError(f"Invalid conditions: {type(value).__name__}")

# ---------------------------------------------------------------------------
# Modifiers (GROUP BY / ORDER BY)
# ---------------------------------------------------------------------------

def normalize_direction(direction: Any) -> str:
    if isinstance(direction, str) and direction.strip().upper() in ("ASC", "DESC"):
        return direction.strip().upper()
    return Direction.ASC.value


@dataclass(frozen=True)
class ModifierList:
    """
    Ordered column -> direction pairs. Grouping columns carry no direction.
    """
    items: Tuple[Tuple[str, Optional[str]], ...] = ()

    def columns(self) -> List[str]:
        return [c for c, _ in self.items]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


def _check_column(column: Any) -> str:
    if not isinstance(column, str) or not column.strip():
        raise InvalidArgumentError(f"Invalid column name: {column!r}")
    return column.strip()


def _ordered(pairs) -> ModifierList:
    # later duplicates overwrite the direction but keep the first position
    merged: Dict[str, Optional[str]] = {}
    for column, direction in pairs:
        merged[column] = direction
    return ModifierList(tuple(merged.items()))


def parse_group(key: Any) -> Optional[ModifierList]:
    if key is None or (isinstance(key, (str, list, tuple)) and len(key) == 0):
        return None
    if isinstance(key, str):
        return ModifierList(((_check_column(key), None),))
    if isinstance(key, (list, tuple)):
        return _ordered((_check_column(c), None) for c in key)
    raise InvalidArgumentError(f"Invalid grouping: {type(key).__name__}")


def parse_sort(key: Any, direction: Any = "ASC") -> Optional[ModifierList]:
    """
    Accepts:
      - 'name'                         -> name ASC (or `direction`)
      - {'name': 'DESC', 'age': 'ASC'}
      - ['name', ('age', 'desc')]      -> bare columns default to ASC
    Unknown directions are coerced to ASC.
    """
    if key is None or (isinstance(key, (str, list, tuple, Mapping)) and len(key) == 0):
        return None
    if isinstance(key, str):
        return ModifierList(((_check_column(key), normalize_direction(direction)),))
    if isinstance(key, Mapping):
        return _ordered((_check_column(c), normalize_direction(d)) for c, d in key.items())
    if isinstance(key, (list, tuple)):
        pairs = []
        for item in key:
            if isinstance(item, str):
                pairs.append((_check_column(item), Direction.ASC.value))
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                pairs.append((_check_column(item[0]), normalize_direction(item[1])))
            else:
                raise InvalidArgumentError(f"Invalid sort item: {item!r}")
        return _ordered(pairs)
    raise InvalidArgumentError(f"Invalid sorting: {type(key).__name__}")

# ---------------------------------------------------------------------------
# Query options and compiled output
# ---------------------------------------------------------------------------

@dataclass
class QueryOptions:
    where: Optional[FilterNode] = None
    group: Optional[ModifierList] = None
    having: Optional[FilterNode] = None
    order: Optional[ModifierList] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    def keys(self) -> Tuple[str, ...]:
        return tuple(k for k in CLAUSE_KEYS if getattr(self, k) is not None)

    def clear(self, *keys: str) -> None:
        for k in keys:
            setattr(self, k, None)


@dataclass
class CompiledClause:
    fragments: List[str] = field(default_factory=list)
    arguments: List[Any] = field(default_factory=list)

    @property
    def sql(self) -> str:
        if not self.fragments:
            return ""
        return " " + " ".join(self.fragments)

# ---------------------------------------------------------------------------
# JSON Schemas
# ---------------------------------------------------------------------------

SEARCH_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "https://example.com/tablequery/search.schema.json",
    "title": "Table search",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "table": {"type": "string", "minLength": 1},
        "columns": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {"type": "array", "items": {"type": "string", "minLength": 1}},
                {"type": "object", "additionalProperties": {"type": "string", "minLength": 1}},
                {"type": "null"},
            ]
        },
        # nested shapes are checked by parse_conditions
        "conditions": {"type": ["string", "array", "null"]},
        "having": {"type": ["string", "array", "null"]},
        "group": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {"type": "array", "items": {"type": "string", "minLength": 1}},
                {"type": "null"},
            ]
        },
        "sort": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {"type": "object", "additionalProperties": {"type": "string"}},
                {
                    "type": "array",
                    "items": {
                        "oneOf": [
                            {"type": "string", "minLength": 1},
                            {
                                "type": "array",
                                "prefixItems": [{"type": "string"}, {"type": "string"}],
                                "minItems": 2,
                                "maxItems": 2,
                            },
                        ]
                    },
                },
                {"type": "null"},
            ]
        },
        "limit": {"type": ["integer", "null"], "minimum": 0},
        "offset": {"type": ["integer", "null"], "minimum": 0},
    },
    "required": ["table"],
}


@dataclass
class SearchRequest:
    """
    A query described as JSON: the table plus the builder options.
    """
    table: str = ""
    columns: Any = None
    conditions: Any = None
    group: Any = None
    having: Any = None
    sort: Any = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchRequest":
        return cls(
            table=str(data.get("table", "")),
            columns=data.get("columns"),
            conditions=data.get("conditions"),
            group=data.get("group"),
            having=data.get("having"),
            sort=data.get("sort"),
            limit=data.get("limit"),
            offset=data.get("offset"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "columns": self.columns,
            "conditions": self.conditions,
            "group": self.group,
            "having": self.having,
            "sort": self.sort,
            "limit": self.limit,
            "offset": self.offset,
        }

    def apply(self, query):
        """Configure a Query with these options and return it."""
        return (
            query.conditions(self.conditions)
            .group_by(self.group, self.having)
            .sort_by(self.sort)
            .limit(self.limit)
            .offset(self.offset)
        )


def parse_search_json(
    payload: Union[str, Dict[str, Any]],
    *,
    validate: bool = True,
) -> SearchRequest:
    """
    Accept a JSON string or dict and return a SearchRequest.
    Raises jsonschema.ValidationError when the payload does not match SEARCH_SCHEMA.
    """
    data = json.loads(payload) if isinstance(payload, str) else payload
    if validate:
        jsonschema.validate(instance=data, schema=SEARCH_SCHEMA)
    return SearchRequest.from_dict(data)


# ---------------------------------------------------------------------------
# Public exports
# ---------------------------------------------------------------------------

__all__ = [
    "Combinator",
    "Direction",
    "CLAUSE_KEYS",
    "find_placeholders",
    "is_sequence_value",
    "Leaf",
    "Group",
    "FilterNode",
    "parse_conditions",
    "normalize_direction",
    "ModifierList",
    "parse_group",
    "parse_sort",
    "QueryOptions",
    "CompiledClause",
    "SEARCH_SCHEMA",
    "SearchRequest",
    "parse_search_json",
]
