from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Sequence, Tuple
import re

from ..errors import InvalidArgumentError, InvalidClauseError
from ..filters import (
    Combinator,
    CompiledClause,
    FilterNode,
    Group,
    Leaf,
    ModifierList,
    QueryOptions,
    find_placeholders,
    is_sequence_value,
)


READ_CLAUSES: Tuple[str, ...] = ("where", "group", "having", "order", "limit", "offset")
WRITE_CLAUSES: Tuple[str, ...] = ("where", "order", "limit", "offset")

_COMBINATOR_SQL = {
    Combinator.AND: " && ",
    Combinator.OR: " || ",
    Combinator.XOR: " XOR ",
}

_PLAIN_IDENT_RE = re.compile(r"^[\w$]+$")

# -----------------------------------------------------------------------------
# Identifiers
# -----------------------------------------------------------------------------

def quote_identifier(name: str) -> str:
    """
    Backtick-quote an identifier. Doubles internal backticks.
    """
    return "`" + name.replace("`", "``") + "`"

def quote_dotted_identifier(name: str) -> str:
    """
    Quote a possibly dotted identifier (e.g., schema.table or table.column).
    """
    return ".".join(quote_identifier(p.strip()) for p in name.split("."))

# -----------------------------------------------------------------------------
# Conditions (WHERE / HAVING)
# -----------------------------------------------------------------------------

class _ArgumentSink:
    """
    Collects bound values in the order their placeholders appear.
    """
    def __init__(self) -> None:
        self.values: List[Any] = []

    def add(self, value: Any) -> None:
        self.values.append(value)

    def extend(self, values: Iterable[Any]) -> None:
        self.values.extend(values)


def _compile_leaf(leaf: Leaf, sink: _ArgumentSink) -> str:
    positions = find_placeholders(leaf.sql)
    out: List[str] = []
    last = 0
    for pos, arg in zip(positions, leaf.args):
        if is_sequence_value(arg):
            out.append(leaf.sql[last:pos])
            out.append("(" + ",".join("?" * len(arg)) + ")")
            sink.extend(arg)
            last = pos + 1
        else:
            sink.add(arg)
    out.append(leaf.sql[last:])
    return "".join(out)


def _compile_node(node: FilterNode, sink: _ArgumentSink) -> str:
    if isinstance(node, Leaf):
        return _compile_leaf(node, sink)
    if isinstance(node, Group):
        parts: List[str] = []
        for i, (combinator, child) in enumerate(node.children):
            if i:
                parts.append(_COMBINATOR_SQL[combinator])
            parts.append(_compile_node(child, sink))
        return "( " + "".join(parts) + " )"
    raise InvalidArgumentError(f"Not a filter node: {node!r}")


def compile_conditions(node: FilterNode) -> Tuple[str, List[Any]]:
    """
    Returns (fragment, arguments) for a filter tree. Sequence values are
    spliced into the argument list in place of their single placeholder.
    """
    sink = _ArgumentSink()
    fragment = _compile_node(node, sink)
    return fragment, sink.values

def render_conditions(node: FilterNode, keyword: str = "WHERE") -> Tuple[str, List[Any]]:
    fragment, arguments = compile_conditions(node)
    return f"{keyword} {fragment}", arguments

# -----------------------------------------------------------------------------
# Modifiers (GROUP BY / ORDER BY)
# -----------------------------------------------------------------------------

def compile_modifiers(modifiers: ModifierList, keyword: str = "ORDER BY") -> str:
    rendered: List[str] = []
    for column, direction in modifiers:
        ident = quote_dotted_identifier(column)
        rendered.append(f"{ident} {direction}" if direction else ident)
    return f"{keyword} " + ", ".join(rendered)

# -----------------------------------------------------------------------------
# Clause assembly
# -----------------------------------------------------------------------------

def assemble_clauses(
    options: QueryOptions,
    allowed: Sequence[str] = READ_CLAUSES,
    *,
    operation: str = "query",
) -> CompiledClause:
    """
    Combine the clauses held in `options` in the fixed order
    where, group, having, order, limit. Offset is folded into LIMIT.
    Raises InvalidClauseError if `options` holds a key outside `allowed`.
    """
    invalid = [k for k in options.keys() if k not in allowed]
    if invalid:
        raise InvalidClauseError(operation, invalid)

    out = CompiledClause()
    if options.where is not None:
        fragment, args = render_conditions(options.where, "WHERE")
        out.fragments.append(fragment)
        out.arguments.extend(args)
    if options.group is not None:
        out.fragments.append(compile_modifiers(options.group, "GROUP BY"))
    if options.having is not None:
        fragment, args = render_conditions(options.having, "HAVING")
        out.fragments.append(fragment)
        out.arguments.extend(args)
    if options.order is not None:
        out.fragments.append(compile_modifiers(options.order, "ORDER BY"))
    if options.limit is not None:
        if options.offset is not None:
            out.fragments.append(f"LIMIT {int(options.offset)}, {int(options.limit)}")
        else:
            out.fragments.append(f"LIMIT {int(options.limit)}")
    return out

# -----------------------------------------------------------------------------
# Statements
# -----------------------------------------------------------------------------

def build_projection(columns: Any) -> str:
    """
    Turn requested columns into a SELECT list.
    - None / empty -> '*'
    - bare identifiers are backtick-quoted, '*' passes through
    - anything else is an expression and is wrapped in parentheses
    - a mapping is alias -> column/expression
    """
    if columns is None:
        return "*"
    if isinstance(columns, str):
        columns = [columns]
    if isinstance(columns, Mapping):
        items: List[Tuple[Optional[str], Any]] = list(columns.items())
    elif isinstance(columns, (list, tuple)):
        items = [(None, c) for c in columns]
    else:
        raise InvalidArgumentError(f"Invalid columns: {type(columns).__name__}")
    if not items:
        return "*"

    out: List[str] = []
    for alias, expr in items:
        if not isinstance(expr, str) or not expr.strip():
            raise InvalidArgumentError(f"Invalid column: {expr!r}")
        s = expr.strip()
        if s == "*":
            rendered = s
        elif _PLAIN_IDENT_RE.match(s):
            rendered = quote_identifier(s)
        else:
            rendered = f"( {s} )"
        if alias is not None:
            if not isinstance(alias, str) or not alias:
                raise InvalidArgumentError(f"Invalid alias: {alias!r}")
            rendered = f"{rendered} AS {quote_identifier(alias)}"
        out.append(rendered)
    return ", ".join(out)

def build_assignments(values: Mapping) -> Tuple[str, List[Any]]:
    if not isinstance(values, Mapping) or not values:
        raise InvalidArgumentError("Values must be a non-empty mapping of column -> value")
    parts: List[str] = []
    args: List[Any] = []
    for column, value in values.items():
        if not isinstance(column, str) or not column:
            raise InvalidArgumentError(f"Invalid column name: {column!r}")
        parts.append(f"{quote_identifier(column)} = ?")
        args.append(value)
    return ", ".join(parts), args

def build_select(table: str, options: QueryOptions, columns: Any = None) -> Tuple[str, List[Any]]:
    clauses = assemble_clauses(options, READ_CLAUSES, operation="fetch")
    sql = f"SELECT {build_projection(columns)} FROM {quote_identifier(table)}{clauses.sql}"
    return sql, clauses.arguments

def build_count(table: str, options: QueryOptions) -> Tuple[str, List[Any]]:
    clauses = assemble_clauses(options, READ_CLAUSES, operation="count")
    return f"SELECT COUNT(*) FROM {quote_identifier(table)}{clauses.sql}", clauses.arguments

def build_update(table: str, options: QueryOptions, values: Mapping) -> Tuple[str, List[Any]]:
    clauses = assemble_clauses(options, WRITE_CLAUSES, operation="set")
    assignments, args = build_assignments(values)
    sql = f"UPDATE {quote_identifier(table)} SET {assignments}{clauses.sql}"
    return sql, args + clauses.arguments

def build_delete(table: str, options: QueryOptions) -> Tuple[str, List[Any]]:
    clauses = assemble_clauses(options, WRITE_CLAUSES, operation="delete")
    return f"DELETE FROM {quote_identifier(table)}{clauses.sql}", clauses.arguments

def build_insert(table: str, values: Mapping) -> Tuple[str, List[Any]]:
    assignments, args = build_assignments(values)
    return f"INSERT INTO {quote_identifier(table)} SET {assignments}", args

# -----------------------------------------------------------------------------
# Public exports
# -----------------------------------------------------------------------------
__all__ = [
    "READ_CLAUSES",
    "WRITE_CLAUSES",
    "quote_identifier",
    "quote_dotted_identifier",
    "compile_conditions",
    "render_conditions",
    "compile_modifiers",
    "assemble_clauses",
    "build_projection",
    "build_assignments",
    "build_select",
    "build_count",
    "build_update",
    "build_delete",
    "build_insert",
]
