from __future__ import annotations
from dataclasses import replace
from typing import Any, Iterator, List, Optional, Tuple
import logging

from ..errors import DatabaseError, InvalidArgumentError
from ..filters import QueryOptions, parse_conditions, parse_group, parse_sort
from ..records import Result
from .compiler import (
    build_count,
    build_delete,
    build_select,
    build_update,
)

log = logging.getLogger("tablequery.query")

_MISSING = object()


def _check_count(value: Any, what: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{what} must be an integer or None, got {value!r}")
    return value if value > 0 else None


def _as_values(values: Any, value: Any) -> Any:
    # set("column", "value") is shorthand for set({"column": "value"})
    if value is not _MISSING:
        if not isinstance(values, str):
            raise InvalidArgumentError("A single value needs a column name")
        return {values: value}
    return values


class Query:
    """
    A chainable query against one table.

    Configuration methods (`conditions`, `group_by`, `sort_by`, `limit`,
    `offset`) mutate the query's options in place and return the query.
    Terminal methods (`fetch`, `count`, `set`, `delete`) compile the current
    options and run one statement.

    Iterating a query fetches fresh rows every time a new iteration starts.

    Not thread-safe: options and cached rows are unsynchronized instance state.
    """

    def __init__(self, table, *conditions: Any):
        self._table = table
        self._options = QueryOptions()
        self._results: Optional[List[Any]] = None
        if conditions:
            self.conditions(*conditions)

    @property
    def table(self):
        return self._table

    @property
    def options(self) -> QueryOptions:
        """A copy of the current options."""
        return replace(self._options)

    @property
    def results(self) -> Optional[List[Any]]:
        """Rows cached by the last fetch, or None."""
        return self._results

    def as_list(self) -> List[Any]:
        return list(self._results or [])

    # -------------------------------------------------------------------------
    # Query building
    # -------------------------------------------------------------------------

    def conditions(self, conditions: Any, *args: Any) -> "Query":
        """
        Filter the results. Accepts a condition string with its arguments,
        a [condition, *arguments] list, a nested list of conditions, or None
        to remove the filter.
        """
        node = parse_conditions(conditions, *args)
        if node is None:
            self._options.clear("where")
        else:
            self._options.where = node
        return self

    def where(self, conditions: Any, *args: Any) -> "Query":
        return self.conditions(conditions, *args)

    def group_by(self, key: Any, having: Any = None) -> "Query":
        """
        Group the results by one or more columns, optionally with HAVING
        conditions. None removes both the grouping and its conditions.
        """
        group = parse_group(key)
        if group is None:
            self._options.clear("group", "having")
            return self
        self._options.group = group
        if having is not None:
            self._options.having = parse_conditions(having)
        return self

    def group(self, key: Any, having: Any = None) -> "Query":
        return self.group_by(key, having)

    def sort_by(self, key: Any, direction: Any = "ASC") -> "Query":
        order = parse_sort(key, direction)
        if order is None:
            self._options.clear("order")
        else:
            self._options.order = order
        return self

    def sort(self, key: Any, direction: Any = "ASC") -> "Query":
        return self.sort_by(key, direction)

    def limit(self, limit: Optional[int]) -> "Query":
        self._options.limit = _check_count(limit, "limit")
        return self

    def offset(self, offset: Optional[int]) -> "Query":
        self._options.offset = _check_count(offset, "offset")
        return self

    # -------------------------------------------------------------------------
    # Compiling
    # -------------------------------------------------------------------------

    def to_sql(
        self,
        kind: str = "select",
        *,
        columns: Any = None,
        values: Any = None,
    ) -> Tuple[str, List[Any]]:
        """
        The statement and arguments a terminal operation would run.
        `kind` is one of select, count, update, delete.
        """
        name = self._table.name
        if kind == "select":
            return build_select(name, self._options, columns)
        if kind == "count":
            return build_count(name, self._options)
        if kind == "update":
            return build_update(name, self._options, values)
        if kind == "delete":
            return build_delete(name, self._options)
        raise InvalidArgumentError(f"Unknown statement kind: {kind!r}")

    # -------------------------------------------------------------------------
    # Executing
    # -------------------------------------------------------------------------

    def _execute(self, sql: str, arguments: List[Any]):
        database = getattr(self._table, "database", None)
        if database is None:
            raise DatabaseError("Query is not attached to a database")
        log.debug("%s %r", sql, arguments)
        statement = database.prepare(sql)
        statement.execute(arguments)
        return statement

    def fetch(self, columns: Any = None) -> List[Any]:
        """
        Fetch the rows matching the query.

        Without `columns` the rows are instances of the table's model. With
        `columns` (a name, a list of names/expressions, or a mapping of
        alias -> name/expression) the rows are plain Result objects.
        """
        sql, arguments = build_select(self._table.name, self._options, columns)
        statement = self._execute(sql, arguments)
        if columns is None:
            self._results = statement.fetch_all(self._table.model, table=self._table)
        else:
            self._results = statement.fetch_all(Result)
        return self._results

    def objects(self) -> List[Any]:
        return self.fetch(None)

    def count(self) -> int:
        # reuse rows we already hold
        if self._results:
            return len(self._results)
        sql, arguments = build_count(self._table.name, self._options)
        value = self._execute(sql, arguments).fetch_column()
        return int(value or 0)

    def set(self, values: Any, value: Any = _MISSING) -> int:
        """
        Update the matching rows with a mapping of column -> value, or a
        single column and value. Returns the number of rows updated.
        """
        sql, arguments = build_update(self._table.name, self._options, _as_values(values, value))
        self._results = None
        return self._execute(sql, arguments).row_count()

    def update(self, values: Any, value: Any = _MISSING) -> int:
        return self.set(values, value)

    def delete(self) -> int:
        sql, arguments = build_delete(self._table.name, self._options)
        self._results = None
        return self._execute(sql, arguments).row_count()

    # -------------------------------------------------------------------------
    # Iteration
    # -------------------------------------------------------------------------

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self.fetch()))

    def first(self) -> Any:
        rows = self.fetch()
        return rows[0] if rows else None

    def pluck(self, key: str) -> List[Any]:
        """Distinct values of one attribute across the rows, in first-seen order."""
        if self._results is None:
            self.fetch()
        seen: List[Any] = []
        for row in self._results:
            value = getattr(row, key)
            if value not in seen:
                seen.append(value)
        return seen

    def __repr__(self) -> str:
        return f"<Query {self._table.name!r} {', '.join(self._options.keys()) or 'all'}>"


__all__ = ["Query"]
