from __future__ import annotations
from typing import Any, List, Optional, Type
import logging

from ..errors import DatabaseError, InvalidArgumentError, MetadataError
from ..query import Query, build_insert
from ..records import Record, Result

log = logging.getLogger("tablequery.database")

_MISSING = object()

_PRIMARY_KEY_SQL = """
SELECT COLUMN_NAME
FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE
WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = ? AND CONSTRAINT_NAME = 'PRIMARY'
ORDER BY ORDINAL_POSITION
""".strip()


class Table:
    """
    A named table in a Database. Builds queries and inserts rows.

    With `database=None` the table only compiles SQL; running a statement
    raises DatabaseError.
    """

    def __init__(self, database, name: str):
        if not isinstance(name, str) or not name:
            raise InvalidArgumentError(f"Bad table name: {name!r}")
        self._database = database
        self._name = name
        self._primary_key: Optional[List[str]] = None

    @property
    def database(self):
        return self._database

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> Type[Result]:
        return self._database.model_for_table(self._name)

    def query(self, *conditions: Any) -> Query:
        return Query(self, *conditions)

    def insert(self, values: Any, value: Any = _MISSING) -> int:
        """
        Insert one row from a mapping of column -> value (or a single column
        and value). Returns the number of rows inserted.
        """
        if value is not _MISSING:
            values = {values: value}
        sql, arguments = build_insert(self._name, values)
        log.debug("%s %r", sql, arguments)
        statement = self._database.prepare(sql)
        statement.execute(arguments)
        return statement.row_count()

    def primary_key(self) -> List[str]:
        """
        Primary key column names in index order, read from the database once.
        """
        if self._primary_key is None:
            try:
                statement = self._database.prepare(_PRIMARY_KEY_SQL)
                statement.execute([self._name])
                rows = statement.fetch_all(Result)
            except DatabaseError as e:
                raise MetadataError(f"Couldn't discover the primary key of {self._name}: {e}") from e
            self._primary_key = [r.COLUMN_NAME for r in rows]
        return list(self._primary_key)

    def new(self, **values: Any):
        """An unsaved record of this table's model."""
        model = self.model
        if not issubclass(model, Record):
            raise InvalidArgumentError(f"{model.__name__} rows cannot be saved")
        return model.model_validate(values).bind(self)

    def __repr__(self) -> str:
        return f"<Table {self._name!r}>"


__all__ = ["Table"]
