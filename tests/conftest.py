"""Shared fixtures: a DB-API connection double that records every statement."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

import mysql.connector
import pytest

from tablequery.database import Database


@dataclass
class FakeResult:
    columns: Sequence[str] = ()
    rows: Sequence[Sequence[Any]] = ()
    rowcount: Optional[int] = None
    lastrowid: Optional[int] = None
    error: Optional[Exception] = None


class FakeCursor:
    def __init__(self, connection: "FakeConnection", prepared: bool):
        self.connection = connection
        self.prepared = prepared
        self.description = None
        self.rowcount = -1
        self.lastrowid = None
        self._rows: List[Sequence[Any]] = []
        self.closed = False

    def execute(self, sql, params=()):
        self.connection.executed.append((sql, list(params)))
        result = self.connection.next_result()
        if result.error is not None:
            raise result.error
        self.description = [(c, None) for c in result.columns] or None
        self._rows = list(result.rows)
        self.rowcount = result.rowcount if result.rowcount is not None else len(self._rows)
        self.lastrowid = result.lastrowid

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def close(self):
        self.closed = True


class FakeConnection:
    """
    Queue results with `respond(...)`; each executed statement consumes one.
    With an empty queue a statement affects no rows and returns nothing.
    Like mysql.connector, opening a cursor while another still holds unread
    rows fails.
    """

    def __init__(self):
        self.executed: List[tuple] = []
        self.results: List[FakeResult] = []
        self.cursors: List[FakeCursor] = []
        self.closed = False

    def respond(self, columns=(), rows=(), rowcount=None, lastrowid=None, error=None) -> "FakeConnection":
        self.results.append(FakeResult(columns, rows, rowcount, lastrowid, error))
        return self

    def next_result(self) -> FakeResult:
        return self.results.pop(0) if self.results else FakeResult(rowcount=0)

    def cursor(self, prepared: bool = False):
        if any(c._rows for c in self.cursors):
            raise mysql.connector.errors.InternalError("Unread result found")
        cursor = FakeCursor(self, prepared)
        self.cursors.append(cursor)
        return cursor

    def close(self):
        self.closed = True

    @property
    def last_sql(self) -> str:
        return self.executed[-1][0]

    @property
    def last_args(self) -> list:
        return self.executed[-1][1]


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def database(connection) -> Database:
    return Database(connection, "shop")


@pytest.fixture
def users(database):
    return database.table("users")
