"""Tests for the HTTP surface, with the database swapped for a recording double."""

from __future__ import annotations

import mysql.connector
import pytest
from fastapi.testclient import TestClient

from tablequery.database import Database
import tablequery.main as main_module
from tablequery.main import app, get_database, get_registry
from tablequery.registry import TableRegistry

TABLES_YAML = """
tables:
  users:
    table: app_users
    maxLimit: 20
  orders:
"""


@pytest.fixture
def client(tmp_path, connection):
    path = tmp_path / "tables.yaml"
    path.write_text(TABLES_YAML, encoding="utf-8")
    registry = TableRegistry(path, max_limit=50)
    registry.load()
    database = Database(connection, "shop")
    registry.bind(database)

    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_database] = lambda: database
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "tables": ["users", "orders"]}


def test_sql_builds_without_executing(client, connection):
    r = client.post("/sql", json={
        "table": "users",
        "conditions": [["age > ?", 18], ["or", ["id IN ?", [1, 2]]]],
        "sort": {"name": "DESC"},
    })
    assert r.status_code == 200
    body = r.json()
    assert body["sql"] == (
        "SELECT * FROM `app_users` WHERE ( age > ? || id IN (?,?) ) ORDER BY `name` DESC LIMIT 20"
    )
    assert body["params"] == [18, 1, 2]
    assert body["countSql"].startswith("SELECT COUNT(*) FROM `app_users` WHERE")
    assert body["limitApplied"] == 20
    assert body["mappedTable"] == "app_users"
    assert connection.executed == []


def test_sql_needs_no_database(tmp_path, monkeypatch):
    path = tmp_path / "tables.yaml"
    path.write_text(TABLES_YAML, encoding="utf-8")
    registry = TableRegistry(path)
    registry.load()

    def _no_connect(*args, **kwargs):
        raise AssertionError("compiling must not connect")

    monkeypatch.setattr(main_module, "connect", _no_connect)
    monkeypatch.setattr(main_module.SETTINGS, "database_url", "")
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        r = TestClient(app).post("/sql", json={"table": "users", "conditions": ["age > ?", 1]})
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 200
    assert r.json()["sql"] == "SELECT * FROM `app_users` WHERE age > ? LIMIT 20"
    assert r.json()["params"] == [1]


def test_search_without_database_url_is_500(tmp_path, monkeypatch):
    path = tmp_path / "tables.yaml"
    path.write_text(TABLES_YAML, encoding="utf-8")
    registry = TableRegistry(path)
    registry.load()
    monkeypatch.setattr(main_module.SETTINGS, "database_url", "")
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        r = TestClient(app).post("/search", json={"table": "users"})
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 500


def test_search_returns_rows(client, connection):
    connection.respond(columns=["id", "name"], rows=[(1, "ann"), (2, "bob")])
    r = client.post("/search", json={"table": "orders", "columns": ["id", "name"], "limit": 5, "offset": 10})
    assert r.status_code == 200
    body = r.json()
    assert body["rows"] == [{"id": 1, "name": "ann"}, {"id": 2, "name": "bob"}]
    assert body["count"] == 2
    assert connection.last_sql == "SELECT `id`, `name` FROM `orders` LIMIT 10, 5"


def test_count_ignores_paging(client, connection):
    connection.respond(columns=["COUNT(*)"], rows=[(7,)])
    r = client.post("/count", json={"table": "users", "conditions": ["age > ?", 18], "limit": 3})
    assert r.status_code == 200
    assert r.json() == {"count": 7, "mappedTable": "app_users"}
    assert connection.last_sql == "SELECT COUNT(*) FROM `app_users` WHERE age > ?"


# -- Errors -------------------------------------------------------------------


def test_unknown_table_is_404(client):
    r = client.post("/sql", json={"table": "ghosts"})
    assert r.status_code == 404


@pytest.mark.parametrize("payload", [
    {"table": "users", "limit": -1},
    {"table": "users", "extra": True},
    {"table": "users", "conditions": ["a = ? AND b = ?", 1]},
])
def test_bad_payload_is_400(client, payload):
    r = client.post("/sql", json=payload)
    assert r.status_code == 400


def test_driver_failure_is_502(client, connection):
    connection.respond(error=mysql.connector.Error(msg="Table doesn't exist", errno=1146))
    r = client.post("/search", json={"table": "orders"})
    assert r.status_code == 502
    assert "Table doesn't exist" in r.json()["detail"]
