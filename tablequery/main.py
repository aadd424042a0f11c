from __future__ import annotations

import logging
from typing import Any, Dict

import jsonschema
from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, configure_logging
from .database import Database, Table, connect
from .errors import DatabaseError, InvalidArgumentError, InvalidClauseError
from .filters import SearchRequest, parse_search_json
from .query import Query
from .registry import TableRegistry

SETTINGS = Settings.from_env()
configure_logging(SETTINGS.log_level)

log = logging.getLogger("tablequery.api")

app = FastAPI(title="tablequery", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

REG = TableRegistry(SETTINGS.tables_file, max_limit=SETTINGS.max_limit)


def get_registry() -> TableRegistry:
    if not REG.loaded:
        REG.load()
    return REG


def get_database(registry: TableRegistry = Depends(get_registry)) -> Database:
    if not SETTINGS.database_url:
        raise HTTPException(status_code=500, detail="TABLEQUERY_DATABASE_URL is not set")
    database = connect(SETTINGS.database_url)
    registry.bind(database)
    return database


def _prepare(payload: Dict[str, Any], registry: TableRegistry, table_for):
    """
    Validate the payload, map the entity to its table and build the query.
    `table_for` turns the mapped table name into a Table.
    """
    req: SearchRequest = parse_search_json(payload, validate=True)
    entry = registry.ensure(req.table)
    req.limit = registry.cap_limit(req.table, req.limit)
    query: Query = req.apply(table_for(entry["table"]).query())
    return req, entry, query


def _run(fn):
    try:
        return fn()
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except jsonschema.ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except (InvalidArgumentError, InvalidClauseError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        log.exception("Query failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e))


@app.on_event("startup")
def _startup():
    if SETTINGS.tables_file.exists():
        REG.load()


@app.get("/healthz")
def health(registry: TableRegistry = Depends(get_registry)):
    return {"ok": True, "tables": registry.names()}


@app.post("/sql")
def build_query(
    payload: dict = Body(..., description="Search JSON"),
    registry: TableRegistry = Depends(get_registry),
):
    def _do():
        # compile only, no connection needed
        req, entry, query = _prepare(payload, registry, lambda name: Table(None, name))
        sql, params = query.to_sql("select", columns=req.columns)
        count_sql, count_params = query.to_sql("count")
        return {
            "sql": sql,
            "params": params,
            "countSql": count_sql,
            "countParams": count_params,
            "limitApplied": req.limit,
            "mappedTable": entry["table"],
        }

    return _run(_do)


@app.post("/search")
def search(
    payload: dict = Body(..., description="Search JSON"),
    registry: TableRegistry = Depends(get_registry),
    database: Database = Depends(get_database),
):
    def _do():
        req, entry, query = _prepare(payload, registry, database.table)
        sql, params = query.to_sql("select", columns=req.columns)
        rows = query.fetch(req.columns)
        return {
            "rows": [r.as_dict() for r in rows],
            "count": len(rows),
            "sql": sql,
            "params": params,
            "limitApplied": req.limit,
            "mappedTable": entry["table"],
        }

    return _run(_do)


@app.post("/count")
def count(
    payload: dict = Body(..., description="Search JSON"),
    registry: TableRegistry = Depends(get_registry),
    database: Database = Depends(get_database),
):
    def _do():
        _, entry, query = _prepare(payload, registry, database.table)
        # a count covers every matching row
        query.limit(None).offset(None)
        return {"count": query.count(), "mappedTable": entry["table"]}

    return _run(_do)
