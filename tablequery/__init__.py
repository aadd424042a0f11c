"""
tablequery: map MySQL tables to objects and build parameterized SQL from
composable filter trees.
"""

from .errors import (
    InvalidArgumentError,
    InvalidClauseError,
    DatabaseError,
    InvalidDatabaseError,
    MetadataError,
    UnboundRecordError,
)
from .filters import Leaf, Group, Combinator, QueryOptions, parse_conditions
from .records import Result, Record, Lifecycle
from .query import Query, compile_conditions, compile_modifiers, assemble_clauses
from .database import Database, Table, connect, disconnect_all

__version__ = "0.1.0"

__all__ = [
    "InvalidArgumentError",
    "InvalidClauseError",
    "DatabaseError",
    "InvalidDatabaseError",
    "MetadataError",
    "UnboundRecordError",
    "Leaf",
    "Group",
    "Combinator",
    "QueryOptions",
    "parse_conditions",
    "Result",
    "Record",
    "Lifecycle",
    "Query",
    "compile_conditions",
    "compile_modifiers",
    "assemble_clauses",
    "Database",
    "Table",
    "connect",
    "disconnect_all",
]
