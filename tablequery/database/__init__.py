"""
Database access for tablequery.

This module handles MySQL connections, prepared statement execution and tables.
"""

from .connection import (
    ConnectionArguments,
    Statement,
    Database,
    connect,
    disconnect_all,
)
from .table import Table

__all__ = [
    "ConnectionArguments",
    "Statement",
    "Database",
    "connect",
    "disconnect_all",
    "Table",
]
