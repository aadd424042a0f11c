"""
Error types raised by the tablequery package.
"""

from __future__ import annotations
from typing import Optional


class InvalidArgumentError(ValueError):
    """Malformed input to a query builder or parser method."""


class InvalidClauseError(ValueError):
    """
    An operation was invoked while the query holds options it does not accept,
    e.g. a GROUP BY on a DELETE.
    """

    def __init__(self, operation: str, keys):
        self.operation = operation
        self.keys = tuple(keys)
        super().__init__(
            f"Invalid clause combination for {operation}: {', '.join(self.keys)}"
        )


class DatabaseError(Exception):
    pass


class InvalidDatabaseError(DatabaseError):
    """
    The driver reported a failure. Carries the driver's message and error code.
    """

    def __init__(self, message: str, code: Optional[int] = None):
        self.message = message
        self.code = code
        super().__init__(message if code is None else f"[{code}] {message}")


class MetadataError(DatabaseError):
    pass


class UnboundRecordError(RuntimeError):
    pass


__all__ = [
    "InvalidArgumentError",
    "InvalidClauseError",
    "DatabaseError",
    "InvalidDatabaseError",
    "MetadataError",
    "UnboundRecordError",
]
