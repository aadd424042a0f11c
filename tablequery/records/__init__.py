"""
Row objects for tablequery.

This module provides plain result rows and active records bound to a table.
"""

from .models import Result, Lifecycle, Record

__all__ = [
    "Result",
    "Lifecycle",
    "Record",
]
