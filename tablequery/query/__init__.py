"""
Query building module for tablequery.

This module provides SQL generation from filter trees and the chainable Query.
"""

from .compiler import (
    READ_CLAUSES,
    WRITE_CLAUSES,
    quote_identifier,
    quote_dotted_identifier,
    compile_conditions,
    render_conditions,
    compile_modifiers,
    assemble_clauses,
    build_projection,
    build_assignments,
    build_select,
    build_count,
    build_update,
    build_delete,
    build_insert,
)
from .builder import Query

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
    "Query",
]
