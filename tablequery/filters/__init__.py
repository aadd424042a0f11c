"""
Filter models for tablequery.

This module provides the condition tree, modifier lists and query options that
the compiler turns into SQL.
"""

from .models import (
    Combinator,
    Direction,
    CLAUSE_KEYS,
    find_placeholders,
    is_sequence_value,
    Leaf,
    Group,
    FilterNode,
    parse_conditions,
    normalize_direction,
    ModifierList,
    parse_group,
    parse_sort,
    QueryOptions,
    CompiledClause,
    SEARCH_SCHEMA,
    SearchRequest,
    parse_search_json,
)

__all__ = [
    "Combinator",
    "Direction",
    "CLAUSE_KEYS",
    "find_placeholders",
    "is_sequence_value",
    "Leaf",
    "Group",
    "FilterNode",
    "parse_conditions",
    "normalize_direction",
    "ModifierList",
    "parse_group",
    "parse_sort",
    "QueryOptions",
    "CompiledClause",
    "SEARCH_SCHEMA",
    "SearchRequest",
    "parse_search_json",
]
