"""Tests for filter trees, modifier lists and search payloads."""

from __future__ import annotations

import jsonschema
import pytest

from tablequery.errors import InvalidArgumentError
from tablequery.filters import (
    Combinator,
    CompiledClause,
    Group,
    Leaf,
    ModifierList,
    QueryOptions,
    SearchRequest,
    find_placeholders,
    normalize_direction,
    parse_conditions,
    parse_group,
    parse_search_json,
    parse_sort,
)


# -- Placeholders -------------------------------------------------------------


def test_find_placeholders_positions():
    assert find_placeholders("a = ? AND b IN ?") == [4, 15]


def test_find_placeholders_ignores_quoted_question_marks():
    sql = "title = 'why?' AND note = \"ok?\" AND `odd?col` = ? AND c = ?"
    assert len(find_placeholders(sql)) == 2


def test_find_placeholders_handles_escaped_quotes():
    assert len(find_placeholders(r"a = 'it\'s?' AND b = ?")) == 1
    assert len(find_placeholders("a = 'it''s?' AND b = ?")) == 1


# -- Leaves -------------------------------------------------------------------


def test_leaf_requires_one_argument_per_placeholder():
    with pytest.raises(InvalidArgumentError):
        Leaf("a = ? AND b = ?", (1,))
    with pytest.raises(InvalidArgumentError):
        Leaf("a = 1", (1,))


def test_leaf_rejects_empty_list_argument():
    with pytest.raises(InvalidArgumentError):
        Leaf("id IN ?", ([],))


def test_leaf_stores_arguments_as_tuple():
    leaf = Leaf("id IN ?", [[1, 2]])
    assert leaf.args == ([1, 2],)


# -- parse_conditions ---------------------------------------------------------


def test_parse_string_with_arguments():
    assert parse_conditions("age > ?", 18) == Leaf("age > ?", (18,))


def test_parse_list_with_leading_string_is_leaf():
    assert parse_conditions(["age > ? AND age < ?", 18, 65]) == Leaf("age > ? AND age < ?", (18, 65))


def test_parse_none_and_empty_clear():
    assert parse_conditions(None) is None
    assert parse_conditions("") is None
    assert parse_conditions([]) is None


def test_parse_nested_group_with_combinators():
    node = parse_conditions([
        ["a = ?", 1],
        ["or", ["b = ?", 2]],
        {"xor": ["c = ?", 3]},
        "d IS NULL",
    ])
    assert isinstance(node, Group)
    assert [c for c, _ in node.children] == [
        Combinator.AND,
        Combinator.OR,
        Combinator.XOR,
        Combinator.AND,
    ]
    assert node.children[3][1] == Leaf("d IS NULL")


def test_parse_combinator_is_case_insensitive():
    node = parse_conditions([["a = 1"], ["OR", "b = 2"]])
    assert node.children[1][0] is Combinator.OR


def test_parse_keeps_existing_nodes():
    leaf = Leaf("a = ?", (1,))
    assert parse_conditions(leaf) is leaf
    group = parse_conditions([leaf, ["or", Group.of(Leaf("b = 1"))]])
    assert group.children[0][1] is leaf


def test_parse_rejects_nested_empty_group():
    with pytest.raises(InvalidArgumentError):
        parse_conditions([["a = 1"], []])


def test_parse_rejects_bad_types():
    with pytest.raises(InvalidArgumentError):
        parse_conditions(42)
    with pytest.raises(InvalidArgumentError):
        parse_conditions([["a = 1"], {"nand": "b = 1"}])
    with pytest.raises(InvalidArgumentError):
        parse_conditions(["a = ?", 1], 2)


def test_group_helpers_append_children():
    group = Group.of(Leaf("a = 1")).or_(Leaf("b = 1")).xor(Leaf("c = 1")).and_(Leaf("d = 1"))
    assert [c for c, _ in group.children] == [
        Combinator.AND,
        Combinator.OR,
        Combinator.XOR,
        Combinator.AND,
    ]


# -- Modifiers ----------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [("asc", "ASC"), ("Desc", "DESC"), ("bogus", "ASC"), (None, "ASC"), (1, "ASC")],
)
def test_normalize_direction(raw, expected):
    assert normalize_direction(raw) == expected


def test_parse_sort_single_column():
    assert parse_sort("name") == ModifierList((("name", "ASC"),))
    assert parse_sort("name", "desc") == ModifierList((("name", "DESC"),))


def test_parse_sort_mapping_preserves_order():
    order = parse_sort({"last": "desc", "first": "nonsense"})
    assert order.items == (("last", "DESC"), ("first", "ASC"))


def test_parse_sort_list_with_bare_columns():
    order = parse_sort(["name", ("age", "DESC")])
    assert order.items == (("name", "ASC"), ("age", "DESC"))


def test_parse_sort_duplicate_keeps_first_position():
    order = parse_sort([("a", "ASC"), ("b", "ASC"), ("a", "DESC")])
    assert order.items == (("a", "DESC"), ("b", "ASC"))


def test_parse_sort_rejects_bad_items():
    with pytest.raises(InvalidArgumentError):
        parse_sort([("a", "ASC", "extra")])
    with pytest.raises(InvalidArgumentError):
        parse_sort(3)
    with pytest.raises(InvalidArgumentError):
        parse_sort({"": "ASC"})


def test_parse_group_has_no_direction():
    assert parse_group("country") == ModifierList((("country", None),))
    assert parse_group(["country", "city"]).columns() == ["country", "city"]
    assert parse_group(None) is None
    with pytest.raises(InvalidArgumentError):
        parse_group({"country": "ASC"})


# -- Options ------------------------------------------------------------------


def test_query_options_keys_follow_clause_order():
    opts = QueryOptions(limit=5, where=Leaf("a = 1"), order=parse_sort("a"))
    assert opts.keys() == ("where", "order", "limit")
    opts.clear("where", "limit")
    assert opts.keys() == ("order",)


def test_compiled_clause_sql_has_leading_space():
    assert CompiledClause(["WHERE a = 1", "LIMIT 2"]).sql == " WHERE a = 1 LIMIT 2"
    assert CompiledClause().sql == ""


# -- Search payloads ----------------------------------------------------------


def test_parse_search_json_from_string():
    req = parse_search_json(
        '{"table": "users", "conditions": ["age > ?", 18], "sort": {"name": "DESC"}, "limit": 5}'
    )
    assert isinstance(req, SearchRequest)
    assert req.table == "users"
    assert req.conditions == ["age > ?", 18]
    assert req.limit == 5


def test_parse_search_json_validates():
    with pytest.raises(jsonschema.ValidationError):
        parse_search_json({"table": "users", "limit": -1})
    with pytest.raises(jsonschema.ValidationError):
        parse_search_json({"conditions": "a = 1"})
    with pytest.raises(jsonschema.ValidationError):
        parse_search_json({"table": "users", "unknown": 1})


def test_search_request_round_trips_dict():
    data = {"table": "t", "columns": ["a"], "conditions": None, "group": None,
            "having": None, "sort": "a", "limit": None, "offset": 2}
    assert SearchRequest.from_dict(data).to_dict() == data
