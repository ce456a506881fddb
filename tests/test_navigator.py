"""Tests for kvx.navigator and kvx.model."""
from __future__ import annotations

import pytest

from kvx.model import (
    SortOrder, display_width, extract_columnar_data, format_array_index, is_homogeneous_array,
    is_simple_array, order_fields, stringify, stringify_preserve_newlines, truncate,
)
from kvx.navigator import NavigationError, node_at_path, node_to_rows, parse_path

DATA = {
    "items": [
        {"name": "a", "tags": ["x", "y"]},
        {"name": "b", "tags": []},
    ],
    "meta": {"count": 2, "dotted.key": "ok"},
}


class TestParsePath:
    def test_dots_and_brackets(self):
        assert parse_path("items[0].tags") == ["items", "0", "tags"]

    def test_numeric_dots(self):
        assert parse_path("items.1.name") == ["items", "1", "name"]

    def test_empty_segments_dropped(self):
        assert parse_path("a..b.") == ["a", "b"]


class TestNodeAtPath:
    def test_root_aliases(self):
        assert node_at_path(DATA, "") is DATA
        assert node_at_path(DATA, "_") is DATA
        assert node_at_path(DATA, None) is DATA

    def test_leading_root_step(self):
        assert node_at_path(DATA, "_.meta.count") == 2

    def test_bracket_index(self):
        assert node_at_path(DATA, "items[0].tags[1]") == "y"

    def test_quoted_key(self):
        assert node_at_path(DATA, 'meta["dotted.key"]') == "ok"

    def test_missing_key(self):
        with pytest.raises(NavigationError, match="key 'nope' not found"):
            node_at_path(DATA, "meta.nope")

    def test_non_numeric_index(self):
        with pytest.raises(NavigationError, match="expected numeric index"):
            node_at_path(DATA, "items.first")

    def test_index_out_of_range(self):
        with pytest.raises(NavigationError, match="index 5 out of range"):
            node_at_path(DATA, "items[5]")

    def test_negative_index(self):
        with pytest.raises(NavigationError, match="out of range"):
            node_at_path(DATA, "items[-1]")

    def test_descend_into_scalar(self):
        with pytest.raises(NavigationError, match="cannot descend"):
            node_at_path(DATA, "meta.count.deeper")


class TestNodeToRows:
    def test_map_sorted(self):
        rows = node_to_rows({"b": 1, "a": "x"})
        assert rows == [("a", "x"), ("b", "1")]

    def test_map_descending(self):
        rows = node_to_rows({"b": 1, "a": 2}, SortOrder.DESCENDING)
        assert [k for k, _ in rows] == ["b", "a"]

    def test_map_insertion_order(self):
        rows = node_to_rows({"b": 1, "a": 2}, SortOrder.NONE)
        assert [k for k, _ in rows] == ["b", "a"]

    def test_array_styles(self):
        assert [k for k, _ in node_to_rows(["x", "y"])] == ["[0]", "[1]"]
        assert [k for k, _ in node_to_rows(["x", "y"], array_style="numbered")] == ["1", "2"]
        assert [k for k, _ in node_to_rows(["x"], array_style="bullet")] == ["•"]

    def test_nested_values_compact_json(self):
        assert node_to_rows({"m": {"b": [1, 2], "a": None}}) == [("m", '{"a":null,"b":[1,2]}')]

    def test_scalar_and_empty(self):
        assert node_to_rows(42) == [("(value)", "42")]
        assert node_to_rows(None) == [("(value)", "")]
        assert node_to_rows({}) == [("(value)", "{}")]
        assert node_to_rows([]) == [("(value)", "[]")]


class TestStringify:
    def test_scalars(self):
        assert stringify(None) == ""
        assert stringify(True) == "true"
        assert stringify(3.0) == "3"
        assert stringify(2.5) == "2.5"

    def test_newlines_escaped(self):
        assert stringify("a\r\nb\rc") == "a\\nb\\nc"
        assert stringify_preserve_newlines("a\r\nb") == "a\nb"

    def test_unicode_kept(self):
        assert stringify({"k": "日本"}) == '{"k":"日本"}'

    def test_array_index(self):
        assert format_array_index(0, "index") == "[0]"
        assert format_array_index(0, "numbered") == "1"
        assert format_array_index(3, "none") == ""


class TestCells:
    def test_wide_characters(self):
        assert display_width("日本") == 4
        assert truncate("日本語テキスト", 7) == "日本..."

    def test_truncate(self):
        assert truncate("abcdef", 5) == "ab..."
        assert truncate("abcdef", 2) == "ab"
        assert truncate("abc", 3) == "abc"
        assert truncate("abc", 0) == "abc"


class TestShapes:
    def test_homogeneous(self, people):
        assert is_homogeneous_array(people) == (True, ["age", "city", "name"])

    def test_heterogeneous(self):
        assert is_homogeneous_array([{"a": 1}, {"b": 1}]) == (False, [])
        assert is_homogeneous_array([{}]) == (False, [])
        assert is_homogeneous_array([]) == (False, [])
        assert is_homogeneous_array([{"a": 1}, 2]) == (False, [])

    def test_simple_array(self):
        assert is_simple_array([1, "a", None])
        assert not is_simple_array([1, [2]])

    def test_order_fields(self):
        assert order_fields(["age", "city", "name"], ["name", "bogus", "name"]) == [
            "name", "age", "city",
        ]

    def test_extract(self, people):
        columns, rows = extract_columnar_data(people, ["name"])
        assert columns == ["name", "age", "city"]
        assert rows[0] == ["Alice", "30", "New York"]

    def test_sort_order_parse(self):
        assert SortOrder.parse(None) is SortOrder.ASCENDING
        assert SortOrder.parse("DESCENDING") is SortOrder.DESCENDING
        assert SortOrder.parse("bogus") is SortOrder.NONE
