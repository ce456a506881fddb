"""Tests for kvx.engine."""
from __future__ import annotations

import pytest

from kvx.engine import Engine, RenderOptions
from kvx.formatters.csv import format_csv
from kvx.formatters.json import format_json
from kvx.formatters.listing import format_list
from kvx.formatters.table import TableOptions, render_table
from kvx.formatters.yaml import format_yaml
from kvx.limiter import LimiterConfig
from kvx.navigator import NavigationError

DATA = {
    "items": [{"id": i, "name": f"item{i}"} for i in range(5)],
    "payload": '{"nested": {"ok": true}}',
}


def _opts(width: int = 80, **kw) -> RenderOptions:
    return RenderOptions(table=TableOptions(no_color=True, total_width=width, **kw))


class TestPrepare:
    def test_path_and_limit(self):
        node = Engine().prepare(DATA, "items", LimiterConfig(offset=1, limit=2))
        assert [r["id"] for r in node] == [1, 2]

    def test_tail(self):
        node = Engine().prepare(DATA, "items", LimiterConfig(tail=1))
        assert node == [{"id": 4, "name": "item4"}]

    def test_root_untouched(self):
        Engine().prepare(DATA, "_", LimiterConfig(limit=1), "eager")
        assert isinstance(DATA["payload"], str)

    def test_lazy_decodes_final_node(self):
        assert Engine().prepare(DATA, "payload", auto_decode="lazy") == {"nested": {"ok": True}}

    def test_eager_allows_navigating_into_strings(self):
        assert Engine().prepare(DATA, "payload.nested.ok", auto_decode="eager") is True

    def test_disabled_cannot_navigate_strings(self):
        with pytest.raises(NavigationError):
            Engine().prepare(DATA, "payload.nested")


class TestRows:
    def test_session_sort(self):
        rows = Engine(sort_order="descending").rows({"a": 1, "b": 2})
        assert [k for k, _ in rows] == ["b", "a"]

    def test_override(self):
        rows = Engine(sort_order="descending").rows({"a": 1, "b": 2}, sort_order="ascending")
        assert [k for k, _ in rows] == ["a", "b"]


class TestRender:
    def test_scalar_array_one_per_line(self):
        assert Engine().render(["a", 2, True], "auto", _opts()) == "a\n2\ntrue\n"

    def test_scalar(self):
        assert Engine().render("line1\nline2", "auto", _opts()) == "line1\nline2\n"

    def test_empty_array_table(self):
        assert Engine().render([], "auto", _opts()).startswith("KEY")

    def test_auto_matches_table(self, people):
        opts = _opts()
        assert Engine().render(people, "auto", opts) == render_table(people, opts.table)

    def test_auto_falls_back_to_list(self, wide_columns):
        columns, rows = wide_columns
        records = [dict(zip(columns, row)) for row in rows]
        out = Engine().render(records, "auto", _opts(40))
        assert out == format_list(records, "numbered", True)

    def test_table_skips_readability(self, wide_columns):
        columns, rows = wide_columns
        records = [dict(zip(columns, row)) for row in rows]
        out = Engine().render(records, "table", _opts(40))
        assert out.startswith("#")

    @pytest.mark.parametrize("output, formatter", [
        ("json", format_json), ("yaml", format_yaml), ("raw", format_yaml), ("csv", format_csv),
    ])
    def test_serializers(self, people, output, formatter):
        assert Engine().render(people, output, _opts()) == formatter(people)

    def test_tree_and_mermaid(self):
        assert Engine().render({"a": 1}, "tree").startswith(".\n")
        assert Engine().render({"a": 1}, "mermaid").startswith("graph TD\n")

    def test_invalid_output(self):
        with pytest.raises(ValueError, match="invalid output: html"):
            Engine().render({}, "html")


class TestLoad:
    def test_load_object(self):
        assert Engine().load_object((1, 2)) == [1, 2]

    def test_load_input_csv(self):
        assert Engine().load_input("a,b\n1,2") == [{"a": "1", "b": "2"}]

    def test_load_root(self):
        assert Engine().load_root("a: 1") == {"a": 1}
