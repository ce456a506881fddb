"""Tests for kvx.schema."""
from __future__ import annotations

import json
import logging
import pytest

from kvx.formatters.table import TableOptions, render_table
from kvx.schema import (
    field_width_hints, hint_for_property, load_schema_hints, parse_schema, parse_schema_text,
)

SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "id": {"type": "integer"},
            "name": {"type": "string", "title": "Full Name", "maxLength": 12},
            "status": {"enum": ["active", "inactive"]},
            "created": {"type": "string", "format": "date-time"},
            "legacy": {"type": "string", "deprecated": True},
        },
        "required": ["name"],
    },
}


class TestParseSchema:
    def test_array_items(self):
        hints = parse_schema(SCHEMA)
        assert list(hints) == ["id", "name", "status", "created", "legacy"]

    def test_priorities(self):
        hints = parse_schema(SCHEMA)
        assert [h.priority for h in hints.values()] == [5, 14, 3, 2, 1]

    def test_hint_fields(self):
        hints = parse_schema(SCHEMA)
        assert hints["id"].align == "right"
        assert hints["name"].display_name == "Full Name"
        assert hints["name"].max_width == 12
        assert hints["status"].max_width == 8
        assert hints["created"].max_width == 26
        assert hints["legacy"].hidden

    def test_object_schema(self):
        hints = parse_schema({"properties": {"a": {"type": "number"}}})
        assert hints["a"].align == "right"

    def test_no_properties(self):
        assert parse_schema({"type": "string"}) == {}
        assert parse_schema({"type": "array", "items": True}) == {}

    def test_tightest_width_wins(self):
        hint = hint_for_property({"maxLength": 50, "format": "date"})
        assert hint.max_width == 10

    def test_nullable_type(self):
        assert hint_for_property({"type": ["null", "integer"]}).align == "right"

    def test_field_width_hints(self):
        assert field_width_hints(parse_schema(SCHEMA)) == {
            "name": 12, "status": 8, "created": 26,
        }


class TestSchemaText:
    def test_invalid_json(self):
        with pytest.raises(ValueError, match="invalid JSON schema"):
            parse_schema_text("not json")

    def test_not_an_object(self):
        with pytest.raises(ValueError, match="top level must be an object"):
            parse_schema_text("[1]")

    def test_load_file(self, tmp_file):
        path = tmp_file(json.dumps(SCHEMA), "schema.json")
        assert "name" in load_schema_hints(path)

    def test_missing_file_warns(self, tmp_path, caplog):
        logger = logging.getLogger("test.schema")
        with caplog.at_level(logging.WARNING, logger="test.schema"):
            assert load_schema_hints(tmp_path / "nope.json", logger) == {}
        assert "cannot read schema" in caplog.text

    def test_bad_file_warns(self, tmp_file, caplog):
        logger = logging.getLogger("test.schema")
        with caplog.at_level(logging.WARNING, logger="test.schema"):
            assert load_schema_hints(tmp_file("{", "schema.json"), logger) == {}
        assert "ignoring schema" in caplog.text


class TestSchemaInTables:
    def test_headers_and_hidden(self):
        data = [
            {"id": 1, "name": "Alice", "status": "active",
             "created": "2024-01-01T00:00:00Z", "legacy": "x"},
        ]
        opts = TableOptions(no_color=True, total_width=120, column_hints=parse_schema(SCHEMA),
                            array_style="none")
        header = render_table(data, opts).splitlines()[0]
        assert "Full Name" in header
        assert "legacy" not in header
