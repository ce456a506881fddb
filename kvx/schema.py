"""JSON Schema column hints — display names, widths, alignment and priority."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from kvx.formatters.table import ColumnHint
from kvx.model import display_width, stringify

log = logging.getLogger("kvx.schema")

REQUIRED_BOOST = 10

FORMAT_WIDTHS = {
    "date": 10,
    "date-time": 26,
    "time": 15,
    "uuid": 36,
    "ipv4": 15,
    "ipv6": 39,
    "email": 40,
    "uri": 60,
    "iri": 60,
}


def find_properties(schema: dict) -> tuple[dict | None, list[str]]:
    """Locate properties on an object schema or on the items of an array schema."""
    if schema.get("type") == "array":
        items = schema.get("items")
        if isinstance(items, dict):
            return find_properties(items)
        return None, []
    props = schema.get("properties")
    if isinstance(props, dict):
        required = [r for r in schema.get("required") or [] if isinstance(r, str)]
        return props, required
    return None, []


def schema_type(prop: dict) -> str:
    t = prop.get("type")
    if isinstance(t, str):
        return t
    if isinstance(t, list):
        for v in t:
            if isinstance(v, str) and v != "null":
                return v
    return ""


def _tighter(current: int, candidate: int) -> int:
    if candidate > 0 and (current == 0 or candidate < current):
        return candidate
    return current


def hint_for_property(prop: dict[str, Any]) -> ColumnHint:
    hint = ColumnHint()
    title = prop.get("title")
    if isinstance(title, str) and title:
        hint.display_name = title

    max_length = prop.get("maxLength")
    if isinstance(max_length, (int, float)) and not isinstance(max_length, bool) and max_length > 0:
        hint.max_width = int(max_length)

    enum = prop.get("enum")
    if isinstance(enum, list) and enum:
        hint.max_width = _tighter(hint.max_width,
                                  max(display_width(stringify(v)) for v in enum))

    fmt = prop.get("format")
    if isinstance(fmt, str):
        hint.max_width = _tighter(hint.max_width, FORMAT_WIDTHS.get(fmt, 0))

    if schema_type(prop) in ("integer", "number"):
        hint.align = "right"
    if prop.get("deprecated") is True:
        hint.hidden = True
    return hint


def parse_schema(schema: dict) -> dict[str, ColumnHint]:
    """Map each declared property to a ColumnHint; earlier properties rank higher."""
    properties, required = find_properties(schema)
    if not properties:
        return {}
    required_set = set(required)
    hints: dict[str, ColumnHint] = {}
    total = len(properties)
    for i, (name, prop) in enumerate(properties.items()):
        if not isinstance(prop, dict):
            continue
        hint = hint_for_property(prop)
        hint.priority = total - i + (REQUIRED_BOOST if name in required_set else 0)
        hints[name] = hint
    return hints


def parse_schema_text(text: str | bytes) -> dict[str, ColumnHint]:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON schema: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError("invalid JSON schema: top level must be an object")
    return parse_schema(raw)


def load_schema_hints(path: str | Path, logger: logging.Logger | None = None
                      ) -> dict[str, ColumnHint]:
    """Read hints from a schema file; problems are logged and yield no hints."""
    logger = logger or log
    try:
        text = Path(path).read_bytes()
    except OSError as e:
        logger.warning("cannot read schema %s: %s", path, e)
        return {}
    try:
        return parse_schema_text(text)
    except ValueError as e:
        logger.warning("ignoring schema %s: %s", path, e)
        return {}


def field_width_hints(hints: dict[str, ColumnHint]) -> dict[str, int]:
    """Per-field string limits for the tree and Mermaid renderers."""
    return {name: h.max_width for name, h in hints.items() if h.max_width > 0}
