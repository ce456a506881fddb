"""Canonical data model — shape detection, stringification and cell widths."""
from __future__ import annotations

import json
from enum import Enum
from typing import Any

from rich.cells import cell_len, get_character_cell_size

SCALAR_KEY = "(value)"

ARRAY_STYLE_INDEX = "index"
ARRAY_STYLE_NUMBERED = "numbered"
ARRAY_STYLE_BULLET = "bullet"
ARRAY_STYLE_NONE = "none"
ARRAY_STYLES = (ARRAY_STYLE_INDEX, ARRAY_STYLE_NUMBERED, ARRAY_STYLE_BULLET, ARRAY_STYLE_NONE)


class SortOrder(str, Enum):
    NONE = "none"
    ASCENDING = "ascending"
    DESCENDING = "descending"

    @classmethod
    def parse(cls, value: str | SortOrder | None) -> SortOrder:
        if isinstance(value, SortOrder):
            return value
        try:
            return cls((value or "ascending").lower())
        except ValueError:
            return cls.NONE


def sorted_keys(mapping: dict, order: SortOrder = SortOrder.ASCENDING) -> list[str]:
    keys = list(mapping)
    if order is SortOrder.ASCENDING:
        keys.sort()
    elif order is SortOrder.DESCENDING:
        keys.sort(reverse=True)
    return keys


# ── Stringification ───────────────────────────────────────────────────

def format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


def compact_json(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"),
                      sort_keys=True, default=str)


def normalize_newlines(s: str, escape: bool) -> str:
    s = s.replace("\r\n", "\n").replace("\r", "\n")
    if escape:
        s = s.replace("\n", "\\n")
    return s


def stringify(value: Any) -> str:
    """Single-line display form: compact JSON for containers, escaped newlines."""
    if value is None:
        return ""
    if isinstance(value, str):
        return normalize_newlines(value, escape=True)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, (dict, list, tuple)):
        try:
            return compact_json(value)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def stringify_preserve_newlines(value: Any) -> str:
    if isinstance(value, str):
        return normalize_newlines(value, escape=False)
    return stringify(value)


def format_array_index(index: int, style: str) -> str:
    if style == ARRAY_STYLE_NUMBERED:
        return str(index + 1)
    if style == ARRAY_STYLE_BULLET:
        return "•"
    if style == ARRAY_STYLE_NONE:
        return ""
    return f"[{index}]"


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "map"
    return type(value).__name__


# ── Cell widths ───────────────────────────────────────────────────────

def display_width(s: str) -> int:
    return cell_len(s)


def _cut(s: str, width: int) -> str:
    out = []
    used = 0
    for ch in s:
        w = get_character_cell_size(ch)
        if used + w > width:
            break
        out.append(ch)
        used += w
    return "".join(out)


def truncate(s: str, max_width: int) -> str:
    """Fit s into max_width cells, ending in "..." when there is room for it."""
    if max_width <= 0 or cell_len(s) <= max_width:
        return s
    if max_width < 3:
        return _cut(s, max_width)
    return _cut(s, max_width - 3) + "..."


def pad_right(s: str, width: int) -> str:
    return s + " " * max(0, width - cell_len(s))


def pad_left(s: str, width: int) -> str:
    return " " * max(0, width - cell_len(s)) + s


# ── Shapes ────────────────────────────────────────────────────────────

def is_scalar(value: Any) -> bool:
    return not isinstance(value, (dict, list))


def is_simple_array(value: Any) -> bool:
    return isinstance(value, list) and all(is_scalar(v) for v in value)


def is_homogeneous_array(data: Any) -> tuple[bool, list[str]]:
    """Every element is a non-empty map with the same key set; fields sorted."""
    if not isinstance(data, list) or not data:
        return False, []
    first = data[0]
    if not isinstance(first, dict) or not first:
        return False, []
    base = set(first)
    for elem in data[1:]:
        if not isinstance(elem, dict) or set(elem) != base:
            return False, []
    return True, sorted(base)


def order_fields(fields: list[str], preferred: list[str] | None) -> list[str]:
    """Preferred names first (unknown ones dropped), then the remaining fields."""
    if not preferred:
        return list(fields)
    known = set(fields)
    out = [f for f in dict.fromkeys(preferred) if f in known]
    out += [f for f in fields if f not in preferred]
    return out


def extract_columnar_data(data: Any, field_order: list[str] | None = None
                          ) -> tuple[list[str], list[list[str]]]:
    ok, fields = is_homogeneous_array(data)
    if not ok:
        return [], []
    columns = order_fields(fields, field_order)
    rows = [[stringify(elem[c]) if c in elem else "" for c in columns] for elem in data]
    return columns, rows
