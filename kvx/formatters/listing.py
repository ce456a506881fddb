"""List formatter — vertical key: value output."""
from __future__ import annotations

from typing import Any

from kvx.formatters.style import paint
from kvx.model import ARRAY_STYLE_INDEX, format_array_index, stringify_preserve_newlines


def _format_map(m: dict, indent: str, no_color: bool) -> str:
    if not m:
        return ""
    lines = []
    for key in sorted(m):
        k = paint(indent + key, "key", no_color)
        v = paint(stringify_preserve_newlines(m[key]), "value", no_color)
        lines.append(f"{k}: {v}")
    return "\n".join(lines) + "\n"


def _format_array(arr: list, array_style: str, no_color: bool) -> str:
    if not arr:
        return ""
    if all(isinstance(e, dict) for e in arr):
        blocks = []
        for i, elem in enumerate(arr):
            block = ""
            header = format_array_index(i, array_style)
            if header:
                block += paint(header, "header", no_color) + "\n"
            block += _format_map(elem, "  ", no_color)
            blocks.append(block)
        return "\n".join(blocks)
    return "".join(stringify_preserve_newlines(e) + "\n" for e in arr)


def format_list(node: Any, array_style: str = ARRAY_STYLE_INDEX, no_color: bool = False) -> str:
    """Object arrays get an index header per element; scalars print as value: x."""
    if isinstance(node, list):
        return _format_array(node, array_style, no_color)
    if isinstance(node, dict):
        return _format_map(node, "", no_color)
    label = paint("value", "key", no_color)
    return f"{label}: {paint(stringify_preserve_newlines(node), 'value', no_color)}\n"
