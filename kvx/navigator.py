"""Navigator — dotted/bracket paths into a tree and KEY/VALUE row extraction."""
from __future__ import annotations

from typing import Any

from kvx.model import (
    ARRAY_STYLE_INDEX, SCALAR_KEY, SortOrder,
    format_array_index, sorted_keys, stringify,
)


class NavigationError(ValueError):
    pass


def parse_path(path: str) -> list[str]:
    """Split "items[0].tags" style paths into steps."""
    parts: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(path):
        ch = path[i]
        if ch == ".":
            if current:
                parts.append("".join(current))
                current = []
        elif ch == "[":
            if current:
                parts.append("".join(current))
                current = []
            j = path.find("]", i + 1)
            if j != -1:
                parts.append(path[i + 1:j])
                i = j
        else:
            current.append(ch)
        i += 1
    if current:
        parts.append("".join(current))
    return parts


def _unquote(step: str) -> str:
    if len(step) > 1 and step[0] == step[-1] and step[0] in "\"'":
        return step[1:-1]
    return step


def navigate_step(cur: Any, step: str) -> Any:
    if isinstance(cur, dict):
        key = _unquote(step)
        if key not in cur:
            raise NavigationError(f"key '{key}' not found")
        return cur[key]
    if isinstance(cur, list):
        try:
            idx = int(step)
        except ValueError:
            raise NavigationError(
                f"expected numeric index into array but got '{step}'") from None
        if idx < 0 or idx >= len(cur):
            raise NavigationError(f"index {idx} out of range")
        return cur[idx]
    raise NavigationError(f"cannot descend into {type(cur).__name__} at '{step}'")


def node_at_path(root: Any, path: str | None) -> Any:
    """Resolve a path like "items.0.name"; "" and "_" address the root."""
    trimmed = (path or "").strip()
    if trimmed in ("", "_"):
        return root
    steps = parse_path(trimmed)
    if steps and steps[0] == "_":
        steps = steps[1:]
    cur = root
    for step in steps:
        cur = navigate_step(cur, step)
    return cur


def node_to_rows(node: Any, sort_order: SortOrder = SortOrder.ASCENDING,
                 array_style: str = ARRAY_STYLE_INDEX) -> list[tuple[str, str]]:
    """KEY/VALUE rows; empty containers and scalars become a single (value) row."""
    if isinstance(node, dict):
        if not node:
            return [(SCALAR_KEY, stringify(node))]
        return [(k, stringify(node[k])) for k in sorted_keys(node, sort_order)]
    if isinstance(node, list):
        if not node:
            return [(SCALAR_KEY, stringify(node))]
        return [(format_array_index(i, array_style), stringify(v))
                for i, v in enumerate(node)]
    return [(SCALAR_KEY, stringify(node))]
