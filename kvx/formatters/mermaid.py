"""Mermaid formatter — flowchart source for a data tree."""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from kvx.formatters.tree import (
    DEFAULT_MAX_ARRAY_INLINE, array_summary, format_scalar, scalar_for_key,
)
from kvx.model import ARRAY_STYLE_INDEX, format_array_index

DIRECTIONS = ("TD", "LR", "BT", "RL")

_NON_ID_RE = re.compile(r"[^a-zA-Z0-9_]")


@dataclass
class MermaidOptions:
    direction: str = "TD"
    no_values: bool = False
    max_depth: int = 0
    expand_arrays: bool = False
    max_array_inline: int = DEFAULT_MAX_ARRAY_INLINE
    max_string_len: int = 0
    field_hints: dict[str, int] = field(default_factory=dict)
    array_style: str = ARRAY_STYLE_INDEX
    id_prefix: str = "n"


def sanitize_mermaid_id(s: str) -> str:
    return _NON_ID_RE.sub("_", s)


class _MermaidBuilder:
    __slots__ = ("lines", "next_id", "opts")

    def __init__(self, opts: MermaidOptions):
        self.opts = opts
        self.lines = [f"graph {opts.direction or 'TD'}"]
        self.next_id = 0

    def new_id(self) -> str:
        node_id = sanitize_mermaid_id(f"{self.opts.id_prefix or 'n'}{self.next_id}")
        self.next_id += 1
        return node_id

    def label(self, key: str, value: str) -> str:
        if self.opts.no_values or not value:
            text = key or "(item)"
        elif not key:
            text = value
        else:
            text = f"{key}: {value}"
        return text.replace('"', "'").replace("\n", " ").replace("\r", "")

    def node(self, parent: str | None, key: str, value: str = "") -> str:
        node_id = self.new_id()
        quoted = json.dumps(self.label(key, value), ensure_ascii=False)
        self.lines.append(f"    {node_id}[{quoted}]")
        if parent is not None:
            self.lines.append(f"    {parent} --> {node_id}")
        return node_id

    def build(self, parent: str, node: Any, depth: int) -> None:
        if self.opts.max_depth > 0 and depth >= self.opts.max_depth:
            self.node(parent, "...")
            return
        if isinstance(node, dict):
            self.build_map(parent, node, depth)
        elif isinstance(node, list):
            self.build_array(parent, node, depth)
        elif node is not None:
            self.node(parent, format_scalar(node))

    def build_map(self, parent: str, m: dict, depth: int) -> None:
        for key in sorted(m):
            self.add_value(parent, key, m[key], depth)

    def build_array(self, parent: str, arr: list, depth: int) -> None:
        if not arr:
            return
        summary = array_summary(arr, self.opts)
        if summary is not None:
            self.node(parent, summary)
            return
        for i, elem in enumerate(arr):
            self.add_value(parent, format_array_index(i, self.opts.array_style), elem, depth)

    def add_value(self, parent: str, key: str, val: Any, depth: int) -> None:
        if self.opts.max_depth > 0 and depth >= self.opts.max_depth:
            self.node(parent, "...")
            return
        if isinstance(val, dict):
            self.build_map(self.node(parent, key), val, depth + 1)
        elif isinstance(val, list):
            self.build_array(self.node(parent, key), val, depth + 1)
        else:
            value = "" if self.opts.no_values else scalar_for_key(
                key, val, self.opts.max_string_len, self.opts.field_hints)
            self.node(parent, key, value)


def format_mermaid(node: Any, opts: MermaidOptions | None = None) -> str:
    """Flowchart with <prefix>0 as the root and one node per key, index or scalar."""
    opts = opts or MermaidOptions()
    builder = _MermaidBuilder(opts)
    root = builder.node(None, "root")
    builder.build(root, node, 0)
    return "\n".join(builder.lines) + "\n"
