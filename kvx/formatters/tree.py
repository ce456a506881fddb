"""Tree formatter — box-drawing outline of a data tree, rendered through rich."""
from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any

from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from kvx.formatters import style
from kvx.model import (
    ARRAY_STYLE_INDEX, format_array_index, format_number, is_simple_array,
    normalize_newlines,
)

DEFAULT_MAX_ARRAY_INLINE = 3
RENDER_WIDTH = 100_000


@dataclass
class TreeOptions:
    no_values: bool = False
    max_depth: int = 0
    expand_arrays: bool = False
    max_array_inline: int = DEFAULT_MAX_ARRAY_INLINE
    max_string_len: int = 0
    field_hints: dict[str, int] = field(default_factory=dict)
    array_style: str = ARRAY_STYLE_INDEX
    no_color: bool = True


def auto_max_string_len(term_width: int, piped: bool) -> int:
    """Value budget for terminal output: 60% of the width, kept within 40..200."""
    if piped:
        return 0
    if term_width <= 0:
        return 80
    return min(max(term_width * 60 // 100, 40), 200)


# ── Scalar formatting ─────────────────────────────────────────────────

def format_scalar(v: Any) -> str:
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return format_number(v)
    return str(v)


def format_inline_array(arr: list) -> str:
    return "[" + ", ".join(format_scalar(e) for e in arr) + "]"


def clip(s: str, max_len: int) -> str:
    if max_len <= 0 or len(s) <= max_len:
        return s
    if max_len <= 3:
        return "..."
    return s[:max_len - 3] + "..."


def scalar_for_key(key: str, v: Any, max_string_len: int, field_hints: dict[str, int]) -> str:
    """Per-field hint wins over the global string budget."""
    limit = max_string_len
    if key and field_hints.get(key, 0) > 0:
        limit = field_hints[key]
    return clip(format_scalar(v), limit)


def key_value(key: str, value: str) -> str:
    return f"{key}: {value}" if key else value


def key_only(key: str) -> str:
    return key or "(item)"


def fits_inline(arr: list, opts) -> bool:
    """Short scalar arrays print on their parent's line."""
    if opts.expand_arrays or not is_simple_array(arr):
        return False
    return len(arr) <= (opts.max_array_inline or DEFAULT_MAX_ARRAY_INLINE)


def array_summary(arr: list, opts) -> str | None:
    """Inline or summarized label for a scalar array, None when it should branch."""
    if opts.expand_arrays or not is_simple_array(arr):
        return None
    if fits_inline(arr, opts):
        return format_inline_array(arr)
    return f"[{len(arr)} items]"


# ── Tree building ─────────────────────────────────────────────────────

class _TreeBuilder:
    __slots__ = ("opts",)

    def __init__(self, opts: TreeOptions):
        self.opts = opts

    def leaf(self, branch: Tree, label: str) -> None:
        branch.add(Text(normalize_newlines(label, escape=True)))

    def build(self, branch: Tree, node: Any, depth: int) -> None:
        if self.opts.max_depth > 0 and depth >= self.opts.max_depth:
            self.leaf(branch, "...")
            return
        if isinstance(node, dict):
            self.build_map(branch, node, depth)
        elif isinstance(node, list):
            self.build_array(branch, node, depth)
        else:
            self.leaf(branch, scalar_for_key("", node, self.opts.max_string_len, {}))

    def build_map(self, branch: Tree, m: dict, depth: int) -> None:
        for key in sorted(m):
            self.add_value(branch, key, m[key], depth)

    def build_array(self, branch: Tree, arr: list, depth: int) -> None:
        if not arr or fits_inline(arr, self.opts):
            return
        for i, elem in enumerate(arr):
            self.add_value(branch, format_array_index(i, self.opts.array_style), elem, depth)

    def add_value(self, branch: Tree, key: str, val: Any, depth: int) -> None:
        opts = self.opts
        if opts.max_depth > 0 and depth >= opts.max_depth:
            self.leaf(branch, key_value(key, "..."))
            return
        if isinstance(val, dict):
            if not val:
                self.leaf(branch, key_only(key) if opts.no_values else key_value(key, "{}"))
                return
            child = branch.add(Text(key_only(key)))
            self.build_map(child, val, depth + 1)
        elif isinstance(val, list):
            self.add_array(branch, key, val, depth)
        elif opts.no_values:
            self.leaf(branch, key_only(key))
        else:
            self.leaf(branch, key_value(
                key, scalar_for_key(key, val, opts.max_string_len, opts.field_hints)))

    def add_array(self, branch: Tree, key: str, arr: list, depth: int) -> None:
        opts = self.opts
        if not arr:
            self.leaf(branch, key_only(key) if opts.no_values else key_value(key, "[]"))
            return
        summary = array_summary(arr, opts)
        if summary is not None:
            self.leaf(branch, key_only(key) if opts.no_values else key_value(key, summary))
            return
        child = branch.add(Text(key_only(key)))
        self.build_array(child, arr, depth + 1)


def format_tree(node: Any, opts: TreeOptions | None = None) -> str:
    """Render a node as a "." rooted tree, one entry per line."""
    opts = opts or TreeOptions()
    guide = "none" if opts.no_color else style.PALETTE["separator"]
    tree = Tree(Text("."), guide_style=guide)
    _TreeBuilder(opts).build(tree, node, 0)

    console = Console(file=io.StringIO(), width=RENDER_WIDTH, color_system=None,
                      highlight=False, legacy_windows=False)
    options = console.options.copy()
    options.encoding = "ascii" if style.USE_ASCII else "utf-8"
    lines = []
    for line in console.render_lines(tree, options, pad=False):
        text = "".join(
            seg.style.render(seg.text) if seg.style and not opts.no_color else seg.text
            for seg in line if not seg.control
        )
        lines.append(text.rstrip())
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines) + "\n"
