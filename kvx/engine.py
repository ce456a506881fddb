"""Engine — one explicit session value for load, navigate, limit and render."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from kvx import decode, loader
from kvx.formatters.csv import format_csv
from kvx.formatters.json import format_json
from kvx.formatters.listing import format_list
from kvx.formatters.mermaid import MermaidOptions, format_mermaid
from kvx.formatters.table import (
    DEFAULT_TOTAL_WIDTH, TableOptions, is_columnar_readable, render_table, should_use_columnar,
)
from kvx.formatters.tree import TreeOptions, format_tree
from kvx.formatters.yaml import format_yaml
from kvx.limiter import LimiterConfig
from kvx.model import (
    ARRAY_STYLE_INDEX, SortOrder, extract_columnar_data, is_simple_array,
    stringify_preserve_newlines,
)
from kvx.navigator import node_at_path, node_to_rows

OUTPUT_FORMATS = ("auto", "table", "list", "tree", "mermaid", "csv", "json", "yaml", "raw")

BORDER_MARGIN = 2


@dataclass
class RenderOptions:
    table: TableOptions = field(default_factory=TableOptions)
    tree: TreeOptions = field(default_factory=TreeOptions)
    mermaid: MermaidOptions = field(default_factory=MermaidOptions)
    yaml_indent: int = 2


class Engine:
    """Holds the key sort order and the diagnostic logger for a session."""

    __slots__ = ("sort_order", "logger")

    def __init__(self, sort_order: SortOrder | str = SortOrder.ASCENDING,
                 logger: logging.Logger | None = None):
        self.sort_order = SortOrder.parse(sort_order)
        self.logger = logger or logging.getLogger("kvx")

    # ── Ingestion ──

    def load_root(self, text: str) -> Any:
        return loader.load_root(text, self.logger)

    def load_root_bytes(self, data: bytes) -> Any:
        return loader.load_root_bytes(data, self.logger)

    def load_file(self, path: str | Path) -> Any:
        return loader.load_file(path, self.logger)

    def load_input(self, data: bytes | str, path: str | Path | None = None) -> Any:
        return loader.load_input(data, path, self.logger)

    def load_object(self, value: Any) -> Any:
        return decode.load_object(value, self.logger)

    # ── Navigation ──

    def node_at_path(self, root: Any, path: str | None) -> Any:
        return node_at_path(root, path)

    def rows(self, node: Any, array_style: str = ARRAY_STYLE_INDEX,
             sort_order: SortOrder | str | None = None) -> list[tuple[str, str]]:
        """KEY/VALUE rows, optionally under a one-off sort order."""
        order = self.sort_order if sort_order is None else SortOrder.parse(sort_order)
        return node_to_rows(node, order, array_style)

    def prepare(self, root: Any, path: str | None = None,
                limiter: LimiterConfig | None = None, auto_decode: str = "disabled") -> Any:
        """Decode, navigate and limit: the node every output mode renders."""
        root = decode.apply_auto_decode(root, auto_decode, "load")
        node = self.node_at_path(root, path)
        node = decode.apply_auto_decode(node, auto_decode, "final")
        if limiter is not None and limiter.is_active():
            node = limiter.apply(node)
        return node

    # ── Rendering ──

    def render(self, node: Any, output: str = "auto", options: RenderOptions | None = None) -> str:
        options = options or RenderOptions()
        table = options.table
        if output in ("auto", "table"):
            return self._render_auto(node, table, readable_check=output == "auto")
        if output == "list":
            return format_list(node, table.array_style, table.no_color)
        if output == "tree":
            return format_tree(node, options.tree)
        if output == "mermaid":
            return format_mermaid(node, options.mermaid)
        if output == "csv":
            return format_csv(node)
        if output == "json":
            return format_json(node)
        if output in ("yaml", "raw"):
            return format_yaml(node, options.yaml_indent)
        raise ValueError(f"invalid output: {output}")

    def _render_auto(self, node: Any, table: TableOptions, readable_check: bool) -> str:
        if is_simple_array(node) and node:
            return "".join(stringify_preserve_newlines(e) + "\n" for e in node)
        if not isinstance(node, (dict, list)):
            return stringify_preserve_newlines(node) + "\n"
        if readable_check and should_use_columnar(node, table.columnar_mode):
            columns, rows = extract_columnar_data(node, table.column_order)
            width = table.total_width if table.total_width > 0 else DEFAULT_TOTAL_WIDTH
            available = width - BORDER_MARGIN
            if columns and not is_columnar_readable(columns, rows, available, table.column_hints,
                                                    table.hidden_columns, table.array_style):
                self.logger.debug("columnar layout unreadable at width %d, using list",
                                  width)
                return format_list(node, table.array_style, table.no_color)
        return render_table(node, table, self.sort_order)
