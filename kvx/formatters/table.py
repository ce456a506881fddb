"""Table formatter — KEY/VALUE tables, columnar layout and the bordered frame."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from rich.text import Text

from kvx.formatters.style import box_style, paint, rule_char
from kvx.model import (
    ARRAY_STYLE_BULLET, ARRAY_STYLE_INDEX, ARRAY_STYLE_NONE, ARRAY_STYLE_NUMBERED,
    SortOrder, display_width, extract_columnar_data, is_homogeneous_array,
    pad_left, pad_right, truncate,
)
from kvx.navigator import node_to_rows

SEP_WIDTH = 2
MIN_COL_WIDTH = 3
MAX_COL_WIDTH = 40
READABLE_MIN_WIDTH = 8
DEFAULT_KEY_WIDTH = 30
MIN_VALUE_WIDTH = 20
DEFAULT_TOTAL_WIDTH = 120
APP_NAME = "kvx"

COLUMNAR_MODES = ("auto", "always", "never")


@dataclass
class ColumnHint:
    max_width: int = 0
    priority: int = 0
    align: str = "left"
    display_name: str = ""
    hidden: bool = False


@dataclass
class PlannedColumn:
    field_name: str
    display_name: str
    width: int
    align: str = "left"
    hidden: bool = False
    natural_width: int = 0
    capped_width: int = 0


@dataclass
class ColumnPlan:
    columns: list[PlannedColumn]
    rows: list[list[str]]
    row_number_style: str = ARRAY_STYLE_NUMBERED
    row_number_width: int = 0

    @property
    def show_row_numbers(self) -> bool:
        return self.row_number_style != ARRAY_STYLE_NONE

    @property
    def width(self) -> int:
        """Rendered line width including the row-number column."""
        total = sum(c.width for c in self.columns) + SEP_WIDTH * max(0, len(self.columns) - 1)
        if self.show_row_numbers and self.columns:
            total += self.row_number_width + SEP_WIDTH
        return total


@dataclass
class TableOptions:
    no_color: bool = False
    key_width: int = 0
    value_width: int = 0
    total_width: int = 0
    array_style: str = ARRAY_STYLE_NUMBERED
    columnar_mode: str = "auto"
    column_order: list[str] = field(default_factory=list)
    hidden_columns: list[str] = field(default_factory=list)
    column_hints: dict[str, ColumnHint] = field(default_factory=dict)
    bordered: bool = False
    title: str = APP_NAME
    path: str = "_"


# ── Width allocation ──────────────────────────────────────────────────

def natural_widths(headers: list[str], rows: list[list[str]]) -> list[int]:
    widths = [display_width(h) for h in headers]
    for row in rows:
        for i, val in enumerate(row[:len(widths)]):
            widths[i] = max(widths[i], display_width(val))
    return widths


def shrink_by_priority(widths: list[int], usable: int, priorities: list[int]) -> list[int]:
    """Shrink lowest-priority columns first toward the 3-cell floor."""
    widths = list(widths)
    excess = sum(widths) - usable
    if excess <= 0:
        return widths
    order = sorted(range(len(widths)), key=lambda i: priorities[i] if i < len(priorities) else 0)
    for idx in order:
        if excess <= 0:
            break
        shrinkable = widths[idx] - MIN_COL_WIDTH
        if shrinkable <= 0:
            continue
        shrink = min(shrinkable, excess)
        widths[idx] -= shrink
        excess -= shrink
    return widths


def calculate_column_widths(widths: list[int], available: int,
                            priorities: list[int] | None = None) -> list[int]:
    """Fit already-capped natural widths into available cells (separators included)."""
    widths = list(widths)
    if not widths:
        return widths
    usable = available - (len(widths) - 1) * SEP_WIDTH
    if sum(widths) <= usable or usable <= 0:
        return widths
    if priorities is not None:
        return shrink_by_priority(widths, usable, priorities)

    widths = [min(w, MAX_COL_WIDTH) for w in widths]
    total = sum(widths)
    if total > usable:
        widths = [max(MIN_COL_WIDTH, int(w / total * usable)) for w in widths]
        while sum(widths) > usable:
            idx = widths.index(max(widths))
            if widths[idx] <= MIN_COL_WIDTH:
                break
            widths[idx] -= 1
    return widths


def row_number_width(style: str, row_count: int) -> int:
    if style == ARRAY_STYLE_NONE:
        return 0
    if style == ARRAY_STYLE_BULLET:
        return 3
    return len(str(row_count)) + 2


def _hidden_fields(hints: dict[str, ColumnHint], hidden_columns) -> set[str]:
    hidden = set(hidden_columns or ())
    hidden.update(name for name, h in hints.items() if h.hidden)
    return hidden


# ── Column planning ───────────────────────────────────────────────────

def plan_columns(columns: list[str], rows: list[list[str]], total_width: int,
                 hints: dict[str, ColumnHint] | None = None,
                 hidden_columns: list[str] | None = None,
                 row_number_style: str = ARRAY_STYLE_NUMBERED) -> ColumnPlan:
    """Resolve visible columns, headers and allocated widths for a columnar table."""
    hints = hints or {}
    style = row_number_style or ARRAY_STYLE_NUMBERED
    hidden = _hidden_fields(hints, hidden_columns)
    keep = [i for i, c in enumerate(columns) if c not in hidden]
    fields = [columns[i] for i in keep]
    vrows = [[row[i] if i < len(row) else "" for i in keep] for row in rows]
    resolved = [hints.get(f, ColumnHint()) for f in fields]
    headers = [h.display_name or f for f, h in zip(fields, resolved)]

    natural = natural_widths(headers, vrows)
    capped = [min(w, h.max_width) if h.max_width > 0 else w for w, h in zip(natural, resolved)]

    rn_width = row_number_width(style, len(rows))
    available = total_width - rn_width
    if style != ARRAY_STYLE_NONE:
        available -= SEP_WIDTH
    priorities = [h.priority for h in resolved]
    if not any(priorities):
        priorities = None
    widths = calculate_column_widths(capped, available, priorities)

    planned = [
        PlannedColumn(field_name=f, display_name=hd, width=w, align=h.align or "left",
                      natural_width=n, capped_width=c)
        for f, hd, w, h, n, c in zip(fields, headers, widths, resolved, natural, capped)
    ]
    return ColumnPlan(columns=planned, rows=vrows, row_number_style=style,
                      row_number_width=rn_width)


def natural_columnar_width(columns: list[str], rows: list[list[str]],
                           hints: dict[str, ColumnHint] | None = None,
                           hidden_columns: list[str] | None = None,
                           row_number_style: str = ARRAY_STYLE_NUMBERED) -> int:
    """Width of the table when nothing needs to shrink."""
    plan = plan_columns(columns, rows, 1 << 30, hints, hidden_columns, row_number_style)
    return plan.width


def is_columnar_readable(columns: list[str], rows: list[list[str]], available_width: int,
                         hints: dict[str, ColumnHint] | None = None,
                         hidden_columns: list[str] | None = None,
                         row_number_style: str = ARRAY_STYLE_NUMBERED) -> bool:
    """False when the layout would squeeze naturally wide columns below 8 cells."""
    if not columns or not rows:
        return True
    plan = plan_columns(columns, rows, available_width, hints, hidden_columns, row_number_style)
    if not plan.columns:
        return True
    content = available_width
    if plan.show_row_numbers:
        content -= plan.row_number_width + SEP_WIDTH
    if content < READABLE_MIN_WIDTH:
        return False
    for col in plan.columns:
        if (col.natural_width >= READABLE_MIN_WIDTH and col.width < READABLE_MIN_WIDTH
                and col.width < col.capped_width):
            return False
    return True


# ── Columnar rendering ────────────────────────────────────────────────

def _row_label(index: int, style: str) -> str:
    if style == ARRAY_STYLE_INDEX:
        return f"[{index}]"
    if style == ARRAY_STYLE_BULLET:
        return "•"
    return str(index + 1)


def render_columnar(plan: ColumnPlan, no_color: bool = False) -> str:
    if not plan.columns:
        return ""
    sep = " " * SEP_WIDTH
    out = []

    header = []
    if plan.show_row_numbers:
        header.append(paint(pad_right("#", plan.row_number_width), "header", no_color))
    for col in plan.columns:
        header.append(paint(pad_right(truncate(col.display_name, col.width), col.width),
                            "header", no_color))
    out.append(sep.join(header))
    out.append(paint(rule_char() * plan.width, "separator", no_color))

    for i, row in enumerate(plan.rows):
        parts = []
        if plan.show_row_numbers:
            label = pad_right(_row_label(i, plan.row_number_style), plan.row_number_width)
            parts.append(paint(label, "key", no_color))
        for col, val in zip(plan.columns, row):
            cell = truncate(val, col.width)
            cell = pad_left(cell, col.width) if col.align == "right" else pad_right(cell, col.width)
            parts.append(paint(cell, "value", no_color))
        out.append(sep.join(parts))
    return "\n".join(out) + "\n"


def render_columnar_table(columns: list[str], rows: list[list[str]], total_width: int = 0,
                          hints: dict[str, ColumnHint] | None = None,
                          hidden_columns: list[str] | None = None,
                          row_number_style: str = ARRAY_STYLE_NUMBERED,
                          no_color: bool = False) -> str:
    if not columns or not rows:
        return ""
    if total_width <= 0:
        total_width = DEFAULT_TOTAL_WIDTH
    plan = plan_columns(columns, rows, total_width, hints, hidden_columns, row_number_style)
    return render_columnar(plan, no_color)


# ── KEY/VALUE tables ──────────────────────────────────────────────────

def natural_kv_width(rows: list[tuple[str, str]]) -> int:
    key_w = max([3] + [display_width(k) for k, _ in rows])
    val_w = max([5] + [display_width(v) for _, v in rows])
    return key_w + SEP_WIDTH + val_w


def _kv_lines(rows, key_width: int, value_width: int, no_color: bool) -> str:
    sep = " " * SEP_WIDTH
    out = [
        paint(pad_right("KEY", key_width), "header", no_color) + sep
        + paint(pad_right("VALUE", value_width), "header", no_color),
        paint(rule_char() * (key_width + SEP_WIDTH + value_width), "separator", no_color),
    ]
    for key, val in rows:
        k = paint(pad_right(truncate(key, key_width), key_width), "key", no_color)
        v = paint(pad_right(truncate(val, value_width), value_width), "value", no_color)
        out.append(k + sep + v)
    return "\n".join(out) + "\n"


def render_kv_rows(rows: list[tuple[str, str]], no_color: bool = False,
                   key_width: int = 0, value_width: int = 0) -> str:
    """Fixed-width KEY/VALUE table: key defaults to 30 cells, value to at least 20."""
    key_width = key_width if key_width > 0 else DEFAULT_KEY_WIDTH
    value_width = max(value_width, MIN_VALUE_WIDTH)
    return _kv_lines(rows, key_width, value_width, no_color)


def render_kv_fit_content(rows: list[tuple[str, str]], no_color: bool = False,
                          max_width: int = 0) -> str:
    """KEY/VALUE table sized to its content; the key gets at most 30% when squeezed."""
    key_width = max([3] + [display_width(k) for k, _ in rows])
    value_width = max([5] + [display_width(v) for _, v in rows])
    if max_width > 0 and key_width + SEP_WIDTH + value_width > max_width:
        available = max(max_width - SEP_WIDTH, 10)
        key_width = min(key_width, max(available * 30 // 100, 5))
        value_width = max(available - key_width, 5)
    return _kv_lines(rows, key_width, value_width, no_color)


def auto_key_width(rows: list[tuple[str, str]], preset: int = DEFAULT_KEY_WIDTH) -> int:
    preset = preset if preset > 0 else DEFAULT_KEY_WIDTH
    widest = max([0] + [display_width(k.strip()) for k, _ in rows])
    if widest <= 0:
        return preset
    return max(min(widest, preset), 8)


def kv_layout(rows: list[tuple[str, str]], total_width: int,
              key_width: int = 0, value_width: int = 0) -> tuple[int, int]:
    """Key and value widths for a KEY/VALUE table that spans total_width."""
    key = auto_key_width(rows, key_width)
    room = total_width - key - SEP_WIDTH
    if value_width > 0:
        value = min(value_width, room) if total_width > 0 else value_width
    else:
        value = room if total_width > 0 else MIN_VALUE_WIDTH
    return key, max(value, MIN_VALUE_WIDTH)


# ── Bordered frame ────────────────────────────────────────────────────

def footer_type_label(node: Any) -> str:
    if isinstance(node, list):
        return "list"
    if isinstance(node, dict):
        return "map"
    if isinstance(node, str):
        return "string"
    if isinstance(node, bool):
        return "bool"
    if isinstance(node, int):
        return "int"
    if isinstance(node, float):
        return "double"
    return ""


def _footer_texts(path: str, type_label: str, count: int) -> tuple[str, str]:
    prefix = f"{type_label}: " if type_label else ""
    return f" {path} ", f" {prefix}1/{count} "


def frame_width(width: int, title: str, path: str, type_label: str, count: int) -> int:
    """Grow width so the title and footer always fit."""
    left, right = _footer_texts(path, type_label, count)
    minimum = max(display_width(title) + 6, display_width(left) + display_width(right) + 3)
    return max(width, minimum)


def frame(body: str, width: int, title: str, path: str, type_label: str,
          count: int, no_color: bool = False) -> str:
    """Wrap rendered lines in a box with a centred title and a path/count footer."""
    box = box_style()
    inner = width - 4
    left_dashes = (inner - display_width(title)) // 2
    right_dashes = inner - display_width(title) - left_dashes
    top = (box.top_left + box.top * left_dashes + " " + title + " "
           + box.top * right_dashes + box.top_right)

    left, right = _footer_texts(path, type_label, count)
    dashes = max(0, width - display_width(left) - display_width(right) - 2)
    bottom = (paint(box.bottom_left, "separator", no_color) + paint(left, "path", no_color)
              + paint(box.bottom * dashes, "separator", no_color)
              + paint(right, "status", no_color) + paint(box.bottom_right, "separator", no_color))

    side = paint(box.mid_left, "separator", no_color)
    side_right = paint(box.mid_right, "separator", no_color)
    out = [paint(top, "separator", no_color)]
    lines = body.split("\n")
    if lines and not lines[-1].strip():
        lines = lines[:-1]
    for line in lines:
        pad = width - 2 - Text.from_ansi(line).cell_len
        out.append(side + line + " " * max(0, pad) + side_right)
    out.append(bottom)
    return "\n".join(out) + "\n"


# ── Dispatch ──────────────────────────────────────────────────────────

def should_use_columnar(node: Any, mode: str) -> bool:
    if mode == "never":
        return False
    if mode == "always":
        return isinstance(node, list)
    return is_homogeneous_array(node)[0]


def _render_columnar_node(node, columns, rows, opts: TableOptions, width: int) -> str:
    style = opts.array_style or ARRAY_STYLE_NUMBERED
    if not opts.bordered:
        return render_columnar_table(columns, rows, width, opts.column_hints,
                                     opts.hidden_columns, style, opts.no_color)
    natural = natural_columnar_width(columns, rows, opts.column_hints,
                                     opts.hidden_columns, style)
    table_width = natural + 2 if natural + 2 < width else width
    table_width = frame_width(table_width, opts.title, opts.path, "list", len(rows))
    body = render_columnar_table(columns, rows, table_width - 2, opts.column_hints,
                                 opts.hidden_columns, style, opts.no_color)
    return frame(body, table_width, opts.title, opts.path, "list", len(rows), opts.no_color)


def _render_kv_node(node, opts: TableOptions, width: int, sort_order: SortOrder) -> str:
    rows = node_to_rows(node, sort_order, opts.array_style or ARRAY_STYLE_INDEX)
    if not opts.bordered:
        key_w, val_w = kv_layout(rows, width, opts.key_width, opts.value_width)
        return render_kv_rows(rows, opts.no_color, key_w, val_w)

    type_label = footer_type_label(node)
    natural = natural_kv_width(rows) + 2
    fit = natural < width
    table_width = natural if fit else width
    table_width = frame_width(table_width, opts.title, opts.path, type_label, len(rows))
    if fit:
        body = render_kv_fit_content(rows, opts.no_color, table_width - 2)
    else:
        key_w, val_w = kv_layout(rows, table_width - 2, opts.key_width, opts.value_width)
        body = render_kv_rows(rows, opts.no_color, key_w, val_w)
    return frame(body, table_width, opts.title, opts.path, type_label, len(rows), opts.no_color)


def render_table(node: Any, opts: TableOptions | None = None,
                 sort_order: SortOrder = SortOrder.ASCENDING) -> str:
    """Render a node as a columnar table when its shape allows, else KEY/VALUE."""
    opts = opts or TableOptions()
    width = opts.total_width if opts.total_width > 0 else DEFAULT_TOTAL_WIDTH
    if should_use_columnar(node, opts.columnar_mode):
        columns, rows = extract_columnar_data(node, opts.column_order)
        if columns:
            return _render_columnar_node(node, columns, rows, opts, width)
    return _render_kv_node(node, opts, width, sort_order)
