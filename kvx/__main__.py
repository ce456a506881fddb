"""CLI entry point for kvx."""
from __future__ import annotations

import argparse
import sys

from rich.markup import escape

from kvx.decode import DECODE_MODES
from kvx.diagnostics import configure_logging
from kvx.engine import OUTPUT_FORMATS, Engine, RenderOptions
from kvx.formatters import style
from kvx.formatters.mermaid import DIRECTIONS, MermaidOptions
from kvx.formatters.table import COLUMNAR_MODES, DEFAULT_TOTAL_WIDTH, TableOptions
from kvx.formatters.tree import TreeOptions, auto_max_string_len
from kvx.limiter import LimiterConfig, LimiterError
from kvx.model import ARRAY_STYLES, SortOrder
from kvx.navigator import NavigationError
from kvx.schema import field_width_hints, load_schema_hints

VERSION = "0.1.0"

EXIT_IO = 1
EXIT_USAGE = 2


def _build_parser() -> argparse.ArgumentParser:
    # Record selection and decoding
    pipeline_opts = argparse.ArgumentParser(add_help=False)
    pipeline_opts.add_argument("--path", "-p", "--expression", "-e", dest="path", default="",
                               metavar="PATH", help="Dotted or bracket path into the data ('_' is the root)")
    pipeline_opts.add_argument("--limit", type=int, default=0, metavar="N",
                               help="Show only the first N records")
    pipeline_opts.add_argument("--offset", type=int, default=0, metavar="N",
                               help="Skip the first N records")
    pipeline_opts.add_argument("--tail", type=int, default=0, metavar="N",
                               help="Show the last N records (exclusive with --limit; ignores --offset)")
    pipeline_opts.add_argument("--auto-decode", choices=DECODE_MODES, default="disabled",
                               help="Decode serialized strings: eager (at load), lazy (final node)")
    pipeline_opts.add_argument("--sort", choices=[s.value for s in SortOrder], default="ascending",
                               help="Map key order in KEY/VALUE tables")

    # Presentation
    display_opts = argparse.ArgumentParser(add_help=False)
    display_opts.add_argument("--output", "-o", choices=OUTPUT_FORMATS, default="auto",
                              help="Output format (default: auto)")
    display_opts.add_argument("--array-style", choices=ARRAY_STYLES, default="none",
                              help="Array index style")
    display_opts.add_argument("--columnar", choices=COLUMNAR_MODES, default="auto",
                              help="Render arrays of objects as multi-column tables")
    display_opts.add_argument("--column-order", metavar="A,B", default="",
                              help="Preferred column order (comma separated)")
    display_opts.add_argument("--hidden-columns", metavar="A,B", default="",
                              help="Columns to omit (comma separated)")
    display_opts.add_argument("--schema", metavar="FILE",
                              help="JSON Schema file for column display hints")
    display_opts.add_argument("--width", type=int, default=0,
                              help="Output width in columns (default: terminal width)")
    display_opts.add_argument("--key-width", type=int, default=0, help="KEY column width")
    display_opts.add_argument("--value-width", type=int, default=0, help="VALUE column width")
    display_opts.add_argument("--no-border", action="store_true",
                              help="Plain tables without the surrounding frame")
    display_opts.add_argument("--depth", "--tree-depth", dest="depth", type=int, default=0,
                              help="Tree/Mermaid depth limit (0 = unlimited)")
    display_opts.add_argument("--expand-arrays", "--tree-expand-arrays", dest="expand_arrays",
                              action="store_true", help="Expand scalar arrays in tree/Mermaid output")
    display_opts.add_argument("--no-values", "--tree-no-values", dest="no_values",
                              action="store_true", help="Structure only in tree/Mermaid output")
    display_opts.add_argument("--tree-max-string", type=int, default=0, metavar="N",
                              help="Max string length in tree output (0=auto, -1=unlimited)")
    display_opts.add_argument("--direction", "--mermaid-direction", dest="direction",
                              choices=DIRECTIONS, default="TD", help="Mermaid diagram direction")
    display_opts.add_argument("--no-color", action="store_true", help="Disable color output")
    display_opts.add_argument("--color", action="store_true",
                              help="Force color output (for piping to less -R)")
    display_opts.add_argument("--ascii", action="store_true",
                              help="Force ASCII output (no Unicode box drawing)")
    display_opts.add_argument("--debug", "-v", action="store_true",
                              help="Log parser fallbacks and layout decisions to stderr")

    parser = argparse.ArgumentParser(
        prog="kvx",
        description="Explore structured data (JSON, YAML, NDJSON, TOML, JWT, CSV) in the terminal",
        parents=[pipeline_opts, display_opts],
    )
    parser.add_argument("file", nargs="?", help="Input file (default: stdin; '-' reads stdin)")
    parser.add_argument("--version", action="version", version=f"kvx {VERSION}")
    return parser


def _split_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _fail(message: str, code: int) -> None:
    style.err_console.print(f"[red]{escape(message)}[/]")
    sys.exit(code)


def _term_width(args) -> int:
    if args.width > 0:
        return args.width
    if sys.stdout.isatty():
        return style.console.width
    return DEFAULT_TOTAL_WIDTH


def _render_options(args, hints: dict, width: int, no_color: bool) -> RenderOptions:
    piped = not sys.stdout.isatty()
    if args.tree_max_string > 0:
        max_string = args.tree_max_string
    elif args.tree_max_string < 0:
        max_string = 0
    else:
        max_string = auto_max_string_len(width, piped)
    field_hints = field_width_hints(hints)

    table = TableOptions(
        no_color=no_color,
        key_width=args.key_width,
        value_width=args.value_width,
        total_width=width,
        array_style=args.array_style,
        columnar_mode=args.columnar,
        column_order=_split_list(args.column_order),
        hidden_columns=_split_list(args.hidden_columns),
        column_hints=hints,
        bordered=not args.no_border,
        path=args.path or "_",
    )
    tree = TreeOptions(
        no_values=args.no_values,
        max_depth=args.depth,
        expand_arrays=args.expand_arrays,
        max_string_len=max_string,
        field_hints=field_hints,
        array_style=args.array_style,
        no_color=no_color,
    )
    mermaid = MermaidOptions(
        direction=args.direction,
        no_values=args.no_values,
        max_depth=args.depth,
        expand_arrays=args.expand_arrays,
        max_string_len=max_string,
        field_hints=field_hints,
        array_style=args.array_style,
    )
    return RenderOptions(table=table, tree=tree, mermaid=mermaid)


def _read_input(args, engine: Engine):
    if args.file and args.file != "-":
        return engine.load_file(args.file)
    if not args.file and sys.stdin.isatty():
        return None
    return engine.load_input(sys.stdin.buffer.read())


def main(argv: list[str] | None = None):
    parser = _build_parser()
    args = parser.parse_args(argv)

    no_color = args.no_color or (not args.color and style.detect_no_color())
    logger = configure_logging(debug=args.debug, no_color=no_color)
    style.init(ascii_mode=args.ascii or style.detect_ascii(), force_color=args.color,
               no_color=no_color)

    # Limiter flags abort before any input is read
    limiter = LimiterConfig(limit=args.limit, offset=args.offset, tail=args.tail)
    try:
        limiter.validate()
    except LimiterError as e:
        _fail(f"Error: {e}", EXIT_USAGE)

    engine = Engine(sort_order=args.sort, logger=logger)
    try:
        root = _read_input(args, engine)
    except OSError as e:
        _fail(f"Error: {e}", EXIT_IO)
    except ValueError as e:
        _fail(f"Error: {e}", EXIT_USAGE)
    if root is None:
        parser.print_help(sys.stderr)
        sys.exit(EXIT_USAGE)

    hints = load_schema_hints(args.schema, logger) if args.schema else {}

    try:
        node = engine.prepare(root, args.path, limiter, args.auto_decode)
    except NavigationError as e:
        _fail(f"Error: {e}", EXIT_USAGE)

    width = _term_width(args)
    out = engine.render(node, args.output, _render_options(args, hints, width, no_color))
    sys.stdout.write(out)
    sys.stdout.flush()


if __name__ == "__main__":
    main()
