"""Terminal styling — console state, box glyphs and the table palette."""
from __future__ import annotations

import os
import sys

from rich.box import ASCII as ASCII_BOX, ROUNDED, Box
from rich.console import Console
from rich.style import Style

# ── Module state ──────────────────────────────────────────────────────

USE_ASCII = False
console = Console()
err_console = Console(stderr=True)

PALETTE = {
    "header": Style.parse("bold color(12) on color(236)"),
    "key": Style.parse("color(14)"),
    "value": Style.parse("color(248)"),
    "separator": Style.parse("color(240)"),
    "path": Style.parse("color(111)"),
    "status": Style.parse("color(114)"),
}


def init(ascii_mode: bool = False, force_color: bool = False, no_color: bool = False):
    global USE_ASCII, console, err_console
    USE_ASCII = ascii_mode
    if force_color:
        console = Console(force_terminal=True, no_color=no_color)
    else:
        console = Console(no_color=no_color)
    err_console = Console(stderr=True, no_color=no_color)


def detect_ascii() -> bool:
    encoding = getattr(sys.stdout, "encoding", "") or ""
    if encoding.lower().replace("-", "") not in ("utf8", "utf16", "utf32"):
        return True
    lang = os.environ.get("LANG", "") + os.environ.get("LC_ALL", "")
    if lang and "utf" not in lang.lower():
        return True
    return False


def detect_no_color() -> bool:
    """NO_COLOR (any value) or a non-terminal stdout disables styling."""
    if "NO_COLOR" in os.environ:
        return True
    return not sys.stdout.isatty()


def box_style() -> Box:
    return ASCII_BOX if USE_ASCII else ROUNDED


def rule_char() -> str:
    return box_style().top


def paint(text: str, role: str, no_color: bool = False) -> str:
    """Wrap text in the ANSI sequence for a palette role."""
    if no_color or not text:
        return text
    return PALETTE[role].render(text)
