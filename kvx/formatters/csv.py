"""CSV formatter — RFC 4180 style export of a node."""
from __future__ import annotations

from typing import Any

from kvx.model import stringify

_QUOTE_TRIGGERS = (",", '"', "\n", "\r", " ")


def escape_csv_field(value: str) -> str:
    """Quote fields holding commas, quotes, line breaks or spaces; double inner quotes."""
    if any(ch in value for ch in _QUOTE_TRIGGERS):
        return '"' + value.replace('"', '""') + '"'
    return value


def _row(fields: list[str]) -> str:
    return ",".join(escape_csv_field(f) for f in fields) + "\n"


def format_csv(node: Any) -> str:
    if isinstance(node, list):
        if not node:
            return ""
        if isinstance(node[0], dict):
            keys = sorted({k for elem in node if isinstance(elem, dict) for k in elem})
            out = [_row(keys)]
            for elem in node:
                if isinstance(elem, dict):
                    out.append(_row([stringify(elem[k]) if k in elem else "" for k in keys]))
            return "".join(out)
        return _row(["value"]) + "".join(_row([stringify(e)]) for e in node)
    if isinstance(node, dict):
        return _row(["key", "value"]) + "".join(
            _row([k, stringify(node[k])]) for k in sorted(node))
    return _row(["value"]) + _row([stringify(node)])
