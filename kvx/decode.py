"""Object normalization and recursive decoding of embedded serialized strings."""
from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Mapping
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from kvx.loader import load_root, load_root_bytes

log = logging.getLogger("kvx.decode")

MAX_DECODE_DEPTH = 20

DECODE_MODES = ("disabled", "lazy", "eager")


class ObjectNormalizationError(ValueError):
    """A host value could not be mapped onto the data model."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


# ── Decoding ──────────────────────────────────────────────────────────

def is_structured(value: Any) -> bool:
    return isinstance(value, (dict, list))


def try_decode(text: str, logger: logging.Logger | None = None) -> tuple[Any, bool]:
    """Parse a string leaf; succeed only when it yields a map or a list."""
    if not text:
        return None, False
    try:
        parsed = load_root(text, logger)
    except ValueError:
        return None, False
    if is_structured(parsed):
        return parsed, True
    return None, False


def recursive_decode(node: Any) -> Any:
    """Replace every decodable string leaf with its structure, returning a new tree."""
    return _recursive_decode(node, 0)


def _recursive_decode(node: Any, depth: int) -> Any:
    if depth > MAX_DECODE_DEPTH:
        return node
    if isinstance(node, Mapping):
        return {k if isinstance(k, str) else str(k): _recursive_decode(v, depth + 1)
                for k, v in node.items()}
    if isinstance(node, (list, tuple)):
        return [_recursive_decode(v, depth + 1) for v in node]
    if isinstance(node, str):
        decoded, ok = try_decode(node)
        if ok:
            return _recursive_decode(decoded, depth)
    return node


def apply_auto_decode(node: Any, mode: str, stage: str) -> Any:
    """Run the decode step that belongs to a pipeline stage ("load" or "final")."""
    if mode == "eager" and stage == "load":
        return recursive_decode(node)
    if mode == "lazy" and stage == "final" and isinstance(node, str):
        decoded, ok = try_decode(node)
        if ok:
            return decoded
    return node


# ── Object normalization ──────────────────────────────────────────────

def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if hasattr(obj, "to_canonical"):
        return obj.to_canonical()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if hasattr(obj, "__dict__") and not callable(obj):
        return {k: v for k, v in vars(obj).items() if not k.startswith("_")}
    raise TypeError(f"object of type {type(obj).__name__} is not representable")


def _roundtrip(value: Any) -> Any:
    try:
        data = json.dumps(value, default=_json_default)
    except (TypeError, ValueError) as e:
        raise ObjectNormalizationError(f"cannot serialize {type(value).__name__}: {e}",
                                       value) from e
    return json.loads(data)


def normalize_object(value: Any) -> Any:
    """Map a host value onto the data model; dicts are returned as-is."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, "to_canonical"):
        return normalize_object(value.to_canonical())
    if isinstance(value, (list, tuple)):
        out = []
        for i, item in enumerate(value):
            try:
                out.append(normalize_object(item))
            except ObjectNormalizationError as e:
                raise ObjectNormalizationError(f"element [{i}]: {e}", value) from e
        return out
    if isinstance(value, dict):
        return value
    if isinstance(value, Mapping):
        return {k if isinstance(k, str) else str(k): v for k, v in value.items()}
    return _roundtrip(value)


def load_object(value: Any, logger: logging.Logger | None = None) -> Any:
    """Accept text, bytes or an in-memory value and produce a canonical root."""
    if value is None:
        raise ObjectNormalizationError("object input is nil")
    if isinstance(value, str):
        return load_root(value, logger)
    if isinstance(value, (bytes, bytearray)):
        return load_root_bytes(bytes(value), logger)
    return normalize_object(value)
