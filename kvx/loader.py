"""Format-detecting loader — text, bytes and files into one canonical tree."""
from __future__ import annotations

import base64
import binascii
import csv
import io
import json
import logging
import re
import tomllib
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Callable, NamedTuple

import yaml

log = logging.getLogger("kvx.loader")

FORMAT_MULTI_YAML = "multi-doc YAML"
FORMAT_NDJSON = "NDJSON"
FORMAT_TOML = "TOML"
FORMAT_JSON = "JSON"
FORMAT_YAML = "YAML"


class ParseError(ValueError):
    """Every candidate parser rejected the input."""

    def __init__(self, failures: list[tuple[str, str]]):
        self.failures = failures
        lines = [f"{name}: {msg}" for name, msg in failures]
        super().__init__("all parsers failed:\n  " + "\n  ".join(lines))


class Candidate(NamedTuple):
    name: str
    parse: Callable[[str], list]


# ── Canonical form ────────────────────────────────────────────────────

def _canonical_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    if isinstance(key, (date, datetime, time)):
        return key.isoformat()
    return str(key)


def canonicalize(value: Any) -> Any:
    """Coerce YAML/TOML native values into the JSON-shaped data model."""
    if isinstance(value, dict):
        return {_canonical_key(k): canonicalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return [canonicalize(v) for v in sorted(value, key=str)]
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


# ── Parsers ───────────────────────────────────────────────────────────

def parse_json(text: str) -> list:
    try:
        return [json.loads(text)]
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON: {e}") from e


def parse_yaml(text: str) -> list:
    try:
        return [canonicalize(yaml.safe_load(text))]
    except yaml.YAMLError as e:
        raise ValueError(f"invalid YAML: {e}") from e


def parse_multi_yaml(text: str) -> list:
    try:
        docs = [canonicalize(d) for d in yaml.safe_load_all(text) if d is not None]
    except yaml.YAMLError as e:
        raise ValueError(f"invalid multi-document YAML: {e}") from e
    if not docs:
        raise ValueError("no documents found in multi-document YAML")
    return docs


def parse_toml(text: str) -> list:
    try:
        return [canonicalize(tomllib.loads(text))]
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"invalid TOML: {e}") from e


def parse_ndjson(text: str) -> list:
    """One value per non-blank line; lines that are not JSON stay strings."""
    out: list = []
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            continue
        try:
            out.append(json.loads(line))
        except json.JSONDecodeError:
            out.append(line)
    if not out:
        raise ValueError("no data found in input")
    return out


PARSERS: dict[str, Callable[[str], list]] = {
    FORMAT_MULTI_YAML: parse_multi_yaml,
    FORMAT_NDJSON: parse_ndjson,
    FORMAT_TOML: parse_toml,
    FORMAT_JSON: parse_json,
    FORMAT_YAML: parse_yaml,
}

FALLBACK_ORDER = (FORMAT_MULTI_YAML, FORMAT_TOML, FORMAT_JSON, FORMAT_YAML)


# ── JWT ───────────────────────────────────────────────────────────────

_B64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")


def _b64url_decode(part: str) -> bytes:
    """Decode unpadded base64url, rejecting padding and foreign characters."""
    if not _B64URL_RE.match(part) or len(part) % 4 == 1:
        raise ValueError("illegal base64url data")
    try:
        return base64.urlsafe_b64decode(part + "=" * (-len(part) % 4))
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"illegal base64url data: {e}") from e


def _jwt_parts(text: str) -> list[str]:
    text = text.removeprefix("Bearer ").strip()
    return text.split(".")


def _decode_jwt_object(part: str) -> dict:
    obj = json.loads(_b64url_decode(part))
    if not isinstance(obj, dict):
        raise ValueError("not a JSON object")
    return obj


def is_jwt(text: str) -> bool:
    """True when text is three base64url parts with JSON-object header and payload."""
    parts = _jwt_parts(text)
    if len(parts) != 3 or not all(parts):
        return False
    try:
        _decode_jwt_object(parts[0])
        _decode_jwt_object(parts[1])
        _b64url_decode(parts[2])
    except (ValueError, UnicodeDecodeError):
        return False
    return True


def decode_jwt(text: str) -> dict:
    """Split a JWT into header, payload and the raw signature segment."""
    parts = _jwt_parts(text)
    if len(parts) != 3:
        raise ValueError(f"invalid JWT: expected 3 parts, got {len(parts)}")
    try:
        header = _decode_jwt_object(parts[0])
    except (ValueError, UnicodeDecodeError) as e:
        raise ValueError(f"invalid JWT header: {e}") from e
    try:
        payload = _decode_jwt_object(parts[1])
    except (ValueError, UnicodeDecodeError) as e:
        raise ValueError(f"invalid JWT payload: {e}") from e
    return {"header": header, "payload": payload, "signature": parts[2]}


# ── Heuristics ────────────────────────────────────────────────────────

_TOML_KEY = r"""(?:[a-zA-Z_][a-zA-Z0-9_-]*|"[^"]+"|'[^']+')"""
_TOML_SECTION_RE = re.compile(
    rf"^\[{{1,2}}{_TOML_KEY}+(?:\.{_TOML_KEY})*\]{{1,2}}\s*$")
_TOML_KV_RE = re.compile(rf"^{_TOML_KEY}+(?:\.{_TOML_KEY})*\s*=\s*.+$")


def has_multi_doc_signal(text: str) -> bool:
    return "\n---" in text or text.startswith("---")


def is_likely_ndjson(text: str) -> bool:
    lines = text.split("\n")
    if len(lines) <= 1:
        return False
    non_empty = 0
    json_lines = 0
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        non_empty += 1
        if stripped[0] in "{[":
            json_lines += 1
    return non_empty > 1 and json_lines > non_empty // 2


def is_likely_toml(text: str) -> bool:
    """A section header is decisive; otherwise most lines must be key = value."""
    non_empty = 0
    kv = 0
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        non_empty += 1
        if _TOML_SECTION_RE.match(line):
            return True
        if _TOML_KV_RE.match(line):
            kv += 1
    return non_empty > 0 and kv > non_empty // 2


def _candidate(name: str) -> Candidate:
    return Candidate(name, PARSERS[name])


def build_candidates(text: str) -> list[Candidate]:
    """Order parsers by the signals present in text, then the fixed fallbacks."""
    names: list[str] = []
    if has_multi_doc_signal(text):
        names.append(FORMAT_MULTI_YAML)
    # NDJSON and TOML documents fail a whole-document JSON parse
    if text.startswith(("{", "[")):
        names.append(FORMAT_JSON)
    if is_likely_ndjson(text):
        names.append(FORMAT_NDJSON)
    if is_likely_toml(text):
        names.append(FORMAT_TOML)
    for name in FALLBACK_ORDER:
        if name not in names:
            names.append(name)
    return [_candidate(n) for n in names]


def try_parsers(text: str, candidates: list[Candidate],
                logger: logging.Logger | None = None) -> list:
    """Return the first successful parse; aggregate every failure otherwise."""
    logger = logger or log
    failures: list[tuple[str, str]] = []
    for cand in candidates:
        try:
            return cand.parse(text)
        except ValueError as e:
            logger.debug("parse attempt failed: format=%s error=%s", cand.name, e)
            failures.append((cand.name, str(e)))
    raise ParseError(failures)


def _unwrap(docs: list) -> Any:
    if len(docs) == 1:
        return docs[0]
    return docs


# ── Entry points ──────────────────────────────────────────────────────

def load_root(text: str, logger: logging.Logger | None = None) -> Any:
    """Parse text in any supported format into a single canonical root."""
    text = text.strip()
    if not text:
        raise ValueError("empty input")
    if is_jwt(text):
        return decode_jwt(text)
    return _unwrap(try_parsers(text, build_candidates(text), logger))


def load_root_bytes(data: bytes, logger: logging.Logger | None = None) -> Any:
    return load_root(data.decode("utf-8-sig"), logger)


EXTENSION_FORMATS = {
    ".yaml": FORMAT_YAML,
    ".yml": FORMAT_YAML,
    ".json": FORMAT_JSON,
    ".toml": FORMAT_TOML,
    ".ndjson": FORMAT_NDJSON,
    ".jsonl": FORMAT_NDJSON,
}


def candidates_for_extension(text: str, suffix: str) -> list[Candidate]:
    """Put the extension's parser first, then the heuristic order."""
    heuristic = build_candidates(text)
    fmt = EXTENSION_FORMATS.get(suffix.lower())
    if fmt is None:
        return heuristic
    if fmt == FORMAT_YAML and has_multi_doc_signal(text):
        fmt = FORMAT_MULTI_YAML
    return [_candidate(fmt)] + [c for c in heuristic if c.name != fmt]


def load_file(path: str | Path, logger: logging.Logger | None = None) -> Any:
    """Load a file, letting its extension choose the first parser."""
    logger = logger or log
    path = Path(path)
    text = path.read_bytes().decode("utf-8-sig").strip()
    if not text:
        raise ValueError("empty input")
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return parse_csv(text)
    if is_jwt(text):
        return decode_jwt(text)
    if suffix in EXTENSION_FORMATS:
        logger.debug("format from extension: ext=%s format=%s",
                     suffix, EXTENSION_FORMATS[suffix])
    return _unwrap(try_parsers(text, candidates_for_extension(text, suffix), logger))


# ── CSV ───────────────────────────────────────────────────────────────

def parse_csv(text: str) -> list[dict]:
    """First row is the header; every later row becomes a record."""
    rows = list(csv.reader(io.StringIO(text)))
    if not rows:
        return []
    headers = rows[0]
    out = []
    for row in rows[1:]:
        rec = {}
        for i, h in enumerate(headers):
            rec[h] = row[i] if i < len(row) else ""
        out.append(rec)
    return out


def looks_like_csv(text: str) -> bool:
    """Header plus data rows that YAML rejects or reads only as one flat string."""
    text = text.strip()
    if not text or text[0] in "{[":
        return False
    try:
        rows = [row for row in csv.reader(io.StringIO(text)) if row]
    except csv.Error:
        return False
    if len(rows) < 2 or len(rows[0]) <= 1:
        return False
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError:
        return True
    if not isinstance(parsed, str):
        return False
    return all(len(row) == len(rows[0]) for row in rows[1:])


def load_input(data: bytes | str, path: str | Path | None = None,
               logger: logging.Logger | None = None) -> Any:
    """Load CLI input: a file path when given, else piped data with CSV sniffing."""
    if path is not None:
        return load_file(path, logger)
    text = data.decode("utf-8-sig") if isinstance(data, (bytes, bytearray)) else data
    if looks_like_csv(text):
        (logger or log).debug("stdin detected as CSV")
        return parse_csv(text.strip())
    return load_root(text, logger)
