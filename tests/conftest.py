"""Shared fixtures for kvx tests."""
from __future__ import annotations

import base64
import json
import logging
import pytest
from pathlib import Path

from kvx.formatters import style


@pytest.fixture
def tmp_file(tmp_path):
    """Factory: write text to a named file, return path."""
    def _make(text: str, name: str = "data.json") -> Path:
        p = tmp_path / name
        p.write_text(text, encoding="utf-8")
        return p
    return _make


@pytest.fixture
def make_jwt():
    """Factory: build an unsigned-looking JWT from header and payload dicts."""
    def _enc(obj) -> str:
        raw = json.dumps(obj).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    def _make(header: dict | None = None, payload: dict | None = None,
              signature: str = "c2lnbmF0dXJl") -> str:
        header = header if header is not None else {"alg": "HS256", "typ": "JWT"}
        payload = payload if payload is not None else {"sub": "1234567890", "name": "John Doe"}
        return f"{_enc(header)}.{_enc(payload)}.{signature}"
    return _make


@pytest.fixture
def people():
    """Homogeneous records for columnar layout tests."""
    return [
        {"name": "Alice", "age": 30, "city": "New York"},
        {"name": "Bob", "age": 25, "city": "Boston"},
        {"name": "Carol", "age": 41, "city": "Chicago"},
    ]


@pytest.fixture
def wide_columns():
    """Eight wide columns with one data row."""
    columns = ["name", "email", "address", "phone", "company", "department", "title", "country"]
    rows = [["Alice Johnson", "alice@example.com", "123 Main St", "555-1234",
             "Acme Corp", "Engineering", "Senior Dev", "United States"]]
    return columns, rows


@pytest.fixture(autouse=True)
def reset_terminal_state():
    """Unicode boxes and a propagating kvx logger for every test."""
    style.init(ascii_mode=False, no_color=True)
    yield
    style.init(ascii_mode=False, no_color=True)
    logger = logging.getLogger("kvx")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
