"""JSON formatter — canonical node as indented JSON."""
from __future__ import annotations

import json
from datetime import date, datetime


def _default_serializer(obj):
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


def format_json(data) -> str:
    """Serialize a node as 2-space indented JSON with a trailing newline."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=_default_serializer) + "\n"
