"""JSON serialization utilities."""

from __future__ import annotations

import datetime
import decimal
import json
from collections.abc import Mapping


def json_default(obj: object) -> object:
    """JSON serializer for objects not serializable by default json code."""
    if isinstance(obj, (datetime.date, datetime.datetime)):
        return obj.isoformat()
    if isinstance(obj, decimal.Decimal):
        if obj == obj.to_integral_value():
            return int(obj)
        return float(obj)
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="replace")
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


def render_payload(payload: object) -> str:
    """Pretty-print a payload for display, never raising.

    Falls back to ``repr`` when the payload cannot be encoded as JSON
    (circular references, a ``__str__`` that raises, ...).
    """
    try:
        return json.dumps(payload, indent=2, ensure_ascii=False, default=json_default)
    except Exception:
        pass
    try:
        return repr(payload)
    except Exception:
        return f"<unrenderable {type(payload).__name__}>"
