"""Field value coercion for form submissions."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_int(value: object) -> int | None:
    """Parse a base-10 integer from the leading part of ``value``.

    ``"42"`` and ``"42 units"`` both give 42; ``"abc"`` gives None, which
    is sent as JSON null. Digit runs past the interpreter's conversion
    limit are treated as unparseable too.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _INT_PREFIX_RE.match(str(value))
    if match is None:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        return None


def parse_float(value: object) -> float | None:
    """Parse a float from the leading part of ``value`` (``"2.5kg"`` gives 2.5).

    Results that JSON cannot carry (``"1e999"``, NaN) become None.
    """
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            match = _FLOAT_PREFIX_RE.match(str(value))
            if match is None:
                return None
            number = float(match.group(1))
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def coerce_fields(
    fields: Mapping[str, Any],
    numeric_fields: Iterable[str],
    float_fields: Iterable[str],
) -> dict[str, Any]:
    """Return a copy of ``fields`` with listed fields parsed to numbers.

    A listed field that is blank is removed, so the server sees it as absent
    rather than as an empty string or a default. Unlisted fields pass
    through untouched.
    """
    result = dict(fields)
    for name, parse in (
        *((name, parse_int) for name in numeric_fields),
        *((name, parse_float) for name in float_fields),
    ):
        if name not in result:
            continue
        if is_blank(result[name]):
            del result[name]
            continue
        result[name] = parse(result[name])
    return result
