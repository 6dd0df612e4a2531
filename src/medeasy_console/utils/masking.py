"""Masking of credentials and contact details in mirrored API payloads.

The console keeps raw payloads for its own log panel; only the copy written
to the process log goes through ``redact_sensitive_fields``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

_MAX_REDACT_DEPTH = 20

# Substring match against lowercased keys.
SENSITIVE_KEY_MARKERS: tuple[str, ...] = (
    "password",
    "secret",
    "token",
    "apikey",
    "credential",
    "authorization",
)

PARTIAL_KEYS = frozenset({"email"})

_BEARER_RE = re.compile(r"(?i)\bbearer\s+\S+")


def mask_email(value: str, mask: str = "***") -> str:
    """``owner@pharmacy.io`` becomes ``o***@pharmacy.io``."""
    local, sep, domain = value.partition("@")
    if not sep:
        return mask
    return f"{local[:1]}{mask}@{domain}"


def _is_sensitive(key: object) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in SENSITIVE_KEY_MARKERS)


def redact_sensitive_fields(
    value: object,
    *,
    mask: str = "***",
    depth: int = 0,
    max_depth: int = _MAX_REDACT_DEPTH,
) -> object:
    """Return a copy of ``value`` safe to write to the process log.

    Values under sensitive keys are replaced by ``mask``, email addresses keep
    their first character and domain, and stray ``Bearer`` credentials inside
    strings are blanked. Anything nested deeper than ``max_depth`` collapses
    to ``mask``.
    """
    if depth >= max_depth:
        return mask
    if isinstance(value, Mapping):
        redacted: dict[object, object] = {}
        for key, val in value.items():
            if _is_sensitive(key):
                redacted[key] = mask
            elif str(key).lower() in PARTIAL_KEYS and isinstance(val, str):
                redacted[key] = mask_email(val, mask)
            else:
                redacted[key] = redact_sensitive_fields(
                    val, mask=mask, depth=depth + 1, max_depth=max_depth
                )
        return redacted
    if isinstance(value, (list, tuple)):
        return [
            redact_sensitive_fields(item, mask=mask, depth=depth + 1, max_depth=max_depth)
            for item in value
        ]
    if isinstance(value, str):
        return _BEARER_RE.sub(f"Bearer {mask}", value)
    return value
