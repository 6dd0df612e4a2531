"""Shared HTTP utilities."""

from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import quote, urlencode, urlparse

_BASE_URL_ALLOWED_SCHEMES = frozenset({"http", "https"})

PATH_ID_PLACEHOLDER = ":id"


def normalize_base_url(value: str) -> str:
    """Normalize and validate the API base URL.

    The result has a lowercase scheme and no trailing slash, so endpoint
    paths (which always start with ``/``) can be appended directly.
    """
    candidate = value.strip()
    if not candidate:
        raise ValueError("base_url must not be empty")

    parsed = urlparse(candidate)
    if parsed.scheme.lower() not in _BASE_URL_ALLOWED_SCHEMES:
        raise ValueError("base_url must use http or https")
    if not parsed.netloc:
        raise ValueError("base_url must include host")
    if parsed.query or parsed.fragment:
        raise ValueError("base_url must not include query or fragment")

    normalized_path = parsed.path.rstrip("/")
    return f"{parsed.scheme.lower()}://{parsed.netloc}{normalized_path}"


def join_url(base_url: str, path: str) -> str:
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{base_url}{path}"


def substitute_path_id(template: str, value: object) -> str:
    """Replace the ``:id`` placeholder segment with a URL-quoted value."""
    return template.replace(PATH_ID_PLACEHOLDER, quote(str(value), safe=""), 1)


def append_query_string(path: str, fields: Mapping[str, object]) -> str:
    """Append non-blank fields to ``path`` as a query string.

    Blank values are left out entirely so the server sees the filter as
    absent rather than empty.
    """
    params = [
        (key, str(value))
        for key, value in fields.items()
        if value is not None and str(value).strip() != ""
    ]
    if not params:
        return path
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{urlencode(params)}"
