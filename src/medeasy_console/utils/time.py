"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def clock_time(moment: datetime) -> str:
    """Wall-clock rendering used in log headers, e.g. ``14:03:27``."""
    return moment.astimezone().strftime("%H:%M:%S")
