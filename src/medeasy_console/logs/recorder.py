"""In-memory request log backing the console's log panel."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Literal

from medeasy_console.utils.masking import redact_sensitive_fields
from medeasy_console.utils.serialization import render_payload
from medeasy_console.utils.time import clock_time, utc_now

logger = logging.getLogger(__name__)

Outcome = Literal["success", "error"]

LogObserver = Callable[["LogRecord"], None]


@dataclass(frozen=True)
class LogRecord:
    """One dispatched request as shown in the log panel."""

    outcome: Outcome
    method: str
    path: str
    timestamp: datetime
    payload: Any
    rendered: str = field(repr=False)

    @property
    def header(self) -> str:
        return f"{self.method} {self.path}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "method": self.method,
            "path": self.path,
            "timestamp": self.timestamp.isoformat(),
            "time": clock_time(self.timestamp),
            "payload": self.rendered,
        }


class RequestLogger:
    """Append-only request log, exposed newest-first.

    ``record`` never raises: a payload that cannot be rendered is stored
    with a best-effort string form instead.
    """

    def __init__(self) -> None:
        self._records: deque[LogRecord] = deque()
        self._observers: list[LogObserver] = []

    def record(self, outcome: Outcome, method: str, path: str, payload: Any) -> LogRecord:
        entry = LogRecord(
            outcome=outcome,
            method=method,
            path=path,
            timestamp=utc_now(),
            payload=payload,
            rendered=render_payload(payload),
        )
        self._records.appendleft(entry)
        self._mirror(entry)
        for observer in list(self._observers):
            try:
                observer(entry)
            except Exception:
                logger.exception("Log observer failed")
        return entry

    def records(self) -> list[LogRecord]:
        return list(self._records)

    def clear(self) -> None:
        self._records.clear()

    def subscribe(self, observer: LogObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def __len__(self) -> int:
        return len(self._records)

    @staticmethod
    def _mirror(entry: LogRecord) -> None:
        try:
            masked = render_payload(redact_sensitive_fields(entry.payload))
        except Exception:
            masked = "<unrenderable>"
        level = logging.INFO if entry.outcome == "success" else logging.WARNING
        logger.log(level, "%s %s %s %s", entry.outcome.upper(), entry.method, entry.path, masked)
