"""HTTP dispatch against the MedEasy API with one log record per request."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal

import httpx

from medeasy_console.logs.recorder import RequestLogger
from medeasy_console.session.store import SessionStore
from medeasy_console.utils.http import join_url
from medeasy_console.utils.serialization import json_default

logger = logging.getLogger(__name__)

ErrorKind = Literal["encoding", "transport", "malformed", "status"]


@dataclass(frozen=True)
class ApiError:
    """Why a dispatch failed."""

    message: str
    kind: ErrorKind
    status: int | None = None


@dataclass(frozen=True)
class DispatchResult:
    status: int | None
    data: Any = None
    error: ApiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class HttpDispatcher:
    """Send JSON requests, classify the outcome and log it.

    ``send`` never raises for network or server problems; the failure comes
    back as ``DispatchResult.error`` after it has been logged.
    """

    def __init__(
        self,
        base_url: str,
        session_store: SessionStore,
        request_logger: RequestLogger,
        *,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._session_store = session_store
        self._request_logger = request_logger
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._session_store.get().token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def send(self, path: str, method: str = "GET", body: Any = None) -> DispatchResult:
        method = method.upper()
        content = None
        if body is not None:
            try:
                content = json.dumps(body, default=json_default, allow_nan=False)
            except ValueError as exc:
                message = f"Request body is not valid JSON: {exc}"
                self._request_logger.record("error", method, path, {"error": message})
                return DispatchResult(status=None, error=ApiError(message, "encoding"))

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.request(
                    method,
                    join_url(self._base_url, path),
                    headers=self._headers(),
                    content=content,
                )
                text = resp.text
        except httpx.HTTPError as exc:
            message = str(exc) or f"Request failed ({type(exc).__name__})"
            logger.debug("Transport failure for %s %s", method, path, exc_info=True)
            self._request_logger.record("error", method, path, {"error": message})
            return DispatchResult(status=None, error=ApiError(message, "transport"))

        try:
            data = json.loads(text) if text else {}
        except ValueError:
            message = f"Malformed response body (status {resp.status_code})"
            self._request_logger.record(
                "error", method, path, {"error": message, "body": text}
            )
            return DispatchResult(
                status=resp.status_code,
                error=ApiError(message, "malformed", resp.status_code),
            )

        if not resp.is_success:
            message = _server_message(data) or f"API Error ({resp.status_code})"
            self._request_logger.record("error", method, path, data)
            return DispatchResult(
                status=resp.status_code,
                data=data,
                error=ApiError(message, "status", resp.status_code),
            )

        self._request_logger.record("success", method, path, data)
        return DispatchResult(status=resp.status_code, data=data)


def _server_message(data: Any) -> str | None:
    if isinstance(data, dict):
        message = data.get("error")
        if isinstance(message, str) and message:
            return message
    return None
