from __future__ import annotations

import asyncio
import json
from unittest.mock import patch

import httpx

from medeasy_console.logs.recorder import RequestLogger
from medeasy_console.session.store import SessionStore
from medeasy_console.transport.dispatcher import HttpDispatcher


def test_success_parses_json_and_logs_once(fake_api, dispatcher, request_logger) -> None:
    fake_api.respond("GET", "/pharmacies", json_body=[{"id": 1, "name": "Main"}])

    result = asyncio.run(dispatcher.send("/pharmacies", "get"))

    assert result.ok
    assert result.status == 200
    assert result.data == [{"id": 1, "name": "Main"}]
    records = request_logger.records()
    assert len(records) == 1
    assert (records[0].outcome, records[0].method, records[0].path) == (
        "success",
        "GET",
        "/pharmacies",
    )


def test_headers_without_session(fake_api, dispatcher) -> None:
    asyncio.run(dispatcher.send("/medicines?q=a", "GET"))

    request = fake_api.last_request
    assert request.headers["content-type"] == "application/json"
    assert "authorization" not in request.headers
    assert str(request.url) == "http://api.test/medicines?q=a"
    assert request.content == b""


def test_bearer_header_when_token_present(fake_api, dispatcher, session_store) -> None:
    session_store.set("T1", {"username": "a"})

    asyncio.run(dispatcher.send("/inventory", "POST", {"quantity": 3}))

    request = fake_api.last_request
    assert request.headers["authorization"] == "Bearer T1"
    assert json.loads(request.content) == {"quantity": 3}


def test_empty_body_is_empty_object(fake_api, dispatcher) -> None:
    fake_api.respond("POST", "/auth/reset-password", 204, text="")

    result = asyncio.run(dispatcher.send("/auth/reset-password", "POST", {"email": "a@b.c"}))

    assert result.ok
    assert result.data == {}


def test_empty_dict_body_is_still_sent(fake_api, dispatcher) -> None:
    asyncio.run(dispatcher.send("/pharmacies", "POST", {}))

    assert fake_api.last_request.content == b"{}"


def test_non_2xx_uses_server_message(fake_api, dispatcher, request_logger) -> None:
    fake_api.respond("POST", "/auth/login", 401, json_body={"error": "invalid credentials"})

    result = asyncio.run(dispatcher.send("/auth/login", "POST", {"email": "a", "password": "p"}))

    assert not result.ok
    assert result.status == 401
    assert result.error.message == "invalid credentials"
    assert result.error.kind == "status"
    records = request_logger.records()
    assert len(records) == 1
    assert records[0].outcome == "error"
    assert records[0].payload == {"error": "invalid credentials"}


def test_non_2xx_without_message_is_generic(fake_api, dispatcher) -> None:
    fake_api.respond("GET", "/reports/sales", 500, json_body={"detail": "x"})

    result = asyncio.run(dispatcher.send("/reports/sales"))

    assert result.error.message == "API Error (500)"


def test_malformed_body_is_an_error(fake_api, dispatcher, request_logger) -> None:
    fake_api.respond("GET", "/medicines", 200, text="<html>oops</html>")

    result = asyncio.run(dispatcher.send("/medicines"))

    assert not result.ok
    assert result.error.kind == "malformed"
    assert result.data is None
    records = request_logger.records()
    assert len(records) == 1
    assert records[0].outcome == "error"
    assert records[0].payload["body"] == "<html>oops</html>"


def test_transport_failure_is_logged_not_raised(fake_api, dispatcher, request_logger) -> None:
    fake_api.fail("GET", "/pharmacies", httpx.ConnectError("connection refused"))

    result = asyncio.run(dispatcher.send("/pharmacies"))

    assert not result.ok
    assert result.status is None
    assert result.error.kind == "transport"
    assert result.error.message == "connection refused"
    records = request_logger.records()
    assert len(records) == 1
    assert records[0].payload == {"error": "connection refused"}


def test_timeout_without_message_gets_fallback_text(session_store, request_logger) -> None:
    dispatcher = HttpDispatcher(
        "http://api.test", session_store, request_logger, timeout_seconds=0.5
    )

    with patch("httpx.AsyncClient.request", side_effect=httpx.ReadTimeout("")):
        result = asyncio.run(dispatcher.send("/inventory/expiry-alert"))

    assert result.error.kind == "transport"
    assert result.error.message == "Request failed (ReadTimeout)"
    assert len(request_logger) == 1


def test_every_dispatch_logs_exactly_one_record(fake_api) -> None:
    request_logger = RequestLogger()
    dispatcher = HttpDispatcher(
        "http://api.test",
        SessionStore(None),
        request_logger,
        transport=fake_api.transport,
    )
    fake_api.respond("GET", "/a", 200, json_body={})
    fake_api.respond("GET", "/b", 404, json_body={"error": "not found"})
    fake_api.respond("GET", "/c", 200, text="not json")
    fake_api.fail("GET", "/d", httpx.ConnectError("down"))

    async def run_all() -> None:
        for path in ("/a", "/b", "/c", "/d"):
            await dispatcher.send(path)

    asyncio.run(run_all())

    assert len(request_logger) == 4
    assert [r.outcome for r in request_logger.records()] == ["error", "error", "error", "success"]


def test_non_json_body_is_logged_not_sent(fake_api, dispatcher, request_logger) -> None:
    result = asyncio.run(dispatcher.send("/inventory", "POST", {"cost_price": float("inf")}))

    assert not result.ok
    assert result.status is None
    assert result.error.kind == "encoding"
    assert fake_api.requests == []
    records = request_logger.records()
    assert len(records) == 1
    assert records[0].outcome == "error"
    assert records[0].path == "/inventory"
