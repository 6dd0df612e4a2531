from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from medeasy_console import config
from medeasy_console.app import get_app_context
from medeasy_console.forms.pipeline import SubmissionPipeline
from medeasy_console.forms.registry import FormRuleRegistry
from medeasy_console.logs.recorder import RequestLogger
from medeasy_console.session.store import SessionStore
from medeasy_console.storage.local_storage import MemoryLocalStorage
from medeasy_console.transport.dispatcher import HttpDispatcher

API_BASE = "http://api.test"


@pytest.fixture(autouse=True)
def _reset_cached_singletons() -> None:
    yield
    config._load_settings_cached.cache_clear()
    get_app_context.cache_clear()


class FakeApi:
    """Scripted MedEasy API behind an ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Any] = {}

    def respond(
        self,
        method: str,
        path: str,
        status: int = 200,
        *,
        json_body: Any = None,
        text: str | None = None,
    ) -> None:
        self._routes[(method.upper(), path)] = (status, json_body, text)

    def fail(self, method: str, path: str, exc: Exception) -> None:
        self._routes[(method.upper(), path)] = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self._routes.get((request.method, request.url.path), (200, {}, None))
        if isinstance(route, Exception):
            raise route
        status, json_body, text = route
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=json_body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last_request.content)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def storage() -> MemoryLocalStorage:
    return MemoryLocalStorage()


@pytest.fixture
def session_store(storage: MemoryLocalStorage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def request_logger() -> RequestLogger:
    return RequestLogger()


@pytest.fixture
def dispatcher(
    fake_api: FakeApi,
    session_store: SessionStore,
    request_logger: RequestLogger,
) -> HttpDispatcher:
    return HttpDispatcher(
        API_BASE,
        session_store,
        request_logger,
        transport=fake_api.transport,
    )


@pytest.fixture
def pipeline(dispatcher: HttpDispatcher, session_store: SessionStore) -> SubmissionPipeline:
    return SubmissionPipeline(FormRuleRegistry.default(), dispatcher, session_store)
