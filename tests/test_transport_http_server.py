from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from starlette.testclient import TestClient

from medeasy_console.app import AppContext, build_app_context
from medeasy_console.config import Settings
from medeasy_console.forms.pipeline import SubmissionPipeline
from medeasy_console.forms.registry import FormRuleRegistry
from medeasy_console.transport.http_server import create_http_app


@pytest.fixture
def context(storage, session_store, request_logger, dispatcher, pipeline) -> AppContext:
    return AppContext(
        settings=Settings(),
        storage=storage,
        session_store=session_store,
        request_logger=request_logger,
        dispatcher=dispatcher,
        registry=FormRuleRegistry.default(),
        pipeline=pipeline,
    )


@pytest.fixture
def client(context: AppContext) -> TestClient:
    return TestClient(create_http_app(context))


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_session_starts_unauthenticated(client: TestClient) -> None:
    assert client.get("/session").json() == {
        "authenticated": False,
        "status": "Not Authenticated",
        "user": {},
    }


def test_login_submission_updates_session_and_logs(client: TestClient, fake_api) -> None:
    fake_api.respond(
        "POST",
        "/auth/login",
        json_body={"token": "T1", "user": {"username": "a", "role": "owner"}},
    )

    response = client.post(
        "/forms/login-form", json={"fields": {"username": "a", "password": "p"}}
    )

    assert response.status_code == 202
    assert response.json() == {"accepted": True, "form_id": "login-form"}
    session = client.get("/session").json()
    assert session["authenticated"] is True
    assert session["status"] == "Authenticated as a (owner)"
    records = client.get("/logs").json()["records"]
    assert len(records) == 1
    assert records[0]["outcome"] == "success"
    assert records[0]["method"] == "POST"
    assert records[0]["path"] == "/auth/login"


def test_delete_session_logs_out(client: TestClient, session_store) -> None:
    session_store.set("T1", {"username": "a", "role": "employee"})

    response = client.delete("/session")

    assert response.json()["authenticated"] is False
    assert session_store.get().token is None


def test_delete_logs_clears_stream(client: TestClient, request_logger) -> None:
    request_logger.record("success", "GET", "/pharmacies", [])

    response = client.delete("/logs")

    assert response.json() == {"records": []}
    assert len(request_logger) == 0


def test_sale_submission_with_rows(client: TestClient, fake_api) -> None:
    response = client.post(
        "/forms/create-sale-form",
        json={
            "fields": {"discount": "5", "paid_amount": ""},
            "rows": [{"inventory_id": "1", "quantity": "2"}, {"inventory_id": "", "quantity": "1"}],
        },
    )

    assert response.status_code == 202
    assert fake_api.last_json() == {
        "discount": 5.0,
        "items": [{"inventory_id": 1, "quantity": 2}],
    }


def test_forms_are_described(client: TestClient) -> None:
    forms = client.get("/forms").json()["forms"]

    assert len(forms) == len(FormRuleRegistry.default())
    login = next(form for form in forms if form["id"] == "login-form")
    assert login["method"] == "POST"
    assert login["path"] == "/auth/login"
    assert login["produces_auth"] is True


def test_unknown_form_is_404(client: TestClient, fake_api) -> None:
    response = client.post("/forms/nope", json={"fields": {}})

    assert response.status_code == 404
    assert fake_api.requests == []


@pytest.mark.parametrize(
    "body",
    [b"not json", b"[1, 2]", b'{"fields": ["a"]}', b'{"rows": {"a": 1}}', b'{"rows": [1]}'],
)
def test_malformed_submission_is_400(client: TestClient, fake_api, body: bytes) -> None:
    response = client.post(
        "/forms/login-form", content=body, headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert "error" in response.json()
    assert fake_api.requests == []


def test_submission_while_in_flight_is_409(
    client: TestClient, context: AppContext, fake_api
) -> None:
    assert context.pipeline.try_reserve("login-form")

    response = client.post("/forms/login-form", json={"fields": {}})

    assert response.status_code == 409
    assert fake_api.requests == []


def test_form_is_reserved_before_202_is_returned(
    client: TestClient, context: AppContext
) -> None:
    with patch.object(context.pipeline, "submit", AsyncMock()) as deferred_submit:
        first = client.post("/forms/create-pharmacy-form", json={"fields": {"name": "A"}})
        second = client.post("/forms/create-pharmacy-form", json={"fields": {"name": "B"}})

    assert first.status_code == 202
    assert second.status_code == 409
    deferred_submit.assert_awaited_once_with(
        "create-pharmacy-form", {"name": "A"}, [], reserved=True
    )


def test_completed_submission_releases_form(client: TestClient, context: AppContext) -> None:
    for _ in range(2):
        response = client.post("/forms/list-pharmacies", json={"fields": {}})
        assert response.status_code == 202

    assert not context.pipeline.is_in_flight("list-pharmacies")


def test_malformed_submission_does_not_reserve(client: TestClient, context: AppContext) -> None:
    client.post("/forms/login-form", json={"fields": ["a"]})

    assert not context.pipeline.is_in_flight("login-form")


def test_duplicates_accepted_when_single_flight_disabled(
    context: AppContext, dispatcher, session_store
) -> None:
    context.pipeline = SubmissionPipeline(
        context.registry, dispatcher, session_store, single_flight=False
    )
    client = TestClient(create_http_app(context))

    with patch.object(context.pipeline, "submit", AsyncMock()):
        responses = [
            client.post("/forms/list-pharmacies", json={"fields": {}}) for _ in range(2)
        ]

    assert [r.status_code for r in responses] == [202, 202]


def test_shutdown_closes_local_storage(tmp_path) -> None:
    settings = Settings.model_validate({"storage": {"path": str(tmp_path / "console.sqlite")}})
    ctx = build_app_context(settings)

    with patch.object(ctx.storage, "close", wraps=ctx.storage.close) as close:
        with TestClient(create_http_app(ctx)) as client:
            assert client.get("/health").status_code == 200
            close.assert_not_called()

    close.assert_called_once()
