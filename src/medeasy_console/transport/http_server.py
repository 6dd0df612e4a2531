"""Starlette app exposing the console's session, log stream and submit entry point."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager
from typing import Any

from starlette.applications import Starlette
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from medeasy_console.app import AppContext, get_app_context
from medeasy_console.session.store import Session, describe_auth_status

logger = logging.getLogger(__name__)


def _session_payload(session: Session) -> dict[str, Any]:
    return {
        "authenticated": session.authenticated,
        "status": describe_auth_status(session),
        "user": dict(session.user),
    }


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _parse_submission(body: Any) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    if not isinstance(body, Mapping):
        raise ValueError("request body must be a JSON object")
    fields = body.get("fields") or {}
    rows = body.get("rows") or []
    if not isinstance(fields, Mapping):
        raise ValueError("'fields' must be an object")
    if not isinstance(rows, list) or not all(isinstance(row, Mapping) for row in rows):
        raise ValueError("'rows' must be a list of objects")
    return dict(fields), [dict(row) for row in rows]


def create_http_app(ctx: AppContext | None = None) -> Starlette:
    """Create the console HTTP application."""
    context = ctx or get_app_context()

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    async def get_session(request: Request) -> JSONResponse:
        return JSONResponse(_session_payload(context.session_store.get()))

    async def clear_session(request: Request) -> JSONResponse:
        context.session_store.clear()
        return JSONResponse(_session_payload(context.session_store.get()))

    async def list_logs(request: Request) -> JSONResponse:
        records = context.request_logger.records()
        return JSONResponse({"records": [record.to_dict() for record in records]})

    async def clear_logs(request: Request) -> JSONResponse:
        context.request_logger.clear()
        return JSONResponse({"records": []})

    async def list_forms(request: Request) -> JSONResponse:
        return JSONResponse({"forms": [rule.describe() for rule in context.registry]})

    async def submit_form(request: Request) -> JSONResponse:
        form_id = request.path_params["form_id"]
        if form_id not in context.registry:
            return _error(f"Unknown form: {form_id}", 404)

        try:
            body = await request.json()
        except ValueError:
            return _error("Request body must be valid JSON", 400)
        try:
            fields, rows = _parse_submission(body)
        except ValueError as exc:
            return _error(str(exc), 400)

        # Reserved before replying so a second POST sees the form as taken.
        if not context.pipeline.try_reserve(form_id):
            return _error(f"Form {form_id} is still dispatching", 409)

        logger.debug("Accepted submission for %s", form_id)
        return JSONResponse(
            {"accepted": True, "form_id": form_id},
            status_code=202,
            background=BackgroundTask(
                context.pipeline.submit, form_id, fields, rows, reserved=True
            ),
        )

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("Console serving, API at %s", context.settings.api.base_url)
        try:
            yield
        finally:
            logger.info("Stopping console, closing local storage")
            context.close()

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/session", get_session, methods=["GET"]),
        Route("/session", clear_session, methods=["DELETE"]),
        Route("/logs", list_logs, methods=["GET"]),
        Route("/logs", clear_logs, methods=["DELETE"]),
        Route("/forms", list_forms, methods=["GET"]),
        Route("/forms/{form_id}", submit_form, methods=["POST"]),
    ]
    return Starlette(routes=routes, lifespan=lifespan)
