"""Generic submission pipeline driven by the form rule table."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from medeasy_console.forms.coercion import coerce_fields
from medeasy_console.forms.registry import FormRuleRegistry
from medeasy_console.forms.rules import FormRule
from medeasy_console.forms.special_cases import SPECIAL_CASES
from medeasy_console.session.store import SessionStore
from medeasy_console.transport.dispatcher import DispatchResult, HttpDispatcher
from medeasy_console.utils.http import append_query_string, substitute_path_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionRequest:
    path: str
    method: str
    payload: dict[str, Any] | None = None


def build_request(
    rule: FormRule,
    raw_fields: Mapping[str, Any],
    rows: Sequence[Mapping[str, Any]] = (),
) -> SubmissionRequest:
    """Apply ``rule`` to submitted values without sending anything."""
    fields = dict(raw_fields)
    path = rule.path

    if rule.id_in_path:
        path = substitute_path_id(path, fields.pop("id", ""))

    if rule.mode == "query":
        return SubmissionRequest(path=append_query_string(path, fields), method=rule.method)

    payload = coerce_fields(fields, rule.numeric_fields, rule.float_fields)
    if rule.special_case is not None:
        payload = SPECIAL_CASES[rule.special_case](payload, rows)
    return SubmissionRequest(path=path, method=rule.method, payload=payload)


class SubmissionPipeline:
    """Turn form submissions into dispatched requests.

    With ``single_flight`` enabled a form that is still dispatching rejects
    further submissions until its request settles.
    """

    def __init__(
        self,
        registry: FormRuleRegistry,
        dispatcher: HttpDispatcher,
        session_store: SessionStore,
        *,
        single_flight: bool = True,
    ) -> None:
        self._registry = registry
        self._dispatcher = dispatcher
        self._session_store = session_store
        self._single_flight = single_flight
        self._in_flight: set[str] = set()

    def is_in_flight(self, form_id: str) -> bool:
        return form_id in self._in_flight

    def try_reserve(self, form_id: str) -> bool:
        """Mark ``form_id`` as dispatching ahead of a deferred ``submit``.

        Returns False when the guard is on and the form is already taken.
        A successful reservation must be followed by
        ``submit(..., reserved=True)``, which releases it.
        """
        if not self._single_flight:
            return True
        if form_id in self._in_flight:
            return False
        self._in_flight.add(form_id)
        return True

    async def submit(
        self,
        form_id: str,
        raw_fields: Mapping[str, Any],
        rows: Sequence[Mapping[str, Any]] | None = None,
        *,
        reserved: bool = False,
    ) -> DispatchResult | None:
        if not reserved and self._single_flight and form_id in self._in_flight:
            logger.warning("Form %s is still dispatching, submission ignored", form_id)
            return None

        self._in_flight.add(form_id)
        try:
            rule = self._registry.lookup(form_id)
            if rule is None:
                logger.warning("No form rule registered for %r, submission ignored", form_id)
                return None
            request = build_request(rule, raw_fields, rows or ())
            result = await self._dispatcher.send(request.path, request.method, request.payload)
        finally:
            self._in_flight.discard(form_id)

        if rule.produces_auth and result.ok:
            self._update_session(form_id, result.data)
        return result

    def _update_session(self, form_id: str, data: Any) -> None:
        if not isinstance(data, dict):
            logger.warning("%s succeeded without a JSON object body, session unchanged", form_id)
            return
        token = data.get("token")
        user = data.get("user") or {}
        if not isinstance(token, str) or not token:
            logger.warning("%s response carries no token, session unchanged", form_id)
            return
        if not isinstance(user, Mapping):
            logger.warning("%s response user is not an object, session unchanged", form_id)
            return
        session = self._session_store.set(token, user)
        logger.info("Session updated from %s: %r", form_id, session)
