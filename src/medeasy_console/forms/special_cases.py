"""Payload transforms for forms whose shape depends on what was submitted."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Callable

from medeasy_console.forms.line_items import build_line_items
from medeasy_console.forms.rules import REGISTER_ROLE_FIELDS, SALE_LINE_ITEMS

SpecialCaseTransform = Callable[[dict[str, Any], Sequence[Mapping[str, Any]]], dict[str, Any]]

OWNER_ROLE = "owner"
OWNER_ONLY_FIELDS = ("pharmacy_name", "pharmacy_address", "pharmacy_location")
EMPLOYEE_ONLY_FIELDS = ("pharmacy_id",)


def register_role_fields(
    payload: dict[str, Any], rows: Sequence[Mapping[str, Any]]
) -> dict[str, Any]:
    """Keep only the pharmacy fields that belong to the submitted role.

    Owners create a pharmacy (name/address/location); everyone else joins
    an existing one by ``pharmacy_id``.
    """
    result = dict(payload)
    dropped = EMPLOYEE_ONLY_FIELDS if result.get("role") == OWNER_ROLE else OWNER_ONLY_FIELDS
    for name in dropped:
        result.pop(name, None)
    return result


def sale_line_items(
    payload: dict[str, Any], rows: Sequence[Mapping[str, Any]]
) -> dict[str, Any]:
    # Blank discounts were already dropped by coercion; an unparseable one
    # stays None and goes out as null.
    result: dict[str, Any] = {"discount": payload.get("discount", 0.0)}
    if "paid_amount" in payload:
        result["paid_amount"] = payload["paid_amount"]
    result["items"] = [item.to_payload() for item in build_line_items(rows)]
    return result


SPECIAL_CASES: dict[str, SpecialCaseTransform] = {
    REGISTER_ROLE_FIELDS: register_role_fields,
    SALE_LINE_ITEMS: sale_line_items,
}
