"""Form rule table and its optional YAML overrides."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from types import MappingProxyType

import yaml
from pydantic import ValidationError

from medeasy_console.forms.rules import (
    REGISTER_ROLE_FIELDS,
    SALE_LINE_ITEMS,
    FormRule,
    FormRuleError,
)

logger = logging.getLogger(__name__)

_INVENTORY_NUMERIC = ["medicine_id", "quantity"]
_INVENTORY_FLOAT = ["cost_price", "sale_price"]

DEFAULT_RULES: tuple[FormRule, ...] = (
    # auth
    FormRule(
        id="register-form",
        path="/auth/register",
        method="POST",
        numeric_fields=["pharmacy_id"],
        produces_auth=True,
        special_case=REGISTER_ROLE_FIELDS,
    ),
    FormRule(id="login-form", path="/auth/login", method="POST", produces_auth=True),
    FormRule(id="reset-password-form", path="/auth/reset-password", method="POST"),
    # pharmacies
    FormRule(id="create-pharmacy-form", path="/pharmacies", method="POST"),
    FormRule(id="list-pharmacies", path="/pharmacies", method="GET", mode="query"),
    FormRule(id="update-pharmacy-form", path="/pharmacies/:id", method="PUT", id_in_path=True),
    # medicines
    FormRule(id="search-medicine-form", path="/medicines", method="GET", mode="query"),
    # inventory
    FormRule(
        id="add-inventory-form",
        path="/inventory",
        method="POST",
        numeric_fields=_INVENTORY_NUMERIC,
        float_fields=_INVENTORY_FLOAT,
    ),
    FormRule(
        id="update-inventory-form",
        path="/inventory/:id",
        method="PUT",
        id_in_path=True,
        numeric_fields=_INVENTORY_NUMERIC,
        float_fields=_INVENTORY_FLOAT,
    ),
    FormRule(
        id="update-stock-form",
        path="/inventory/:id/stock",
        method="POST",
        id_in_path=True,
        numeric_fields=["quantity"],
    ),
    FormRule(id="expiry-alert-form", path="/inventory/expiry-alert", method="GET", mode="query"),
    FormRule(id="search-inventory-form", path="/inventory/search", method="GET", mode="query"),
    # reports
    FormRule(id="daily-sales-form", path="/reports/sales/daily", method="GET", mode="query"),
    FormRule(id="monthly-sales-form", path="/reports/sales/monthly", method="GET", mode="query"),
    FormRule(id="sales-report-form", path="/reports/sales", method="GET", mode="query"),
    # sales
    FormRule(
        id="create-sale-form",
        path="/sales",
        method="POST",
        float_fields=["discount", "paid_amount"],
        special_case=SALE_LINE_ITEMS,
    ),
)


class FormRuleRegistry:
    """Read-only mapping from form id to its rule."""

    def __init__(self, rules: Iterable[FormRule]) -> None:
        table: dict[str, FormRule] = {}
        for rule in rules:
            if rule.id in table:
                raise FormRuleError(f"Duplicate form rule id: {rule.id}")
            table[rule.id] = rule
        self._rules = MappingProxyType(table)

    @classmethod
    def default(cls) -> "FormRuleRegistry":
        return cls(DEFAULT_RULES)

    def lookup(self, form_id: str) -> FormRule | None:
        return self._rules.get(form_id)

    def rules(self) -> list[FormRule]:
        return list(self._rules.values())

    def __contains__(self, form_id: object) -> bool:
        return form_id in self._rules

    def __iter__(self) -> Iterator[FormRule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)


def load_form_rules(path: str) -> list[FormRule]:
    """Load rules from a YAML file of the form ``{"forms": [...]}``."""
    rules_path = Path(path)
    if not rules_path.exists():
        raise FileNotFoundError(f"Form rules file not found: {rules_path}")
    with rules_path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise FormRuleError(f"Invalid YAML in {rules_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise FormRuleError(f"{rules_path}: top level must be a mapping with a 'forms' list")
    entries = data.get("forms") or []
    if not isinstance(entries, list):
        raise FormRuleError(f"{rules_path}: 'forms' must be a list")

    rules: list[FormRule] = []
    for index, entry in enumerate(entries):
        try:
            rules.append(FormRule.model_validate(entry))
        except ValidationError as exc:
            raise FormRuleError(f"{rules_path}: invalid rule at index {index}: {exc}") from exc
    return rules


def build_registry(rules_path: str | None = None) -> FormRuleRegistry:
    """Built-in rules, with entries from ``rules_path`` replacing same-id defaults."""
    table = {rule.id: rule for rule in DEFAULT_RULES}
    if rules_path:
        overrides = load_form_rules(rules_path)
        for rule in overrides:
            if rule.id in table:
                logger.info("Form rule %s overridden by %s", rule.id, rules_path)
            table[rule.id] = rule
    return FormRuleRegistry(table.values())
