"""Sale line items collected from repeatable form rows."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from medeasy_console.forms.coercion import is_blank, parse_int


@dataclass(frozen=True)
class SaleLineItem:
    inventory_id: int
    quantity: int
    medicine_id: int | None = None

    def to_payload(self) -> dict[str, int]:
        item = {"inventory_id": self.inventory_id, "quantity": self.quantity}
        if self.medicine_id is not None:
            item["medicine_id"] = self.medicine_id
        return item


def _row_int(row: Mapping[str, Any], key: str) -> int | None:
    value = row.get(key)
    if is_blank(value):
        return None
    return parse_int(value)


def build_line_items(rows: Iterable[Mapping[str, Any]]) -> list[SaleLineItem]:
    """Turn raw rows into line items, keeping row order.

    A row without a usable ``inventory_id`` or ``quantity`` is dropped
    whole; ``medicine_id`` is optional and left out when blank.
    """
    items: list[SaleLineItem] = []
    for row in rows:
        inventory_id = _row_int(row, "inventory_id")
        quantity = _row_int(row, "quantity")
        if inventory_id is None or quantity is None:
            continue
        items.append(
            SaleLineItem(
                inventory_id=inventory_id,
                quantity=quantity,
                medicine_id=_row_int(row, "medicine_id"),
            )
        )
    return items
