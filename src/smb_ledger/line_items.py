# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Line item computation and draft editing.

A line item total is:

    line_total = quantity * unit_price * (1 + tax_rate / 100)

rounded to the currency minor unit (2 decimals). The computation is pure and
accepts any numeric input: negative quantities or prices produce a negative
total rather than being rejected.

Line items are immutable records. Editing goes through `update_line_item`,
which returns a new LineItem and recomputes `line_total` whenever one of the
three pricing fields changes, so that the total always reflects the current
inputs.

`InvoiceDraft` models the editable list of line items of an invoice form
before submission.
"""

import math
from dataclasses import replace
from typing import Optional

from .errors import ValidationError
from .models import LineItem

MINOR_UNIT_DECIMALS = 2

PRICING_FIELDS = frozenset({"quantity", "unit_price", "tax_rate"})
EDITABLE_FIELDS = PRICING_FIELDS | {"product_name", "description"}


def compute_line_total(quantity: float, unit_price: float, tax_rate: float) -> float:
    """Return quantity * unit_price * (1 + tax_rate / 100), rounded to cents."""
    net = float(quantity) * float(unit_price)
    tax = net * (float(tax_rate) / 100)
    return round(net + tax, MINOR_UNIT_DECIMALS)


def make_line_item(
    product_name: str,
    description: str = "",
    quantity: float = 1,
    unit_price: float = 0,
    tax_rate: float = 0,
) -> LineItem:
    """Build a LineItem with its total computed from the pricing fields."""
    return LineItem(
        product_name=product_name,
        description=description,
        quantity=float(quantity),
        unit_price=float(unit_price),
        tax_rate=float(tax_rate),
        line_total=compute_line_total(quantity, unit_price, tax_rate),
    )


def with_computed_total(item: LineItem) -> LineItem:
    """Return `item` with `line_total` recomputed from its pricing fields."""
    return replace(
        item,
        line_total=compute_line_total(item.quantity, item.unit_price, item.tax_rate),
    )


def update_line_item(item: LineItem, **changes) -> LineItem:
    """
    Return a copy of `item` with `changes` applied.

    `line_total` cannot be set directly. It is recomputed whenever quantity,
    unit_price or tax_rate is part of the changes.

    Raises
    ------
    ValidationError
        If a change targets a field that cannot be edited.
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        name = sorted(unknown)[0]
        raise ValidationError(f"Line item field {name!r} cannot be edited.", field=name)

    for name in PRICING_FIELDS & set(changes):
        try:
            changes[name] = float(changes[name])
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                f"Line item field {name!r} must be numeric.", field=name
            ) from exc
        if not math.isfinite(changes[name]):
            raise ValidationError(
                f"Line item field {name!r} must be a finite number.", field=name
            )

    updated = replace(item, **changes)
    if PRICING_FIELDS & set(changes):
        updated = with_computed_total(updated)
    return updated


class InvoiceDraft:
    """
    Editable, ordered list of line items for an invoice being composed.

    A draft always holds at least one line item: it starts with a blank
    item and refuses to remove the last one.
    """

    def __init__(
        self,
        line_items: Optional[list[LineItem]] = None,
        default_tax_rate: float = 0.0,
    ) -> None:
        self.default_tax_rate = float(default_tax_rate)
        if line_items:
            self._items = [with_computed_total(item) for item in line_items]
        else:
            self._items = [self._blank_item()]

    def _blank_item(self) -> LineItem:
        return make_line_item(
            "", "", quantity=1, unit_price=0, tax_rate=self.default_tax_rate
        )

    @property
    def line_items(self) -> tuple[LineItem, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._items):
            raise ValidationError(
                f"No line item at position {index}.", field="line_items"
            )

    def add_line_item(self, item: Optional[LineItem] = None) -> LineItem:
        """Append `item` (or a blank item) and return the stored item."""
        stored = self._blank_item() if item is None else with_computed_total(item)
        self._items.append(stored)
        return stored

    def remove_line_item(self, index: int) -> None:
        """Remove the item at `index`. The last remaining item is kept."""
        self._check_index(index)
        if len(self._items) == 1:
            raise ValidationError(
                "An invoice must keep at least one line item.", field="line_items"
            )
        del self._items[index]

    def update_line_item(self, index: int, **changes) -> LineItem:
        """Apply `changes` to the item at `index` and return the new item."""
        self._check_index(index)
        updated = update_line_item(self._items[index], **changes)
        self._items[index] = updated
        return updated

    def totals(self):
        """Invoice totals for the current state of the draft."""
        # Local import: invoices.py depends on this module.
        from .invoices import compute_invoice_totals

        return compute_invoice_totals(self._items)
