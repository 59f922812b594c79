# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Invoice totals aggregation.

This module folds a sequence of line items into invoice-level totals and
prepares new invoices for persistence.

1. Totals
   ------
   For line items i = 1..n:

       subtotal   = Σ quantity_i * unit_price_i
       tax_amount = Σ quantity_i * unit_price_i * tax_rate_i / 100
       total      = subtotal + tax_amount

   An invoice must contain at least one line item. A single all-zero line
   item is valid. The computation is pure: recomputing totals from the same
   line items always yields the same result.

2. Invoice numbers
   ---------------
   When the caller does not supply a number, a time-based token
   'INV-<epoch milliseconds>' is generated. Uniqueness is advisory; the
   store enforces (user_id, invoice_number) uniqueness on insert.

3. Preparation
   -----------
   `prepare_invoice()` validates a NewInvoice, recomputes every line total,
   computes the invoice totals and assigns a number. The result is handed
   to `db.create_invoice()`, which persists the invoice and its line items
   as a single unit.

4. Consistency checks
   ------------------
   `check_totals_consistency()` compares the stored totals of a persisted
   invoice with the totals derived from its line items.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from .errors import ValidationError
from .line_items import MINOR_UNIT_DECIMALS, PRICING_FIELDS, with_computed_total
from .models import Invoice, LineItem, NewInvoice
from .status import ensure_known_status, is_known_status

logger = logging.getLogger(__name__)

DEFAULT_NUMBER_PREFIX = "INV-"

# One minor unit: stored and derived totals may differ by rounding only.
TOTALS_TOLERANCE = 0.01


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice-level totals derived from line items."""

    subtotal: float
    tax_amount: float
    total: float


@dataclass(frozen=True)
class PreparedInvoice:
    """
    A validated invoice ready to be persisted.

    Line items carry recomputed totals, and the invoice totals are derived
    from them.
    """

    invoice_number: str
    client_id: int
    date: date
    due_date: date
    status: str
    notes: Optional[str]
    line_items: tuple[LineItem, ...]
    totals: InvoiceTotals


def compute_invoice_totals(line_items: Sequence[LineItem]) -> InvoiceTotals:
    """
    Fold line items into subtotal, tax amount and total.

    Raises
    ------
    ValidationError
        If `line_items` is empty.
    """
    if not line_items:
        raise ValidationError(
            "An invoice must contain at least one line item.", field="line_items"
        )

    subtotal = 0.0
    tax_amount = 0.0
    for item in line_items:
        net = float(item.quantity) * float(item.unit_price)
        subtotal += net
        tax_amount += net * float(item.tax_rate) / 100

    subtotal = round(subtotal, MINOR_UNIT_DECIMALS)
    tax_amount = round(tax_amount, MINOR_UNIT_DECIMALS)
    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total=round(subtotal + tax_amount, MINOR_UNIT_DECIMALS),
    )


def generate_invoice_number(
    now: Optional[datetime] = None,
    prefix: str = DEFAULT_NUMBER_PREFIX,
) -> str:
    """Return a time-based invoice number such as 'INV-1760868000000'."""
    if now is None:
        now = datetime.now(timezone.utc)
    return f"{prefix}{int(now.timestamp() * 1000)}"


def validate_new_invoice(new_invoice: NewInvoice) -> None:
    """
    Validate the fields of a NewInvoice before any write.

    Raises
    ------
    ValidationError
        On the first invalid field; `field` names it.
    """
    if new_invoice.client_id is None or new_invoice.client_id == "":
        raise ValidationError("A client is required.", field="client_id")

    if new_invoice.date is None:
        raise ValidationError("The invoice date is required.", field="date")

    if new_invoice.due_date is None:
        raise ValidationError("The due date is required.", field="due_date")

    if new_invoice.due_date < new_invoice.date:
        raise ValidationError(
            "The due date cannot be before the invoice date.", field="due_date"
        )

    if not is_known_status(new_invoice.status):
        raise ValidationError(
            f"Unknown invoice status: {new_invoice.status!r}.", field="status"
        )

    if not new_invoice.line_items:
        raise ValidationError(
            "An invoice must contain at least one line item.", field="line_items"
        )

    for position, item in enumerate(new_invoice.line_items, start=1):
        for name in sorted(PRICING_FIELDS):
            value = getattr(item, name)
            try:
                finite = math.isfinite(float(value))
            except (TypeError, ValueError):
                finite = False
            if not finite:
                raise ValidationError(
                    f"Line item {position}: {name} must be a finite number, "
                    f"got {value!r}.",
                    field="line_items",
                )


def prepare_invoice(
    new_invoice: NewInvoice,
    now: Optional[datetime] = None,
    number_prefix: str = DEFAULT_NUMBER_PREFIX,
) -> PreparedInvoice:
    """
    Validate a NewInvoice and derive everything needed to persist it.

    Steps:
        1. Validate required fields and the line item list.
        2. Recompute every line total from its pricing fields.
        3. Compute invoice totals from the recomputed line items.
        4. Generate an invoice number if none was supplied.
    """
    validate_new_invoice(new_invoice)

    items = tuple(with_computed_total(item) for item in new_invoice.line_items)
    totals = compute_invoice_totals(items)

    number = (new_invoice.invoice_number or "").strip()
    if not number:
        number = generate_invoice_number(now, prefix=number_prefix)

    return PreparedInvoice(
        invoice_number=number,
        client_id=int(new_invoice.client_id),
        date=new_invoice.date,
        due_date=new_invoice.due_date,
        status=ensure_known_status(new_invoice.status),
        notes=new_invoice.notes or None,
        line_items=items,
        totals=totals,
    )


def check_totals_consistency(invoice: Invoice) -> list[str]:
    """
    Compare stored invoice totals with the totals derived from its line items.

    Returns
    -------
    list[str]
        One message per mismatching field; empty when consistent or when the
        invoice was loaded without its line items.
    """
    if not invoice.line_items:
        return []

    derived = compute_invoice_totals(invoice.line_items)
    pairs = (
        ("subtotal", invoice.subtotal, derived.subtotal),
        ("tax_amount", invoice.tax_amount, derived.tax_amount),
        ("total_amount", invoice.total_amount, derived.total),
    )

    problems = []
    for name, stored, expected in pairs:
        if abs(float(stored) - expected) > TOTALS_TOLERANCE:
            problems.append(
                f"Invoice {invoice.invoice_number}: {name} is {stored:.2f}, "
                f"line items give {expected:.2f}"
            )

    for message in problems:
        logger.warning(message)
    return problems


def filter_invoices(invoices: Sequence[Invoice], term: str) -> list[Invoice]:
    """
    Keep invoices whose number or client name contains `term`.

    Matching is case-insensitive. An empty term keeps every invoice.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return list(invoices)

    return [
        inv
        for inv in invoices
        if needle in inv.invoice_number.lower()
        or needle in (inv.client_name or "").lower()
    ]
