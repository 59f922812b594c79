# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Data model for SMB Ledger.

This module defines the typed records exchanged between the data-access
layer (`db.py`), the computation modules (`line_items.py`, `invoices.py`,
`stats.py`, `activity.py`) and the presentation layers (CLI, views).

Monetary amounts are exposed as floats rounded to 2 decimals. The database
stores them as integer cents (see `db.py`).

Persisted records
-----------------
- Client
- Invoice (owns its LineItem sequence)
- Expense

Inputs
------
- Session     : explicit identity used to scope every query.
- NewInvoice  : invoice form payload before persistence.

Derived, non-persisted views
----------------------------
- DashboardStats
- ActivityEvent
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal

InvoiceStatus = Literal["draft", "sent", "paid", "overdue"]

ActivityKind = Literal[
    "invoice_paid", "invoice_created", "expense_added", "client_added"
]

GrowthStatus = Literal["measured", "unavailable"]


@dataclass(frozen=True)
class Session:
    """
    Identity of the user on whose behalf queries and computations run.

    The identifier is opaque: it is supplied by an external authentication
    collaborator and only used to scope reads and writes.
    """

    user_id: str


@dataclass(frozen=True)
class LineItem:
    """
    One priced row within an invoice.

    Attributes
    ----------
    product_name, description:
        Free text.
    quantity, unit_price:
        Expected to be >= 0 (negative values are accepted and produce a
        negative total).
    tax_rate:
        Flat percentage in [0, 100].
    line_total:
        quantity * unit_price * (1 + tax_rate / 100), kept in sync by
        `line_items.update_line_item`.
    """

    product_name: str
    description: str
    quantity: float
    unit_price: float
    tax_rate: float
    line_total: float = 0.0


@dataclass(frozen=True)
class Client:
    """Client referenced by invoices. Only name/email are read by the engine."""

    id: int
    name: str
    email: str | None = None
    status: str = "active"
    created_at: datetime | None = None


@dataclass(frozen=True)
class Invoice:
    """
    Persisted invoice, as returned by the data-access layer.

    `client_name` and `client_email` come from a JOIN with the clients
    table and are used for display only.
    """

    id: int
    invoice_number: str
    client_id: int
    date: date
    due_date: date
    status: str
    subtotal: float
    tax_amount: float
    total_amount: float
    notes: str | None
    created_at: datetime
    line_items: tuple[LineItem, ...] = ()
    client_name: str | None = None
    client_email: str | None = None


@dataclass(frozen=True)
class NewInvoice:
    """
    Data required to create a new invoice.

    Totals are never supplied by the caller: they are derived from the line
    items by `invoices.prepare_invoice`. When `invoice_number` is empty, a
    time-based number is generated.
    """

    client_id: int | None
    date: date | None
    due_date: date | None
    line_items: tuple[LineItem, ...]
    invoice_number: str | None = None
    status: InvoiceStatus = "draft"
    notes: str | None = None


@dataclass(frozen=True)
class Expense:
    """Independent expense entry (no line items, no lifecycle)."""

    id: int
    description: str
    amount: float
    created_at: datetime


@dataclass(frozen=True)
class DashboardStats:
    """
    Dashboard KPIs, recomputed on every dashboard load.

    Attributes
    ----------
    revenue_growth:
        Percentage change of paid revenue between the current and the
        previous calendar month, or None when no baseline exists.
    revenue_growth_status:
        'measured' when `revenue_growth` comes from a real comparison,
        'unavailable' otherwise.
    payment_rate:
        paid_invoices / total_invoices in percent, 0.0 without invoices.
    outstanding_amount:
        Sum of total_amount over outstanding (not yet paid) invoices.
    data_quality_warnings:
        Human-readable messages about records that could not be classified
        reliably (e.g. unknown invoice statuses).
    """

    total_invoices: int
    total_clients: int
    paid_invoices: int
    unpaid_invoices: int
    total_revenue: float
    monthly_revenue: float
    total_expenses: float
    net_profit: float
    revenue_growth: float | None
    revenue_growth_status: GrowthStatus
    payment_rate: float
    outstanding_amount: float
    data_quality_warnings: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ActivityEvent:
    """One entry of the dashboard activity feed."""

    id: str
    kind: ActivityKind
    description: str
    timestamp: datetime
    amount: float | None = None
    status: str | None = None
