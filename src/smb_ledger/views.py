# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB Ledger.

This module turns typed records and derived dashboard values into pandas
DataFrames ready for display (``DataFrame.to_string``) or CSV export. It
contains no financial logic: amounts are only rounded and formatted.

The main views are:

- stats:      one row per dashboard KPI (metric, value),
- activity:   the recent activity feed, newest first,
- invoices:   invoice list with a status badge (paid / pending / overdue),
- line items: the priced rows of one invoice or draft,
- clients and expenses: plain listings.
"""

from typing import Sequence

import pandas as pd

from .models import ActivityEvent, Client, DashboardStats, Expense, Invoice, LineItem
from .stats import format_payment_rate
from .status import classify_status

INVOICE_COLUMNS = [
    "id",
    "invoice_number",
    "client",
    "date",
    "due_date",
    "status",
    "badge",
    "subtotal",
    "tax_amount",
    "total_amount",
]
LINE_ITEM_COLUMNS = [
    "position",
    "product_name",
    "description",
    "quantity",
    "unit_price",
    "tax_rate",
    "line_total",
]
ACTIVITY_COLUMNS = ["timestamp", "kind", "description", "amount", "status"]
CLIENT_COLUMNS = ["id", "name", "email", "status", "created_at"]
EXPENSE_COLUMNS = ["id", "description", "amount", "created_at"]


def format_amount(value: float, currency: str = "", decimals: int = 2) -> str:
    """Format an amount with thousands separators and an optional currency."""
    text = f"{value:,.{decimals}f}"
    return f"{text} {currency}" if currency else text


def stats_to_dataframe(
    stats: DashboardStats, currency: str = "", decimals: int = 2
) -> pd.DataFrame:
    """
    Convert DashboardStats into a two-column (metric, value) DataFrame.

    Revenue growth is shown as "n/a" when no previous-month baseline exists.
    """

    def money(value: float) -> str:
        return format_amount(value, currency, decimals)

    if stats.revenue_growth is None:
        growth = "n/a"
    else:
        growth = f"{stats.revenue_growth:+.1f}%"

    rows = [
        ("Total clients", str(stats.total_clients)),
        ("Total invoices", str(stats.total_invoices)),
        ("Paid invoices", str(stats.paid_invoices)),
        ("Unpaid invoices", str(stats.unpaid_invoices)),
        ("Payment rate", format_payment_rate(stats.payment_rate)),
        ("Total revenue", money(stats.total_revenue)),
        ("Monthly revenue", money(stats.monthly_revenue)),
        ("Revenue growth", growth),
        ("Total expenses", money(stats.total_expenses)),
        ("Net profit", money(stats.net_profit)),
        ("Outstanding amount", money(stats.outstanding_amount)),
    ]
    return pd.DataFrame(rows, columns=["metric", "value"])


def activity_to_dataframe(
    events: Sequence[ActivityEvent], decimals: int = 2
) -> pd.DataFrame:
    """Feed events in their given order; events without amount show NaN."""
    if not events:
        return pd.DataFrame(columns=ACTIVITY_COLUMNS)

    rows = [
        {
            "timestamp": e.timestamp.strftime("%Y-%m-%d %H:%M"),
            "kind": e.kind,
            "description": e.description,
            "amount": float("nan") if e.amount is None else round(e.amount, decimals),
            "status": e.status or "",
        }
        for e in events
    ]
    return pd.DataFrame(rows, columns=ACTIVITY_COLUMNS)


def invoices_to_dataframe(
    invoices: Sequence[Invoice], decimals: int = 2
) -> pd.DataFrame:
    if not invoices:
        return pd.DataFrame(columns=INVOICE_COLUMNS)

    rows = []
    for inv in invoices:
        rows.append(
            {
                "id": inv.id,
                "invoice_number": inv.invoice_number,
                "client": inv.client_name or "",
                "date": inv.date.isoformat(),
                "due_date": inv.due_date.isoformat(),
                "status": inv.status,
                "badge": classify_status(inv.status).badge,
                "subtotal": round(inv.subtotal, decimals),
                "tax_amount": round(inv.tax_amount, decimals),
                "total_amount": round(inv.total_amount, decimals),
            }
        )
    return pd.DataFrame(rows, columns=INVOICE_COLUMNS)


def line_items_to_dataframe(
    line_items: Sequence[LineItem], decimals: int = 2
) -> pd.DataFrame:
    """Line items numbered from 1, in their stored order."""
    rows = [
        {
            "position": position,
            "product_name": item.product_name,
            "description": item.description,
            "quantity": item.quantity,
            "unit_price": round(item.unit_price, decimals),
            "tax_rate": item.tax_rate,
            "line_total": round(item.line_total, decimals),
        }
        for position, item in enumerate(line_items, start=1)
    ]
    return pd.DataFrame(rows, columns=LINE_ITEM_COLUMNS)


def clients_to_dataframe(clients: Sequence[Client]) -> pd.DataFrame:
    rows = [
        {
            "id": c.id,
            "name": c.name,
            "email": c.email or "",
            "status": c.status,
            "created_at": c.created_at.isoformat() if c.created_at else "",
        }
        for c in clients
    ]
    return pd.DataFrame(rows, columns=CLIENT_COLUMNS)


def expenses_to_dataframe(
    expenses: Sequence[Expense], decimals: int = 2
) -> pd.DataFrame:
    rows = [
        {
            "id": e.id,
            "description": e.description,
            "amount": round(e.amount, decimals),
            "created_at": e.created_at.isoformat(),
        }
        for e in expenses
    ]
    return pd.DataFrame(rows, columns=EXPENSE_COLUMNS)
