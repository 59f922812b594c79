# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Dashboard statistics for SMB Ledger.

`compute_dashboard_stats()` turns the full set of a user's clients, invoices
and expenses into the KPIs displayed on the dashboard:

- total_clients, total_invoices:  cardinalities.
- paid_invoices:                  invoices with status 'paid'.
- unpaid_invoices:                outstanding invoices (draft, sent, overdue,
                                  plus unknown statuses, which are flagged).
- total_revenue:                  Σ total_amount over paid invoices.
- monthly_revenue:                same, restricted to paid invoices created in
                                  the calendar month of `now`.
- total_expenses:                 Σ amount over all expenses.
- net_profit:                     total_revenue - total_expenses.
- revenue_growth:                 % change of monthly revenue against the
                                  previous calendar month; None when the
                                  previous month has no paid revenue.
- payment_rate:                   paid_invoices / total_invoices in percent,
                                  0 when there are no invoices.
- outstanding_amount:             Σ total_amount over outstanding invoices.

The result is a pure function of the input collections and `now`. Nothing
is cached: statistics are recomputed on every dashboard load.

Internally, records are loaded into pandas DataFrames and aggregated with
boolean masks, which keeps the arithmetic vectorized and the period filters
consistent with `periods.py`.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

import pandas as pd

from .line_items import MINOR_UNIT_DECIMALS
from .models import Client, DashboardStats, Expense, Invoice
from .periods import (
    as_utc,
    period_current_month,
    period_mask,
    period_previous_month,
    utc_now,
)
from .status import classify_status

logger = logging.getLogger(__name__)

GROWTH_DECIMALS = 1


def _money(value: float) -> float:
    return round(float(value), MINOR_UNIT_DECIMALS)


def _invoices_frame(invoices: Sequence[Invoice]) -> pd.DataFrame:
    """
    Build a DataFrame with one row per invoice.

    Columns: invoice_number, status, category, known, total_amount,
    created_at (datetime64[ns, UTC]).
    """
    rows = []
    for inv in invoices:
        classification = classify_status(inv.status)
        rows.append(
            {
                "invoice_number": inv.invoice_number,
                "status": inv.status,
                "category": classification.category,
                "known": classification.known,
                "total_amount": float(inv.total_amount),
                "created_at": as_utc(inv.created_at),
            }
        )

    columns = [
        "invoice_number",
        "status",
        "category",
        "known",
        "total_amount",
        "created_at",
    ]
    df = pd.DataFrame(rows, columns=columns)
    df["total_amount"] = df["total_amount"].astype(float)
    df["known"] = df["known"].astype(bool)
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    return df


def _expenses_frame(expenses: Sequence[Expense]) -> pd.DataFrame:
    """Build a DataFrame with columns amount, created_at."""
    df = pd.DataFrame(
        [
            {"amount": float(e.amount), "created_at": as_utc(e.created_at)}
            for e in expenses
        ],
        columns=["amount", "created_at"],
    )
    df["amount"] = df["amount"].astype(float)
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    return df


def payment_rate(paid_invoices: int, total_invoices: int) -> float:
    """Share of paid invoices in percent; 0.0 when there are no invoices."""
    if total_invoices <= 0:
        return 0.0
    return paid_invoices / total_invoices * 100


def format_payment_rate(rate: float, decimals: int = 1) -> str:
    """
    Render a payment rate as a percentage string.

    Trailing zeros are dropped: 0 -> '0%', 50 -> '50%', 66.666 -> '66.7%'.
    """
    text = f"{rate:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text}%"


def revenue_growth(current: float, previous: float) -> Optional[float]:
    """
    Percentage change from `previous` to `current`.

    Returns None when there is no baseline (previous <= 0): a growth figure
    cannot be measured against an empty period.
    """
    if previous <= 0:
        return None
    return round((current - previous) / previous * 100, GROWTH_DECIMALS)


def compute_dashboard_stats(
    clients: Sequence[Client],
    invoices: Sequence[Invoice],
    expenses: Sequence[Expense],
    now: Optional[datetime] = None,
) -> DashboardStats:
    """
    Compute the dashboard KPIs from the user's clients, invoices and expenses.

    Args:
        clients: All clients of the user.
        invoices: All invoices of the user (status, total_amount, created_at
            are read).
        expenses: All expenses of the user (amount is read).
        now: Reference time for the monthly figures. Defaults to the current
            UTC time.

    Returns:
        A DashboardStats instance. Unknown invoice statuses are counted as
        unpaid and reported in `data_quality_warnings`.
    """
    if now is None:
        now = utc_now()

    inv = _invoices_frame(invoices)
    exp = _expenses_frame(expenses)

    paid_mask = inv["category"] == "paid"
    outstanding_mask = ~paid_mask

    # 1) Counts
    total_invoices = len(inv)
    paid_count = int(paid_mask.sum())
    unpaid_count = int(outstanding_mask.sum())

    # 2) Revenue, overall and per calendar month
    total_revenue = _money(inv.loc[paid_mask, "total_amount"].sum())

    current = period_current_month(now)
    previous = period_previous_month(now)
    in_current = paid_mask & period_mask(inv["created_at"], current)
    in_previous = paid_mask & period_mask(inv["created_at"], previous)
    monthly_revenue = _money(inv.loc[in_current, "total_amount"].sum())
    previous_revenue = _money(inv.loc[in_previous, "total_amount"].sum())
    growth = revenue_growth(monthly_revenue, previous_revenue)

    # 3) Expenses and profit
    total_expenses = _money(exp["amount"].sum())
    net_profit = _money(total_revenue - total_expenses)

    # 4) Data quality: statuses outside the enumeration
    warnings = []
    unknown = inv.loc[~inv["known"]]
    for row in unknown.itertuples(index=False):
        warnings.append(
            f"Invoice {row.invoice_number} has unknown status {row.status!r}; "
            "counted as unpaid."
        )
    if warnings:
        logger.warning(
            "%d invoice(s) with unknown status counted as unpaid", len(warnings)
        )

    return DashboardStats(
        total_invoices=total_invoices,
        total_clients=len(clients),
        paid_invoices=paid_count,
        unpaid_invoices=unpaid_count,
        total_revenue=total_revenue,
        monthly_revenue=monthly_revenue,
        total_expenses=total_expenses,
        net_profit=net_profit,
        revenue_growth=growth,
        revenue_growth_status="unavailable" if growth is None else "measured",
        payment_rate=payment_rate(paid_count, total_invoices),
        outstanding_amount=_money(inv.loc[outstanding_mask, "total_amount"].sum()),
        data_quality_warnings=tuple(warnings),
    )
