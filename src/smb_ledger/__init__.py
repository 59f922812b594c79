# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB Ledger
----------

A Python bookkeeping engine for Small and Medium-sized Businesses (SMBs):
clients, invoices with line items, expenses and a summary dashboard.

Main capabilities:
- line item pricing with flat per-line tax rates,
- invoice totals, validation and time-based invoice numbering,
- atomic invoice persistence (invoice row and line items as one unit),
- dashboard KPIs (revenue, expenses, net profit, payment rate,
  month-over-month revenue growth, outstanding amount),
- a bounded, reverse-chronological recent activity feed,
- a SQLite store where every query is scoped to one user,
- concurrent dashboard loading with all-or-nothing aggregation.

SMB Ledger separates computation (line_items, invoices, stats, activity),
configuration (TOML), persistence (db) and presentation (CLI / views).


Version: 0.1.0

Usage:
    python -m smb_ledger.cli --help
"""

__all__ = ["line_items", "invoices", "stats", "activity", "status", "views"]

__version__ = "0.1.0"
