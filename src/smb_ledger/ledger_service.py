# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
High-level services for the dashboard and for invoice creation.

This module sits between:
- the low-level database helpers in `db.py`, and
- user-facing layers such as the CLI or a future Web UI.

It does not implement financial rules itself. It orchestrates the
data-access layer and the computation modules (`invoices.py`, `stats.py`,
`activity.py`) using the settings of an `AppConfig`.

Responsibilities
----------------
1) Dashboard loading
   - Issue the independent dashboard reads concurrently (all clients, all
     invoices, all expenses, the most recent invoices and expenses).
   - Join them as a whole: if any read fails, no statistics and no feed
     are computed from partial data, and an error result is returned.
   - Compute DashboardStats and the activity feed from the joined data.
   - `DashboardLoader` discards results of loads that were superseded or
     cancelled before they completed.

2) Invoice creation
   - Build editable drafts pre-filled with the business default tax rate.
   - Validate and price a NewInvoice, then persist it atomically.

3) Listing & searching
   - Clients offered to the invoice form (active clients only).
   - Invoice search by number or client name.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from .activity import build_activity_feed
from .config import AppConfig
from .db import create_invoice as _db_create_invoice
from .db import list_clients, list_expenses, list_invoices
from .errors import DataAccessError, UnknownStatusError
from .invoices import filter_invoices, prepare_invoice
from .line_items import InvoiceDraft
from .models import (
    ActivityEvent,
    Client,
    DashboardStats,
    Expense,
    Invoice,
    NewInvoice,
    Session,
)
from .stats import compute_dashboard_stats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardData:
    """Raw records read for one dashboard load."""

    clients: list[Client]
    invoices: list[Invoice]
    expenses: list[Expense]
    recent_invoices: list[Invoice]
    recent_expenses: list[Expense]


@dataclass(frozen=True)
class DashboardResult:
    """
    Outcome of one dashboard load.

    Either `stats` is set and `error` is None, or `stats` is None, the
    activity feed is empty and `error` describes why the load failed.
    """

    stats: Optional[DashboardStats]
    activity: list[ActivityEvent] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fetch_dashboard_data(
    app_config: AppConfig, session: Session
) -> DashboardData:
    """
    Run the dashboard reads concurrently and wait for all of them.

    Each read is a blocking SQLite call executed in a worker thread. The
    first failure is propagated to the caller once raised; the results of
    the other reads are then ignored.
    """
    db_cfg = app_config.database
    strict = app_config.invoices.strict_statuses
    limits = app_config.dashboard

    (
        clients,
        invoices,
        expenses,
        recent_invoices,
        recent_expenses,
    ) = await asyncio.gather(
        asyncio.to_thread(list_clients, db_cfg, session),
        asyncio.to_thread(list_invoices, db_cfg, session, strict_statuses=strict),
        asyncio.to_thread(list_expenses, db_cfg, session),
        asyncio.to_thread(
            list_invoices,
            db_cfg,
            session,
            limit=limits.recent_invoices,
            strict_statuses=strict,
        ),
        asyncio.to_thread(
            list_expenses, db_cfg, session, limit=limits.recent_expenses
        ),
    )

    return DashboardData(
        clients=clients,
        invoices=invoices,
        expenses=expenses,
        recent_invoices=recent_invoices,
        recent_expenses=recent_expenses,
    )


def build_dashboard(
    data: DashboardData,
    activity_limit: int,
    now: Optional[datetime] = None,
) -> DashboardResult:
    """Compute statistics and the activity feed from already-joined reads."""
    stats = compute_dashboard_stats(
        data.clients, data.invoices, data.expenses, now=now
    )
    activity = build_activity_feed(
        data.recent_invoices, data.recent_expenses, limit=activity_limit
    )
    return DashboardResult(stats=stats, activity=activity)


async def load_dashboard(
    app_config: AppConfig,
    session: Session,
    now: Optional[datetime] = None,
) -> DashboardResult:
    """
    Load the dashboard of the session's user.

    Returns
    -------
    DashboardResult
        Statistics and activity feed, or an error result when any of the
        underlying reads failed. Aggregation never runs on partial data.
    """
    try:
        data = await fetch_dashboard_data(app_config, session)
    except (DataAccessError, UnknownStatusError) as exc:
        logger.error("Dashboard load failed for user %s: %s", session.user_id, exc)
        return DashboardResult(stats=None, activity=[], error=str(exc))

    return build_dashboard(data, app_config.dashboard.activity_limit, now=now)


class DashboardLoader:
    """
    Dashboard loader that only publishes the result of the latest load.

    Every call to `load()` starts a new generation. When a load completes
    after a newer one was started, or after `cancel()`, its result is
    discarded and `load()` returns None.
    """

    def __init__(self, app_config: AppConfig, session: Session) -> None:
        self.app_config = app_config
        self.session = session
        self.latest: Optional[DashboardResult] = None
        self._generation = 0

    def cancel(self) -> None:
        """Invalidate any load in progress."""
        self._generation += 1

    async def load(self, now: Optional[datetime] = None) -> Optional[DashboardResult]:
        self._generation += 1
        generation = self._generation

        result = await load_dashboard(self.app_config, self.session, now=now)

        if generation != self._generation:
            logger.debug("Discarding superseded dashboard load #%d", generation)
            return None

        self.latest = result
        return result


def new_invoice_draft(app_config: AppConfig) -> InvoiceDraft:
    """Empty invoice draft pre-filled with the business default tax rate."""
    return InvoiceDraft(default_tax_rate=app_config.business.default_tax_rate)


def create_invoice(
    app_config: AppConfig,
    session: Session,
    new_invoice: NewInvoice,
    now: Optional[datetime] = None,
) -> Invoice:
    """
    Validate, price and persist a new invoice.

    Validation errors are raised before anything is written. The invoice
    row and its line items are then stored as a single unit.

    Raises
    ------
    ValidationError
        Missing fields, empty line items, unknown client, duplicate number.
    PartialInvoiceError
        The invoice row could not be undone after a failed write.
    DataAccessError
        Any other storage failure.
    """
    prepared = prepare_invoice(
        new_invoice, now=now, number_prefix=app_config.invoices.number_prefix
    )
    return _db_create_invoice(
        app_config.database,
        session,
        prepared,
        created_at=now,
        strict_statuses=app_config.invoices.strict_statuses,
    )


def list_invoice_form_clients(app_config: AppConfig, session: Session) -> list[Client]:
    """Clients that can be selected when composing an invoice."""
    return list_clients(app_config.database, session, active_only=True)


def search_invoices(
    app_config: AppConfig,
    session: Session,
    term: str = "",
    statuses: Optional[Sequence[str]] = None,
) -> list[Invoice]:
    """
    List the user's invoices whose number or client name contains `term`.

    `statuses` restricts the query to those statuses; rows holding any other
    status, known or not, are left out.
    """
    invoices = list_invoices(
        app_config.database,
        session,
        statuses=statuses,
        strict_statuses=app_config.invoices.strict_statuses,
    )
    return filter_invoices(invoices, term)
