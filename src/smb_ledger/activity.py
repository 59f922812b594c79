# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Recent activity feed.

The dashboard shows a single reverse-chronological list of recent events
built from records that were already retrieved by the data-access layer:

- each invoice contributes one event:
      'invoice_paid'     "Invoice #<number> paid by <client>"
      'invoice_created'  "Invoice #<number> created for <client>"
- each expense contributes one event:
      'expense_added'    "Expense logged: <description>"
- optionally, each client contributes one event:
      'client_added'     "New client added: <name>"

Events are concatenated (invoices, then expenses, then clients), sorted by
timestamp descending and truncated to a fixed length. The sort is stable:
events with equal timestamps keep their insertion order, so the feed is
deterministic across runs.

The builder never queries the store itself.
"""

from typing import Optional, Sequence

from .models import ActivityEvent, Client, Expense, Invoice
from .periods import as_utc
from .status import is_paid

DEFAULT_ACTIVITY_LIMIT = 8
DEFAULT_RECENT_INVOICES = 5
DEFAULT_RECENT_EXPENSES = 3

UNKNOWN_CLIENT_LABEL = "Unknown client"


def invoice_event(invoice: Invoice) -> ActivityEvent:
    """Describe one invoice as an activity event."""
    client = invoice.client_name or UNKNOWN_CLIENT_LABEL
    if is_paid(invoice.status):
        kind = "invoice_paid"
        description = f"Invoice #{invoice.invoice_number} paid by {client}"
    else:
        kind = "invoice_created"
        description = f"Invoice #{invoice.invoice_number} created for {client}"

    return ActivityEvent(
        id=f"invoice-{invoice.id}",
        kind=kind,
        description=description,
        timestamp=as_utc(invoice.created_at),
        amount=invoice.total_amount,
        status=invoice.status,
    )


def expense_event(expense: Expense) -> ActivityEvent:
    return ActivityEvent(
        id=f"expense-{expense.id}",
        kind="expense_added",
        description=f"Expense logged: {expense.description}",
        timestamp=as_utc(expense.created_at),
        amount=expense.amount,
    )


def client_event(client: Client) -> Optional[ActivityEvent]:
    """Client events need a creation timestamp; clients without one are skipped."""
    if client.created_at is None:
        return None
    return ActivityEvent(
        id=f"client-{client.id}",
        kind="client_added",
        description=f"New client added: {client.name}",
        timestamp=as_utc(client.created_at),
    )


def build_activity_feed(
    recent_invoices: Sequence[Invoice],
    recent_expenses: Sequence[Expense],
    limit: int = DEFAULT_ACTIVITY_LIMIT,
    recent_clients: Sequence[Client] = (),
) -> list[ActivityEvent]:
    """
    Merge invoice, expense and client events into one bounded feed.

    Args:
        recent_invoices: Most recently created invoices (with client_name).
        recent_expenses: Most recently created expenses.
        limit: Maximum number of events returned.
        recent_clients: Optional recently created clients.

    Returns:
        At most `limit` events, sorted by timestamp descending. Events with
        equal timestamps keep their insertion order.
    """
    if limit < 0:
        raise ValueError("Activity feed limit cannot be negative.")

    events = [invoice_event(inv) for inv in recent_invoices]
    events.extend(expense_event(exp) for exp in recent_expenses)
    for client in recent_clients:
        event = client_event(client)
        if event is not None:
            events.append(event)

    # list.sort is stable, including with reverse=True.
    events.sort(key=lambda e: e.timestamp, reverse=True)
    return events[:limit]
