from datetime import datetime, timedelta, timezone

import pytest

from smb_ledger.models import Client, Expense, Invoice
from smb_ledger.stats import (
    compute_dashboard_stats,
    format_payment_rate,
    payment_rate,
    revenue_growth,
)

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


def _invoice(invoice_id: int, status: str, total: float, created_at=NOW):
    return Invoice(
        id=invoice_id,
        invoice_number=f"INV-{invoice_id}",
        client_id=1,
        date=created_at.date(),
        due_date=created_at.date() + timedelta(days=30),
        status=status,
        subtotal=total,
        tax_amount=0.0,
        total_amount=total,
        notes=None,
        created_at=created_at,
        client_name="Acme",
    )


def _expense(expense_id: int, amount: float, created_at=NOW) -> Expense:
    return Expense(
        id=expense_id,
        description=f"Expense {expense_id}",
        amount=amount,
        created_at=created_at,
    )


def test_dashboard_totals_reference_scenario() -> None:
    """Paid 100 + 200, sent 50, expenses 30 + 20."""
    invoices = [
        _invoice(1, "paid", 100),
        _invoice(2, "sent", 50),
        _invoice(3, "paid", 200),
    ]
    expenses = [_expense(1, 30), _expense(2, 20)]
    clients = [Client(id=1, name="Acme"), Client(id=2, name="Globex")]

    stats = compute_dashboard_stats(clients, invoices, expenses, now=NOW)

    assert stats.total_clients == 2
    assert stats.total_invoices == 3
    assert stats.total_revenue == 300.0
    assert stats.total_expenses == 50.0
    assert stats.net_profit == 250.0
    assert stats.paid_invoices == 2
    assert stats.unpaid_invoices == 1
    assert stats.outstanding_amount == 50.0
    assert stats.payment_rate == pytest.approx(200 / 3)
    assert stats.data_quality_warnings == ()


def test_dashboard_with_no_records() -> None:
    stats = compute_dashboard_stats([], [], [], now=NOW)

    assert stats.total_invoices == 0
    assert stats.payment_rate == 0.0
    assert format_payment_rate(stats.payment_rate) == "0%"
    assert stats.total_revenue == 0.0
    assert stats.net_profit == 0.0
    assert stats.revenue_growth is None
    assert stats.revenue_growth_status == "unavailable"


def test_monthly_revenue_only_counts_paid_invoices_of_current_month() -> None:
    utc = timezone.utc
    invoices = [
        _invoice(1, "paid", 100, created_at=datetime(2025, 3, 1, tzinfo=utc)),
        _invoice(2, "paid", 40, created_at=datetime(2025, 2, 28, 23, 59, tzinfo=utc)),
        _invoice(3, "sent", 70, created_at=datetime(2025, 3, 10, tzinfo=utc)),
        _invoice(4, "paid", 25, created_at=datetime(2024, 3, 5, tzinfo=utc)),
    ]

    stats = compute_dashboard_stats([], invoices, [], now=NOW)

    assert stats.monthly_revenue == 100.0
    assert stats.total_revenue == 165.0
    # 100 this month against 40 in February.
    assert stats.revenue_growth == 150.0
    assert stats.revenue_growth_status == "measured"


def test_monthly_revenue_accepts_naive_timestamps() -> None:
    naive = datetime(2025, 3, 2, 9, 30)
    invoices = [_invoice(1, "paid", 80, naive)]
    stats = compute_dashboard_stats([], invoices, [], now=NOW)
    assert stats.monthly_revenue == 80.0


def test_paid_plus_unpaid_equals_total_with_unknown_status() -> None:
    invoices = [
        _invoice(1, "paid", 10),
        _invoice(2, "draft", 20),
        _invoice(3, "overdue", 30),
        _invoice(4, "archived", 40),
    ]

    stats = compute_dashboard_stats([], invoices, [], now=NOW)

    assert stats.paid_invoices + stats.unpaid_invoices == stats.total_invoices
    assert stats.unpaid_invoices == 3
    assert stats.outstanding_amount == 90.0
    assert len(stats.data_quality_warnings) == 1
    assert "INV-4" in stats.data_quality_warnings[0]


def test_payment_rate_helpers() -> None:
    assert payment_rate(0, 0) == 0.0
    assert payment_rate(1, 4) == 25.0
    assert format_payment_rate(50.0) == "50%"
    assert format_payment_rate(200 / 3) == "66.7%"


def test_revenue_growth_needs_a_baseline() -> None:
    assert revenue_growth(100.0, 0.0) is None
    assert revenue_growth(50.0, 100.0) == -50.0
    assert revenue_growth(110.0, 100.0) == 10.0


def test_stats_are_recomputed_from_inputs() -> None:
    """Same inputs give the same result; new inputs are reflected immediately."""
    invoices = [_invoice(1, "paid", 100)]
    first = compute_dashboard_stats([], invoices, [], now=NOW)
    again = compute_dashboard_stats([], invoices, [], now=NOW)
    assert first == again

    updated = compute_dashboard_stats(
        [], invoices + [_invoice(2, "paid", 5)], [], now=NOW
    )
    assert updated.total_revenue == 105.0
