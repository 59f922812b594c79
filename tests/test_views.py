import math
from datetime import date, datetime, timezone

from smb_ledger.line_items import make_line_item
from smb_ledger.models import ActivityEvent, DashboardStats, Invoice
from smb_ledger.views import (
    activity_to_dataframe,
    format_amount,
    invoices_to_dataframe,
    line_items_to_dataframe,
    stats_to_dataframe,
)


def _stats(**overrides) -> DashboardStats:
    fields = dict(
        total_invoices=3,
        total_clients=2,
        paid_invoices=2,
        unpaid_invoices=1,
        total_revenue=300.0,
        monthly_revenue=1250.5,
        total_expenses=50.0,
        net_profit=250.0,
        revenue_growth=None,
        revenue_growth_status="unavailable",
        payment_rate=200 / 3,
        outstanding_amount=50.0,
    )
    fields.update(overrides)
    return DashboardStats(**fields)


def test_format_amount() -> None:
    assert format_amount(1250.5) == "1,250.50"
    assert format_amount(1250.5, "EUR", 0) == "1,250 EUR"
    assert format_amount(-3, "USD") == "-3.00 USD"


def test_stats_to_dataframe_formats_values() -> None:
    df = stats_to_dataframe(_stats(), currency="USD")
    values = dict(zip(df["metric"], df["value"]))

    assert list(df.columns) == ["metric", "value"]
    assert values["Payment rate"] == "66.7%"
    assert values["Monthly revenue"] == "1,250.50 USD"
    assert values["Revenue growth"] == "n/a"

    measured = stats_to_dataframe(
        _stats(revenue_growth=12.5, revenue_growth_status="measured")
    )
    growth = measured.loc[measured["metric"] == "Revenue growth", "value"].iloc[0]
    assert growth == "+12.5%"


def test_activity_to_dataframe_keeps_order() -> None:
    ts = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
    events = [
        ActivityEvent(
            "invoice-1", "invoice_paid", "Invoice #1 paid by Acme", ts, 84.0, "paid"
        ),
        ActivityEvent("client-2", "client_added", "New client added: Globex", ts),
    ]

    df = activity_to_dataframe(events)

    assert df["kind"].tolist() == ["invoice_paid", "client_added"]
    assert df["timestamp"].iloc[0] == "2025-03-15 12:00"
    assert math.isnan(df["amount"].iloc[1])
    assert activity_to_dataframe([]).empty


def test_invoices_and_line_items_views() -> None:
    invoice = Invoice(
        id=1,
        invoice_number="INV-1",
        client_id=1,
        date=date(2025, 3, 1),
        due_date=date(2025, 3, 31),
        status="overdue",
        subtotal=80.0,
        tax_amount=4.0,
        total_amount=84.0,
        notes=None,
        created_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
        client_name="Acme",
    )

    inv_df = invoices_to_dataframe([invoice])
    assert inv_df.loc[0, "badge"] == "overdue"
    assert inv_df.loc[0, "date"] == "2025-03-01"

    items_df = line_items_to_dataframe(
        [make_line_item("A", quantity=2, unit_price=10, tax_rate=10)]
    )
    assert items_df.loc[0, "position"] == 1
    assert items_df.loc[0, "line_total"] == 22.0
