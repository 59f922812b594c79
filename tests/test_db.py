import sqlite3
from datetime import date, datetime, timezone

import pytest

import smb_ledger.db as db
from smb_ledger.db import (
    DatabaseConfig,
    count_clients,
    count_invoices,
    create_invoice,
    get_invoice,
    init_database,
    insert_client,
    insert_expense,
    list_clients,
    list_expenses,
    list_invoices,
    update_invoice_status,
)
from smb_ledger.errors import (
    DataAccessError,
    PartialInvoiceError,
    UnknownStatusError,
    ValidationError,
)
from smb_ledger.invoices import prepare_invoice
from smb_ledger.line_items import make_line_item
from smb_ledger.models import NewInvoice, Session

ALICE = Session(user_id="alice")
BOB = Session(user_id="bob")


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    db_path = tmp_path / "test_db.sqlite"
    return DatabaseConfig(engine="sqlite", path=db_path)


def _prepared(client_id: int, number: str = "INV-001", status: str = "draft"):
    new_invoice = NewInvoice(
        client_id=client_id,
        date=date(2025, 3, 1),
        due_date=date(2025, 3, 31),
        line_items=(
            make_line_item("A", quantity=2, unit_price=10, tax_rate=10),
            make_line_item("B", "Setup", quantity=1, unit_price=50),
            make_line_item("C", quantity=5, unit_price=2, tax_rate=20),
        ),
        invoice_number=number,
        status=status,
    )
    return prepare_invoice(new_invoice)


def _raw_count(cfg: DatabaseConfig, table: str) -> int:
    conn = sqlite3.connect(cfg.path)
    try:
        (count,) = conn.execute(f"SELECT COUNT(*) FROM {table};").fetchone()
    finally:
        conn.close()
    return count


def test_init_database_creates_file_and_schema(tmp_path):
    """init_database should create the SQLite file and be idempotent."""
    cfg = make_tmp_db_cfg(tmp_path)

    assert not cfg.path.exists()
    init_database(cfg)
    init_database(cfg)
    assert cfg.path.exists()

    assert count_clients(cfg, ALICE) == 0
    assert count_invoices(cfg, ALICE) == 0
    assert list_expenses(cfg, ALICE) == []


def test_unsupported_engine_is_rejected(tmp_path):
    cfg = DatabaseConfig(engine="postgres", path=tmp_path / "x.sqlite")
    with pytest.raises(ValueError):
        init_database(cfg)


def test_create_invoice_round_trip(tmp_path):
    """Invoice, totals (stored as cents) and ordered line items round-trip."""
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)
    client = insert_client(cfg, ALICE, "Acme", "billing@acme.test")

    created_at = datetime(2025, 3, 2, 9, 0, tzinfo=timezone.utc)
    invoice = create_invoice(cfg, ALICE, _prepared(client.id), created_at=created_at)

    assert invoice.invoice_number == "INV-001"
    assert invoice.client_name == "Acme"
    assert invoice.client_email == "billing@acme.test"
    assert (invoice.subtotal, invoice.tax_amount, invoice.total_amount) == (
        80.0,
        4.0,
        84.0,
    )
    assert invoice.created_at == created_at
    assert [i.product_name for i in invoice.line_items] == ["A", "B", "C"]
    assert [i.line_total for i in invoice.line_items] == [22.0, 50.0, 12.0]
    assert invoice.line_items[1].description == "Setup"

    loaded = get_invoice(cfg, ALICE, invoice.id)
    assert loaded == invoice


def test_reads_are_scoped_to_the_session_user(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)
    client = insert_client(cfg, ALICE, "Acme")
    invoice = create_invoice(cfg, ALICE, _prepared(client.id))
    insert_expense(cfg, ALICE, "Paper", 12.5)

    assert list_clients(cfg, BOB) == []
    assert list_invoices(cfg, BOB) == []
    assert list_expenses(cfg, BOB) == []
    assert get_invoice(cfg, BOB, invoice.id) is None

    # Bob cannot invoice Alice's client nor change Alice's invoice.
    with pytest.raises(ValidationError) as excinfo:
        create_invoice(cfg, BOB, _prepared(client.id, number="INV-BOB"))
    assert excinfo.value.field == "client_id"

    with pytest.raises(ValidationError):
        update_invoice_status(cfg, BOB, invoice.id, "paid")


def test_line_item_failure_leaves_nothing_behind(tmp_path, monkeypatch):
    """A failed line-item write rolls the invoice row back."""
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)
    client = insert_client(cfg, ALICE, "Acme")

    def failing_insert(cur, invoice_id, line_items):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(db, "_insert_line_items", failing_insert)

    with pytest.raises(DataAccessError) as excinfo:
        create_invoice(cfg, ALICE, _prepared(client.id))
    assert not isinstance(excinfo.value, PartialInvoiceError)

    assert _raw_count(cfg, "invoices") == 0
    assert _raw_count(cfg, "invoice_line_items") == 0


def test_partial_write_is_compensated_and_reported(tmp_path, monkeypatch):
    """If the invoice row survives the failure, it is deleted and reported."""
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)
    client = insert_client(cfg, ALICE, "Acme")

    def failing_insert(cur, invoice_id, line_items):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(db, "_insert_line_items", failing_insert)
    # Simulate a rollback that does not undo the invoice row.
    monkeypatch.setattr(db, "_rollback", lambda conn: conn.commit())

    with pytest.raises(PartialInvoiceError) as excinfo:
        create_invoice(cfg, ALICE, _prepared(client.id))

    assert excinfo.value.invoice_id is not None
    assert _raw_count(cfg, "invoices") == 0


def test_duplicate_invoice_number_is_a_validation_error(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)
    alice_client = insert_client(cfg, ALICE, "Acme")
    bob_client = insert_client(cfg, BOB, "Initech")

    create_invoice(cfg, ALICE, _prepared(alice_client.id, number="INV-7"))
    with pytest.raises(ValidationError) as excinfo:
        create_invoice(cfg, ALICE, _prepared(alice_client.id, number="INV-7"))
    assert excinfo.value.field == "invoice_number"
    assert _raw_count(cfg, "invoice_line_items") == 3

    # Numbers are unique per user only.
    create_invoice(cfg, BOB, _prepared(bob_client.id, number="INV-7"))


def test_list_invoices_status_predicate_order_and_limit(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)
    client = insert_client(cfg, ALICE, "Acme")

    for day, status in [(1, "paid"), (2, "sent"), (3, "paid"), (4, "draft")]:
        create_invoice(
            cfg,
            ALICE,
            _prepared(client.id, number=f"INV-{day}", status=status),
            created_at=datetime(2025, 3, day, tzinfo=timezone.utc),
        )

    newest_first = list_invoices(cfg, ALICE)
    assert [i.invoice_number for i in newest_first] == [
        "INV-4",
        "INV-3",
        "INV-2",
        "INV-1",
    ]
    assert all(i.line_items == () for i in newest_first)

    paid = list_invoices(cfg, ALICE, statuses=["paid"])
    assert [i.invoice_number for i in paid] == ["INV-3", "INV-1"]
    assert list_invoices(cfg, ALICE, statuses=[]) == []
    assert count_invoices(cfg, ALICE, statuses=["draft", "sent"]) == 2

    recent = list_invoices(cfg, ALICE, limit=2, with_line_items=True)
    assert [i.invoice_number for i in recent] == ["INV-4", "INV-3"]
    assert all(len(i.line_items) == 3 for i in recent)


def test_update_invoice_status(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)
    client = insert_client(cfg, ALICE, "Acme")
    invoice = create_invoice(cfg, ALICE, _prepared(client.id))

    updated = update_invoice_status(cfg, ALICE, invoice.id, " PAID ")
    assert updated.status == "paid"

    with pytest.raises(UnknownStatusError):
        update_invoice_status(cfg, ALICE, invoice.id, "archived")

    with pytest.raises(ValidationError) as excinfo:
        update_invoice_status(cfg, ALICE, 9999, "sent")
    assert excinfo.value.field == "invoice_id"


def test_unknown_stored_status_lenient_and_strict(tmp_path):
    """Unknown statuses pass through by default and fail in strict mode."""
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)
    client = insert_client(cfg, ALICE, "Acme")
    invoice = create_invoice(cfg, ALICE, _prepared(client.id))

    conn = sqlite3.connect(cfg.path)
    try:
        conn.execute(
            "UPDATE invoices SET status = 'archived' WHERE id = ?;", (invoice.id,)
        )
        conn.commit()
    finally:
        conn.close()

    (lenient,) = list_invoices(cfg, ALICE)
    assert lenient.status == "archived"

    with pytest.raises(UnknownStatusError):
        list_invoices(cfg, ALICE, strict_statuses=True)


def test_clients_and_expenses(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)

    insert_client(
        cfg, ALICE, "Old Co", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)
    )
    insert_client(cfg, ALICE, "Dormant", status="inactive")
    insert_client(cfg, ALICE, "  New Co  ")

    names = [c.name for c in list_clients(cfg, ALICE)]
    assert names[-1] == "Old Co"
    assert "New Co" in names
    assert "Dormant" not in [c.name for c in list_clients(cfg, ALICE, active_only=True)]
    assert len(list_clients(cfg, ALICE, limit=1)) == 1

    with pytest.raises(ValidationError):
        insert_client(cfg, ALICE, "   ")

    expense = insert_expense(cfg, ALICE, "Hosting", 19.99)
    assert expense.amount == 19.99
    with pytest.raises(ValidationError) as excinfo:
        insert_expense(cfg, ALICE, "Refund", -5)
    assert excinfo.value.field == "amount"
    with pytest.raises(ValidationError):
        insert_expense(cfg, ALICE, "", 5)


def test_unreachable_store_raises_data_access_error(tmp_path):
    """A path that cannot be opened surfaces as DataAccessError."""
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "missing_dir" / "db.sqlite")

    with pytest.raises(DataAccessError):
        list_expenses(cfg, ALICE)


def test_timestamps_keep_sub_second_order(tmp_path):
    """Records created within the same second still list newest first."""
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)

    later = datetime(2025, 3, 1, 9, 30, 0, 750000, tzinfo=timezone.utc)
    earlier = datetime(2025, 3, 1, 9, 30, 0, 250000, tzinfo=timezone.utc)
    insert_expense(cfg, ALICE, "Later", 10, created_at=later)
    insert_expense(cfg, ALICE, "Earlier", 5, created_at=earlier)

    expenses = list_expenses(cfg, ALICE)
    assert [e.description for e in expenses] == ["Later", "Earlier"]
    assert expenses[0].created_at == later
