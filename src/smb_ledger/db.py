# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SMB Ledger.

This module provides all low-level accessors for the SQLite database used by
the application. It is responsible for:

- Initializing the database schema.
- Inserting clients and expenses.
- Creating an invoice together with its line items as a single unit.
- Reading clients, invoices and expenses scoped by the user of a Session,
  with optional status predicate, ordering and limit.
- Updating invoice statuses.

Every read and write takes an explicit Session: there is no ambient
"current user".

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) clients
   - id          INTEGER PRIMARY KEY AUTOINCREMENT
   - user_id     TEXT    NOT NULL
   - name        TEXT    NOT NULL
   - email       TEXT
   - status      TEXT    NOT NULL DEFAULT 'active'  -- 'active' | 'inactive'
   - created_at  TEXT    NOT NULL (ISO datetime, UTC)

2) invoices
   - id                  INTEGER PRIMARY KEY AUTOINCREMENT
   - user_id             TEXT    NOT NULL
   - invoice_number      TEXT    NOT NULL  -- UNIQUE per user_id
   - client_id           INTEGER NOT NULL  -- foreign key to clients.id
   - date, due_date      TEXT    NOT NULL  -- ISO date "YYYY-MM-DD"
   - status              TEXT    NOT NULL  -- draft | sent | paid | overdue
   - subtotal_cents      INTEGER NOT NULL
   - tax_amount_cents    INTEGER NOT NULL
   - total_amount_cents  INTEGER NOT NULL
   - notes               TEXT
   - created_at          TEXT    NOT NULL (ISO datetime, UTC)

3) invoice_line_items
   - id               INTEGER PRIMARY KEY AUTOINCREMENT
   - invoice_id       INTEGER NOT NULL  -- foreign key, ON DELETE CASCADE
   - position         INTEGER NOT NULL  -- order within the invoice
   - product_name     TEXT    NOT NULL
   - description      TEXT
   - quantity         REAL    NOT NULL
   - unit_price       REAL    NOT NULL
   - tax_rate         REAL    NOT NULL
   - line_total_cents INTEGER NOT NULL

4) expenses
   - id            INTEGER PRIMARY KEY AUTOINCREMENT
   - user_id       TEXT    NOT NULL
   - description   TEXT    NOT NULL
   - amount_cents  INTEGER NOT NULL
   - created_at    TEXT    NOT NULL (ISO datetime, UTC)

------------------------------------------------------------------------------
Atomic invoice creation
------------------------------------------------------------------------------

`create_invoice` writes the invoice row and all of its line items inside one
SQLite transaction. On failure the transaction is rolled back. If the
invoice row is still present afterwards (or the rollback itself failed), a
compensating delete is attempted and PartialInvoiceError is raised instead
of reporting success.

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- Amounts are stored as integer cents; quantities, unit prices and tax
  rates as REAL.
- All timestamps are stored as ISO-8601 text (UTC).
- Foreign key enforcement is explicitly enabled.
- sqlite3 errors are re-raised as DataAccessError.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import DataAccessError, PartialInvoiceError, ValidationError
from .models import Client, Expense, Invoice, LineItem, Session
from .status import ensure_known_status

if TYPE_CHECKING:
    from .invoices import PreparedInvoice

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SMB Ledger.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def _open(cfg: DatabaseConfig, action: str) -> Iterator[sqlite3.Connection]:
    """Connection scope translating sqlite3 errors into DataAccessError."""
    conn = None
    try:
        conn = _connect(cfg)
        yield conn
    except sqlite3.Error as exc:
        logger.error("Database error while %s: %s", action, exc)
        raise DataAccessError(f"Database error while {action}: {exc}") from exc
    finally:
        if conn is not None:
            conn.close()


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS clients (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id     TEXT    NOT NULL,
            name        TEXT    NOT NULL,
            email       TEXT,
            status      TEXT    NOT NULL DEFAULT 'active',
            created_at  TEXT    NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS invoices (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id             TEXT    NOT NULL,
            invoice_number      TEXT    NOT NULL,
            client_id           INTEGER NOT NULL,
            date                TEXT    NOT NULL,  -- ISO date 'YYYY-MM-DD'
            due_date            TEXT    NOT NULL,
            status              TEXT    NOT NULL DEFAULT 'draft',
            subtotal_cents      INTEGER NOT NULL,
            tax_amount_cents    INTEGER NOT NULL,
            total_amount_cents  INTEGER NOT NULL,
            notes               TEXT,
            created_at          TEXT    NOT NULL,

            UNIQUE (user_id, invoice_number),
            FOREIGN KEY (client_id) REFERENCES clients(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS invoice_line_items (
            id                INTEGER PRIMARY KEY AUTOINCREMENT,
            invoice_id        INTEGER NOT NULL,
            position          INTEGER NOT NULL,
            product_name      TEXT    NOT NULL,
            description       TEXT,
            quantity          REAL    NOT NULL,
            unit_price        REAL    NOT NULL,
            tax_rate          REAL    NOT NULL,
            line_total_cents  INTEGER NOT NULL,

            FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS expenses (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id       TEXT    NOT NULL,
            description   TEXT    NOT NULL,
            amount_cents  INTEGER NOT NULL,
            created_at    TEXT    NOT NULL
        );
        """
    )

    # Indexes for the per-user recent-activity queries
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_invoices_user_created
            ON invoices(user_id, created_at);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_expenses_user_created
            ON expenses(user_id, created_at);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_line_items_invoice
            ON invoice_line_items(invoice_id, position);
        """
    )

    conn.commit()


def _to_cents(amount: float) -> int:
    return int(round(float(amount) * 100))


def _from_cents(cents: int) -> float:
    return cents / 100.0


def _to_iso_date(value) -> str:
    """Convert a date-like value to ISO 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(str(value)).isoformat()


def _to_iso_datetime(value: datetime | None) -> str:
    """UTC ISO timestamp for `value`, or for the current time when None."""
    if value is None:
        value = datetime.now(timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _status_placeholders(statuses: Sequence[str]) -> str:
    return ", ".join("?" for _ in statuses)


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------

_CLIENT_COLUMNS = "id, name, email, status, created_at"

_INVOICE_COLUMNS = """
    i.id,
    i.invoice_number,
    i.client_id,
    i.date,
    i.due_date,
    i.status,
    i.subtotal_cents,
    i.tax_amount_cents,
    i.total_amount_cents,
    i.notes,
    i.created_at,
    c.name,
    c.email
"""


def _row_to_client(row: tuple) -> Client:
    (client_id, name, email, status, created_at) = row
    return Client(
        id=int(client_id),
        name=name,
        email=email,
        status=status,
        created_at=_parse_datetime(created_at),
    )


def _row_to_line_item(row: tuple) -> LineItem:
    (product_name, description, quantity, unit_price, tax_rate, line_total_cents) = row
    return LineItem(
        product_name=product_name,
        description=description or "",
        quantity=float(quantity),
        unit_price=float(unit_price),
        tax_rate=float(tax_rate),
        line_total=_from_cents(int(line_total_cents)),
    )


def _row_to_invoice(
    row: tuple,
    line_items: tuple[LineItem, ...] = (),
    strict_statuses: bool = False,
) -> Invoice:
    """
    Map an invoices/clients JOIN row to an Invoice.

    With `strict_statuses`, a status outside the enumeration raises
    UnknownStatusError. Otherwise it is passed through unchanged and
    flagged later by the status classifier.
    """
    (
        invoice_id,
        invoice_number,
        client_id,
        date_str,
        due_date_str,
        status,
        subtotal_cents,
        tax_amount_cents,
        total_amount_cents,
        notes,
        created_at,
        client_name,
        client_email,
    ) = row

    if strict_statuses:
        status = ensure_known_status(status)

    return Invoice(
        id=int(invoice_id),
        invoice_number=invoice_number,
        client_id=int(client_id),
        date=date.fromisoformat(date_str),
        due_date=date.fromisoformat(due_date_str),
        status=status,
        subtotal=_from_cents(int(subtotal_cents)),
        tax_amount=_from_cents(int(tax_amount_cents)),
        total_amount=_from_cents(int(total_amount_cents)),
        notes=notes,
        created_at=_parse_datetime(created_at),
        line_items=line_items,
        client_name=client_name,
        client_email=client_email,
    )


def _row_to_expense(row: tuple) -> Expense:
    (expense_id, description, amount_cents, created_at) = row
    return Expense(
        id=int(expense_id),
        description=description,
        amount=_from_cents(int(amount_cents)),
        created_at=_parse_datetime(created_at),
    )


def _load_line_items(
    conn: sqlite3.Connection, invoice_id: int
) -> tuple[LineItem, ...]:
    cur = conn.execute(
        """
        SELECT product_name, description, quantity, unit_price, tax_rate,
               line_total_cents
          FROM invoice_line_items
         WHERE invoice_id = ?
         ORDER BY position, id;
        """,
        (invoice_id,),
    )
    return tuple(_row_to_line_item(row) for row in cur.fetchall())


# ---------------------------------------------------------------------------
# Public API: schema
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if it does not exist.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    DataAccessError
        If schema creation fails.
    """
    _ensure_sqlite(cfg)
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    with _open(cfg, "initializing the schema") as conn:
        _create_schema_if_needed(conn)


# ---------------------------------------------------------------------------
# Public API: clients
# ---------------------------------------------------------------------------


def insert_client(
    cfg: DatabaseConfig,
    session: Session,
    name: str,
    email: str | None = None,
    *,
    status: str = "active",
    created_at: datetime | None = None,
) -> Client:
    """Insert a client owned by the session's user and return it."""
    if not name or not name.strip():
        raise ValidationError("A client name is required.", field="name")

    with _open(cfg, "inserting a client") as conn:
        cur = conn.execute(
            """
            INSERT INTO clients (user_id, name, email, status, created_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            (
                session.user_id,
                name.strip(),
                email or None,
                status,
                _to_iso_datetime(created_at),
            ),
        )
        conn.commit()
        client_id = cur.lastrowid

        row = conn.execute(
            f"SELECT {_CLIENT_COLUMNS} FROM clients WHERE id = ?;", (client_id,)
        ).fetchone()

    return _row_to_client(row)


def list_clients(
    cfg: DatabaseConfig,
    session: Session,
    *,
    active_only: bool = False,
    limit: int | None = None,
) -> list[Client]:
    """
    List the session user's clients, most recently created first.

    `active_only` restricts the result to clients offered in the invoice form.
    """
    sql = f"SELECT {_CLIENT_COLUMNS} FROM clients WHERE user_id = ?"
    params: list[object] = [session.user_id]

    if active_only:
        sql += " AND status = 'active'"

    sql += " ORDER BY created_at DESC, id DESC"

    if limit is not None:
        sql += " LIMIT ?"
        params.append(int(limit))

    with _open(cfg, "listing clients") as conn:
        rows = conn.execute(sql + ";", params).fetchall()

    return [_row_to_client(row) for row in rows]


def count_clients(cfg: DatabaseConfig, session: Session) -> int:
    with _open(cfg, "counting clients") as conn:
        (count,) = conn.execute(
            "SELECT COUNT(*) FROM clients WHERE user_id = ?;", (session.user_id,)
        ).fetchone()
    return int(count)


# ---------------------------------------------------------------------------
# Public API: expenses
# ---------------------------------------------------------------------------


def insert_expense(
    cfg: DatabaseConfig,
    session: Session,
    description: str,
    amount: float,
    *,
    created_at: datetime | None = None,
) -> Expense:
    """Insert an expense owned by the session's user and return it."""
    if not description or not description.strip():
        raise ValidationError(
            "An expense description is required.", field="description"
        )
    try:
        amount_cents = _to_cents(amount)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            "The expense amount must be numeric.", field="amount"
        ) from exc
    if amount_cents < 0:
        raise ValidationError("The expense amount cannot be negative.", field="amount")

    with _open(cfg, "inserting an expense") as conn:
        cur = conn.execute(
            """
            INSERT INTO expenses (user_id, description, amount_cents, created_at)
            VALUES (?, ?, ?, ?);
            """,
            (
                session.user_id,
                description.strip(),
                amount_cents,
                _to_iso_datetime(created_at),
            ),
        )
        conn.commit()
        row = conn.execute(
            """
            SELECT id, description, amount_cents, created_at
              FROM expenses
             WHERE id = ?;
            """,
            (cur.lastrowid,),
        ).fetchone()

    return _row_to_expense(row)


def list_expenses(
    cfg: DatabaseConfig,
    session: Session,
    *,
    limit: int | None = None,
) -> list[Expense]:
    """List the session user's expenses, most recently created first."""
    sql = """
        SELECT id, description, amount_cents, created_at
          FROM expenses
         WHERE user_id = ?
         ORDER BY created_at DESC, id DESC
    """
    params: list[object] = [session.user_id]
    if limit is not None:
        sql += " LIMIT ?"
        params.append(int(limit))

    with _open(cfg, "listing expenses") as conn:
        rows = conn.execute(sql + ";", params).fetchall()

    return [_row_to_expense(row) for row in rows]


# ---------------------------------------------------------------------------
# Public API: invoices
# ---------------------------------------------------------------------------


def _insert_invoice_row(
    cur: sqlite3.Cursor,
    session: Session,
    prepared: PreparedInvoice,
    created_at_iso: str,
) -> int:
    cur.execute(
        """
        INSERT INTO invoices (
            user_id,
            invoice_number,
            client_id,
            date,
            due_date,
            status,
            subtotal_cents,
            tax_amount_cents,
            total_amount_cents,
            notes,
            created_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
        """,
        (
            session.user_id,
            prepared.invoice_number,
            prepared.client_id,
            _to_iso_date(prepared.date),
            _to_iso_date(prepared.due_date),
            prepared.status,
            _to_cents(prepared.totals.subtotal),
            _to_cents(prepared.totals.tax_amount),
            _to_cents(prepared.totals.total),
            prepared.notes,
            created_at_iso,
        ),
    )
    return int(cur.lastrowid)


def _insert_line_items(
    cur: sqlite3.Cursor,
    invoice_id: int,
    line_items: Sequence[LineItem],
) -> None:
    cur.executemany(
        """
        INSERT INTO invoice_line_items (
            invoice_id,
            position,
            product_name,
            description,
            quantity,
            unit_price,
            tax_rate,
            line_total_cents
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?);
        """,
        [
            (
                invoice_id,
                position,
                item.product_name,
                item.description or None,
                float(item.quantity),
                float(item.unit_price),
                float(item.tax_rate),
                _to_cents(item.line_total),
            )
            for position, item in enumerate(line_items)
        ],
    )


def _rollback(conn: sqlite3.Connection) -> None:
    conn.rollback()


def _invoice_row_exists(conn: sqlite3.Connection, invoice_id: int) -> bool:
    cur = conn.execute("SELECT 1 FROM invoices WHERE id = ?;", (invoice_id,))
    return cur.fetchone() is not None


def _compensate_partial_invoice(cfg: DatabaseConfig, invoice_id: int) -> bool:
    """
    Delete an invoice row (and any line items) left behind by a failed write.

    Returns True if the cleanup succeeded.
    """
    try:
        conn = _connect(cfg)
        try:
            conn.execute(
                "DELETE FROM invoice_line_items WHERE invoice_id = ?;", (invoice_id,)
            )
            conn.execute("DELETE FROM invoices WHERE id = ?;", (invoice_id,))
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as exc:
        logger.error("Compensating cleanup of invoice %s failed: %s", invoice_id, exc)
        return False
    return True


def _abort_invoice_write(
    conn: sqlite3.Connection,
    cfg: DatabaseConfig,
    invoice_id: int | None,
) -> None:
    """
    Undo a failed invoice write.

    Raises PartialInvoiceError when the invoice row survived the rollback,
    whether or not the compensating delete then succeeded.
    """
    try:
        _rollback(conn)
        survived = invoice_id is not None and _invoice_row_exists(conn, invoice_id)
    except sqlite3.Error as exc:
        logger.error("Rollback of invoice write failed: %s", exc)
        survived = invoice_id is not None

    if not survived:
        return

    logger.error("Invoice %s was written without its line items", invoice_id)
    cleaned = _compensate_partial_invoice(cfg, invoice_id)
    if cleaned:
        message = (
            f"Invoice {invoice_id} was written without its line items; "
            "the invoice row has been removed."
        )
    else:
        message = (
            f"Invoice {invoice_id} was written without its line items and "
            "could not be removed."
        )
    raise PartialInvoiceError(message, invoice_id=invoice_id)


def create_invoice(
    cfg: DatabaseConfig,
    session: Session,
    prepared: PreparedInvoice,
    *,
    created_at: datetime | None = None,
    strict_statuses: bool = False,
) -> Invoice:
    """
    Persist a prepared invoice and its line items as a single unit.

    Parameters
    ----------
    prepared:
        Result of `invoices.prepare_invoice()`: validated, with totals.
    created_at:
        Creation timestamp. Defaults to the current UTC time.

    Returns
    -------
    Invoice
        The stored invoice, with its line items and client name.

    Raises
    ------
    ValidationError
        If the client does not belong to the session's user, or if the
        invoice number is already used by this user.
    PartialInvoiceError
        If the invoice row could not be undone after a failed write.
    DataAccessError
        For any other database failure (nothing is persisted).
    """
    created_at_iso = _to_iso_datetime(created_at)

    with _open(cfg, "creating an invoice") as conn:
        owner = conn.execute(
            "SELECT 1 FROM clients WHERE id = ? AND user_id = ?;",
            (prepared.client_id, session.user_id),
        ).fetchone()
        if owner is None:
            raise ValidationError(
                f"Unknown client: {prepared.client_id}.", field="client_id"
            )

        invoice_id: int | None = None
        try:
            cur = conn.cursor()
            invoice_id = _insert_invoice_row(cur, session, prepared, created_at_iso)
            _insert_line_items(cur, invoice_id, prepared.line_items)
            conn.commit()
        except sqlite3.IntegrityError as exc:
            _abort_invoice_write(conn, cfg, invoice_id)
            if "invoice_number" in str(exc):
                raise ValidationError(
                    f"Invoice number {prepared.invoice_number!r} is already used.",
                    field="invoice_number",
                ) from exc
            raise DataAccessError(f"Invoice could not be created: {exc}") from exc
        except sqlite3.Error as exc:
            _abort_invoice_write(conn, cfg, invoice_id)
            raise DataAccessError(f"Invoice could not be created: {exc}") from exc

        row = conn.execute(
            f"""
            SELECT {_INVOICE_COLUMNS}
              FROM invoices i
              LEFT JOIN clients c ON c.id = i.client_id
             WHERE i.id = ?;
            """,
            (invoice_id,),
        ).fetchone()
        line_items = _load_line_items(conn, invoice_id)

    logger.info(
        "Created invoice %s (%d line items) for user %s",
        prepared.invoice_number,
        len(line_items),
        session.user_id,
    )
    return _row_to_invoice(row, line_items, strict_statuses=strict_statuses)


def get_invoice(
    cfg: DatabaseConfig,
    session: Session,
    invoice_id: int,
    *,
    strict_statuses: bool = False,
) -> Invoice | None:
    """Load one invoice of the session's user with its line items, or None."""
    with _open(cfg, "loading an invoice") as conn:
        row = conn.execute(
            f"""
            SELECT {_INVOICE_COLUMNS}
              FROM invoices i
              LEFT JOIN clients c ON c.id = i.client_id
             WHERE i.id = ? AND i.user_id = ?;
            """,
            (invoice_id, session.user_id),
        ).fetchone()
        if row is None:
            return None
        line_items = _load_line_items(conn, invoice_id)

    return _row_to_invoice(row, line_items, strict_statuses=strict_statuses)


def list_invoices(
    cfg: DatabaseConfig,
    session: Session,
    *,
    statuses: Sequence[str] | None = None,
    limit: int | None = None,
    with_line_items: bool = False,
    strict_statuses: bool = False,
) -> list[Invoice]:
    """
    List the session user's invoices, most recently created first.

    Parameters
    ----------
    statuses:
        Optional status predicate (e.g. ["paid"] or ["draft", "sent"]).
    limit:
        Maximum number of invoices returned (recent-activity queries).
    with_line_items:
        Also load the line items of each invoice.
    strict_statuses:
        Raise UnknownStatusError on rows holding an unknown status.
    """
    sql = f"""
        SELECT {_INVOICE_COLUMNS}
          FROM invoices i
          LEFT JOIN clients c ON c.id = i.client_id
         WHERE i.user_id = ?
    """
    params: list[object] = [session.user_id]

    if statuses is not None:
        if not statuses:
            return []
        sql += f" AND i.status IN ({_status_placeholders(statuses)})"
        params.extend(statuses)

    sql += " ORDER BY i.created_at DESC, i.id DESC"

    if limit is not None:
        sql += " LIMIT ?"
        params.append(int(limit))

    with _open(cfg, "listing invoices") as conn:
        rows = conn.execute(sql + ";", params).fetchall()
        items_by_id = {}
        if with_line_items:
            for row in rows:
                items_by_id[row[0]] = _load_line_items(conn, row[0])

    return [
        _row_to_invoice(
            row, items_by_id.get(row[0], ()), strict_statuses=strict_statuses
        )
        for row in rows
    ]


def count_invoices(
    cfg: DatabaseConfig,
    session: Session,
    *,
    statuses: Sequence[str] | None = None,
) -> int:
    sql = "SELECT COUNT(*) FROM invoices WHERE user_id = ?"
    params: list[object] = [session.user_id]
    if statuses is not None:
        if not statuses:
            return 0
        sql += f" AND status IN ({_status_placeholders(statuses)})"
        params.extend(statuses)

    with _open(cfg, "counting invoices") as conn:
        (count,) = conn.execute(sql + ";", params).fetchone()
    return int(count)


def update_invoice_status(
    cfg: DatabaseConfig,
    session: Session,
    invoice_id: int,
    status: str,
) -> Invoice:
    """
    Change the status of an invoice of the session's user.

    Raises
    ------
    UnknownStatusError
        If `status` is not a known invoice status.
    ValidationError
        If the invoice does not exist for this user.
    """
    normalized = ensure_known_status(status)

    with _open(cfg, "updating an invoice status") as conn:
        cur = conn.execute(
            "UPDATE invoices SET status = ? WHERE id = ? AND user_id = ?;",
            (normalized, invoice_id, session.user_id),
        )
        conn.commit()
        updated = cur.rowcount

    if updated == 0:
        raise ValidationError(f"Unknown invoice: {invoice_id}.", field="invoice_id")

    invoice = get_invoice(cfg, session, invoice_id)
    if invoice is None:
        raise DataAccessError(f"Invoice {invoice_id} disappeared after update.")
    return invoice
