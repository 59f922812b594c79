# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB Ledger.

This module wires together the main building blocks of SMB Ledger:

- global configuration (business profile, database, dashboard limits),
- the SQLite data-access layer,
- invoice drafting and pricing,
- dashboard statistics and the recent activity feed,
- view helpers (tabular rendering).

The CLI is intentionally thin: it does not implement financial logic
itself. It orchestrates the underlying modules based on command-line
arguments and the configuration file.


Configuration
-------------

By default, the CLI reads its configuration from ``smb_ledger_config.toml``
in the current working directory. You can override this path using:

    --config PATH

When no configuration file is given and the default file does not exist,
built-in defaults are used and records are stored in
``data/db/smb_ledger.sqlite``.

Every command runs on behalf of one user, selected with ``--user`` (default
``local``). Records of other users are never read nor modified.


Commands
--------

dashboard
    Show the dashboard KPIs, data-quality warnings and the recent activity
    feed:

        python -m smb_ledger.cli dashboard

clients add NAME [--email EMAIL] [--inactive]
clients list [--active-only]
    Manage clients. Only active clients can be invoiced from the form.

expenses add DESCRIPTION AMOUNT
expenses list [--limit N]
    Log and list expenses.

invoices create --client-id ID --item ITEM [--item ITEM ...]
    Create an invoice. Each ``--item`` has the form
    ``PRODUCT:QUANTITY:UNIT_PRICE[:TAX_RATE]``; the tax rate defaults to
    ``business.default_tax_rate``. ``--date`` defaults to today and
    ``--due-date`` to 30 days after the invoice date. A number is
    generated when ``--number`` is omitted.

        python -m smb_ledger.cli invoices create --client-id 1 \\
            --item "Consulting:2:40:5" --item "Travel:1:120"

invoices list [--search TERM] [--status STATUS]
invoices show INVOICE_ID
invoices set-status INVOICE_ID STATUS
    Inspect invoices and move them through draft / sent / paid / overdue.


Errors
------

Validation and storage errors are printed on stderr and the process exits
with status 1. Nothing is written when an invoice fails validation.
"""

import argparse
import asyncio
import logging
import math
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

from . import __version__
from .config import DEFAULT_CONFIG_FILE, AppConfig, default_app_config, load_app_config
from .db import (
    get_invoice,
    init_database,
    insert_client,
    insert_expense,
    list_clients,
    list_expenses,
    update_invoice_status,
)
from .errors import LedgerError, ValidationError
from .invoices import check_totals_consistency
from .ledger_service import (
    create_invoice,
    load_dashboard,
    new_invoice_draft,
    search_invoices,
)
from .models import NewInvoice, Session
from .status import INVOICE_STATUSES
from .views import (
    activity_to_dataframe,
    clients_to_dataframe,
    expenses_to_dataframe,
    format_amount,
    invoices_to_dataframe,
    line_items_to_dataframe,
    stats_to_dataframe,
)

DEFAULT_DB_PATH = "data/db/smb_ledger.sqlite"
DEFAULT_PAYMENT_TERMS_DAYS = 30

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smb_ledger.cli",
        description=(
            "SMB Ledger - Bookkeeping & Dashboard engine for SMBs. "
            "Manages clients, invoices and expenses and renders the "
            "dashboard statistics and recent activity."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_ledger and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. "
            f"If omitted, '{DEFAULT_CONFIG_FILE}' in the current directory is "
            "used when present, built-in defaults otherwise."
        ),
    )
    ap.add_argument(
        "--user",
        dest="user_id",
        default="local",
        help="User on whose behalf the command runs (default: 'local').",
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # dashboard
    subparsers.add_parser("dashboard", help="Show KPIs and recent activity.")

    # clients
    clients_parser = subparsers.add_parser("clients", help="Manage clients.")
    clients_sub = clients_parser.add_subparsers(dest="clients_command")

    p = clients_sub.add_parser("add", help="Add a client.")
    p.add_argument("name")
    p.add_argument("--email")
    p.add_argument(
        "--inactive",
        action="store_true",
        help="Store the client as inactive (hidden from the invoice form).",
    )

    p = clients_sub.add_parser("list", help="List clients.")
    p.add_argument(
        "--active-only",
        dest="active_only",
        action="store_true",
        help="Only list clients that can be invoiced.",
    )

    # expenses
    expenses_parser = subparsers.add_parser("expenses", help="Manage expenses.")
    expenses_sub = expenses_parser.add_subparsers(dest="expenses_command")

    p = expenses_sub.add_parser("add", help="Log an expense.")
    p.add_argument("description")
    p.add_argument("amount", type=float)

    p = expenses_sub.add_parser("list", help="List expenses, newest first.")
    p.add_argument("--limit", type=int)

    # invoices
    invoices_parser = subparsers.add_parser("invoices", help="Manage invoices.")
    invoices_sub = invoices_parser.add_subparsers(dest="invoices_command")

    p = invoices_sub.add_parser("create", help="Create an invoice.")
    p.add_argument("--client-id", dest="client_id", type=int, required=True)
    p.add_argument(
        "--item",
        dest="items",
        action="append",
        required=True,
        metavar="PRODUCT:QTY:PRICE[:TAX]",
        help="Line item; repeat the option to add several items.",
    )
    p.add_argument("--date", dest="invoice_date", help="Invoice date (YYYY-MM-DD).")
    p.add_argument("--due-date", dest="due_date", help="Due date (YYYY-MM-DD).")
    p.add_argument("--number", dest="invoice_number")
    p.add_argument("--status", choices=INVOICE_STATUSES, default="draft")
    p.add_argument("--notes")

    p = invoices_sub.add_parser("list", help="List invoices, newest first.")
    p.add_argument(
        "--search",
        default="",
        help="Only invoices whose number or client name contains this text.",
    )
    p.add_argument("--status", choices=INVOICE_STATUSES)

    p = invoices_sub.add_parser("show", help="Show one invoice and its items.")
    p.add_argument("invoice_id", type=int)

    p = invoices_sub.add_parser("set-status", help="Change an invoice status.")
    p.add_argument("invoice_id", type=int)
    p.add_argument("status")

    return ap


def _load_config(args: argparse.Namespace) -> AppConfig:
    if args.config_path:
        return load_app_config(args.config_path)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return load_app_config()
    return default_app_config(Path(DEFAULT_DB_PATH).resolve())


def _parse_date(value: str, option: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid date for {option}: {value!r} (expected YYYY-MM-DD)."
        ) from exc


def _parse_item(spec: str) -> tuple[str, float, float, Optional[float]]:
    """Split 'PRODUCT:QTY:PRICE[:TAX]' into its typed parts."""
    parts = [part.strip() for part in spec.split(":")]
    if len(parts) not in (3, 4) or not parts[0]:
        raise ValidationError(
            f"Invalid --item {spec!r}: expected PRODUCT:QTY:PRICE[:TAX].",
            field="line_items",
        )
    try:
        quantity = float(parts[1])
        unit_price = float(parts[2])
        tax_rate = float(parts[3]) if len(parts) == 4 else None
    except ValueError as exc:
        raise ValidationError(
            f"Invalid --item {spec!r}: quantity, price and tax must be numbers.",
            field="line_items",
        ) from exc
    if not all(
        math.isfinite(value) for value in (quantity, unit_price, tax_rate or 0.0)
    ):
        raise ValidationError(
            f"Invalid --item {spec!r}: quantity, price and tax must be finite.",
            field="line_items",
        )
    return parts[0], quantity, unit_price, tax_rate


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _handle_dashboard(config: AppConfig, session: Session) -> None:
    result = asyncio.run(load_dashboard(config, session))
    if not result.ok:
        raise LedgerError(f"Dashboard unavailable: {result.error}")

    business = config.business.name or "SMB Ledger"
    print(f"=== {business} dashboard ===")
    stats_view = stats_to_dataframe(
        result.stats, config.business.currency, config.amount_decimals
    )
    print(stats_view.to_string(index=False))

    if result.stats.data_quality_warnings:
        print()
        print("Data quality warnings:")
        for warning in result.stats.data_quality_warnings:
            print(f"- {warning}")

    print()
    print("=== Recent activity ===")
    if not result.activity:
        print("No recent activity.")
        return
    activity_view = activity_to_dataframe(result.activity, config.amount_decimals)
    print(activity_view.to_string(index=False))


def _handle_clients(
    args: argparse.Namespace, config: AppConfig, session: Session
) -> None:
    if args.clients_command == "add":
        client = insert_client(
            config.database,
            session,
            args.name,
            args.email,
            status="inactive" if args.inactive else "active",
        )
        print(f"Added client #{client.id}: {client.name}")
    elif args.clients_command == "list":
        clients = list_clients(config.database, session, active_only=args.active_only)
        if not clients:
            print("No clients found.")
            return
        print(clients_to_dataframe(clients).to_string(index=False))
    else:
        print("No clients subcommand specified. Available: 'add', 'list'.")


def _handle_expenses(
    args: argparse.Namespace, config: AppConfig, session: Session
) -> None:
    if args.expenses_command == "add":
        expense = insert_expense(
            config.database, session, args.description, args.amount
        )
        amount = format_amount(
            expense.amount, config.business.currency, config.amount_decimals
        )
        print(f"Logged expense #{expense.id}: {expense.description} ({amount})")
    elif args.expenses_command == "list":
        expenses = list_expenses(config.database, session, limit=args.limit)
        if not expenses:
            print("No expenses found.")
            return
        view = expenses_to_dataframe(expenses, config.amount_decimals)
        print(view.to_string(index=False))
    else:
        print("No expenses subcommand specified. Available: 'add', 'list'.")


def _handle_invoices_create(
    args: argparse.Namespace, config: AppConfig, session: Session
) -> None:
    draft = new_invoice_draft(config)
    for position, spec in enumerate(args.items):
        product, quantity, unit_price, tax_rate = _parse_item(spec)
        if position > 0:
            draft.add_line_item()
        changes = {
            "product_name": product,
            "quantity": quantity,
            "unit_price": unit_price,
        }
        if tax_rate is not None:
            changes["tax_rate"] = tax_rate
        draft.update_line_item(position, **changes)

    invoice_date = (
        _parse_date(args.invoice_date, "--date") if args.invoice_date else date.today()
    )
    if args.due_date:
        due_date = _parse_date(args.due_date, "--due-date")
    else:
        due_date = invoice_date + timedelta(days=DEFAULT_PAYMENT_TERMS_DAYS)

    new_invoice = NewInvoice(
        client_id=args.client_id,
        date=invoice_date,
        due_date=due_date,
        line_items=draft.line_items,
        invoice_number=args.invoice_number,
        status=args.status,
        notes=args.notes,
    )
    invoice = create_invoice(config, session, new_invoice)

    total = format_amount(
        invoice.total_amount, config.business.currency, config.amount_decimals
    )
    print(
        f"Created invoice {invoice.invoice_number} (#{invoice.id}) "
        f"for {invoice.client_name}: {total}"
    )


def _handle_invoices_show(
    args: argparse.Namespace, config: AppConfig, session: Session
) -> None:
    invoice = get_invoice(
        config.database,
        session,
        args.invoice_id,
        strict_statuses=config.invoices.strict_statuses,
    )
    if invoice is None:
        raise ValidationError(
            f"Invoice with id {args.invoice_id} not found.", field="invoice_id"
        )

    def money(value: float) -> str:
        return format_amount(value, config.business.currency, config.amount_decimals)

    print(f"Invoice {invoice.invoice_number} (#{invoice.id})")
    print(f"  client     : {invoice.client_name or ''}")
    print(f"  date       : {invoice.date.isoformat()}")
    print(f"  due_date   : {invoice.due_date.isoformat()}")
    print(f"  status     : {invoice.status}")
    print(f"  subtotal   : {money(invoice.subtotal)}")
    print(f"  tax_amount : {money(invoice.tax_amount)}")
    print(f"  total      : {money(invoice.total_amount)}")
    if invoice.notes:
        print(f"  notes      : {invoice.notes}")

    print()
    print("Line items:")
    items_view = line_items_to_dataframe(invoice.line_items, config.amount_decimals)
    print(items_view.to_string(index=False))

    for message in check_totals_consistency(invoice):
        print(f"Warning: {message}")


def _handle_invoices(
    args: argparse.Namespace, config: AppConfig, session: Session
) -> None:
    subcmd = args.invoices_command

    if subcmd == "create":
        _handle_invoices_create(args, config, session)
    elif subcmd == "list":
        statuses = [args.status] if args.status else None
        invoices = search_invoices(config, session, args.search, statuses=statuses)
        if not invoices:
            print("No invoices found.")
            return
        view = invoices_to_dataframe(invoices, config.amount_decimals)
        print(view.to_string(index=False))
    elif subcmd == "show":
        _handle_invoices_show(args, config, session)
    elif subcmd == "set-status":
        invoice = update_invoice_status(
            config.database, session, args.invoice_id, args.status
        )
        print(f"Invoice {invoice.invoice_number} is now '{invoice.status}'.")
    else:
        print(
            "No invoices subcommand specified. "
            "Available: 'create', 'list', 'show', 'set-status'."
        )


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB Ledger CLI.

    This function parses command-line arguments, loads the configuration,
    configures logging, initializes the database, and dispatches to the
    selected command. Library errors are reported on stderr and turned
    into exit status 1.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smb_ledger version {__version__}")
        return

    if args.command is None:
        parser.print_help()
        return

    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    session = Session(user_id=args.user_id)

    try:
        init_database(config.database)

        if args.command == "dashboard":
            _handle_dashboard(config, session)
        elif args.command == "clients":
            _handle_clients(args, config, session)
        elif args.command == "expenses":
            _handle_expenses(args, config, session)
        elif args.command == "invoices":
            _handle_invoices(args, config, session)
    except ValidationError as exc:
        where = f" [{exc.field}]" if exc.field else ""
        print(f"Error{where}: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    except LedgerError as exc:
        logger.debug("Command %r failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
