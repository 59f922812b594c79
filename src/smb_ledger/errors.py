# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Error taxonomy for SMB Ledger.

- ValidationError:     rejected input, raised before any write.
- DataAccessError:     the store could not be reached or refused a query.
- PartialInvoiceError: an invoice row exists without its line items.
- UnknownStatusError:  a status outside the closed enumeration, raised only
                       when strict status validation is enabled.

ValidationError and UnknownStatusError also derive from ValueError so that
callers written against plain ValueError keep working.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for all SMB Ledger errors."""


class ValidationError(LedgerError, ValueError):
    """Invalid user input, reported with the name of the offending field."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class DataAccessError(LedgerError):
    """The data store is unreachable or rejected an operation."""


class PartialInvoiceError(DataAccessError):
    """An invoice was written without its line items."""

    def __init__(self, message: str, invoice_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.invoice_id = invoice_id


class UnknownStatusError(LedgerError, ValueError):
    """Invoice status outside of the known enumeration."""

    def __init__(self, status: object) -> None:
        super().__init__(f"Unknown invoice status: {status!r}")
        self.status = status
