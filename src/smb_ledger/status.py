# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Invoice status classification.

Invoice statuses form a closed enumeration (draft, sent, paid, overdue).
Each status maps to:

- a category, used by the dashboard statistics to partition invoices:
      paid                  -> 'paid'
      draft, sent, overdue  -> 'outstanding'
- a badge, used by presentation layers:
      paid                  -> 'paid'
      draft, sent           -> 'pending'
      overdue               -> 'overdue'

Unknown statuses never make classification fail. They fall back to the
outstanding category (badge 'pending') with `known=False` and a warning is
logged, so that callers can surface them as data-quality issues. Strict
validation at the data-access boundary is available through
`ensure_known_status`.
"""

import logging
from dataclasses import dataclass
from typing import Literal

from .errors import UnknownStatusError

logger = logging.getLogger(__name__)

StatusCategory = Literal["paid", "outstanding"]

INVOICE_STATUSES: tuple[str, ...] = ("draft", "sent", "paid", "overdue")

OUTSTANDING_STATUSES: frozenset[str] = frozenset({"draft", "sent", "overdue"})

_BADGES: dict[str, str] = {
    "paid": "paid",
    "draft": "pending",
    "sent": "pending",
    "overdue": "overdue",
}

DEFAULT_BADGE = "pending"


@dataclass(frozen=True)
class StatusClassification:
    """Result of classifying one invoice status."""

    status: str
    category: StatusCategory
    badge: str
    known: bool


def _normalize(status: object) -> str:
    if status is None:
        return ""
    return str(status).strip().lower()


def is_known_status(status: object) -> bool:
    """Return True if `status` belongs to the invoice status enumeration."""
    return _normalize(status) in INVOICE_STATUSES


def classify_status(status: object) -> StatusClassification:
    """
    Classify an invoice status into its category and badge.

    Matching is case-insensitive and ignores surrounding whitespace.
    Unrecognized values are classified as outstanding and logged.
    """
    normalized = _normalize(status)

    if normalized == "paid":
        return StatusClassification(
            status=normalized, category="paid", badge="paid", known=True
        )

    if normalized in OUTSTANDING_STATUSES:
        return StatusClassification(
            status=normalized,
            category="outstanding",
            badge=_BADGES[normalized],
            known=True,
        )

    logger.warning("Unknown invoice status %r classified as outstanding", status)
    return StatusClassification(
        status=normalized,
        category="outstanding",
        badge=DEFAULT_BADGE,
        known=False,
    )


def is_paid(status: object) -> bool:
    return _normalize(status) == "paid"


def is_outstanding(status: object) -> bool:
    """Outstanding covers draft, sent, overdue and any unknown status."""
    return not is_paid(status)


def ensure_known_status(status: object) -> str:
    """
    Return the normalized status, or raise if it is not a known status.

    Raises
    ------
    UnknownStatusError
        If `status` does not belong to INVOICE_STATUSES.
    """
    normalized = _normalize(status)
    if normalized not in INVOICE_STATUSES:
        raise UnknownStatusError(status)
    return normalized
