# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB Ledger.

This module defines a Period value object and helpers to derive the
calendar-month periods used by the dashboard (current month, previous
month), evaluated against wall-clock "now" at computation time.

Period bounds are timezone-aware datetimes with an exclusive end, so that
timestamps anywhere in the last day of a month are included.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import pandas as pd


@dataclass
class Period:
    """Represents a reporting period [start, end) with a human-readable label."""

    start: datetime
    end: datetime
    label: str

    def contains(self, moment: datetime) -> bool:
        return self.start <= as_utc(moment) < self.end


def utc_now() -> datetime:
    """Return the current UTC datetime (isolated for easier testing)."""
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Return `moment` as an aware UTC datetime. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _month_period(year: int, month: int, tz, label: str) -> Period:
    start = datetime(year, month, 1, tzinfo=tz)
    end = start + timedelta(days=monthrange(year, month)[1])
    return Period(start=as_utc(start), end=as_utc(end), label=label)


def period_current_month(now: Optional[datetime] = None) -> Period:
    """
    Calendar month containing `now`.

    The month boundaries follow the timezone of `now` (UTC when `now` is
    naive or omitted).
    """
    if now is None:
        now = utc_now()
    tz = now.tzinfo or timezone.utc
    return _month_period(now.year, now.month, tz, label="Current month")


def period_previous_month(now: Optional[datetime] = None) -> Period:
    """Full calendar month preceding the month containing `now`."""
    if now is None:
        now = utc_now()
    tz = now.tzinfo or timezone.utc

    if now.month == 1:
        year = now.year - 1
        month = 12
    else:
        year = now.year
        month = now.month - 1

    return _month_period(year, month, tz, label="Previous month")


def period_mask(timestamps: pd.Series, period: Period) -> pd.Series:
    """
    Boolean mask selecting the timestamps that fall within the period.

    Parameters
    ----------
    timestamps:
        Series of tz-aware UTC timestamps (datetime64[ns, UTC]).
    period:
        Period defining the [start, end) boundaries.
    """
    return (timestamps >= pd.Timestamp(period.start)) & (
        timestamps < pd.Timestamp(period.end)
    )
