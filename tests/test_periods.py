from datetime import datetime, timedelta, timezone

import pandas as pd

import smb_ledger.periods as periods


def test_current_month_bounds_in_utc() -> None:
    now = datetime(2025, 2, 14, 8, 30, tzinfo=timezone.utc)

    p = periods.period_current_month(now)

    assert p.start == datetime(2025, 2, 1, tzinfo=timezone.utc)
    assert p.end == datetime(2025, 3, 1, tzinfo=timezone.utc)


def test_previous_month_wraps_year() -> None:
    now = datetime(2025, 1, 10, tzinfo=timezone.utc)

    p = periods.period_previous_month(now)

    assert p.start == datetime(2024, 12, 1, tzinfo=timezone.utc)
    assert p.end == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_month_boundaries_follow_timezone_of_now() -> None:
    """With a UTC+2 reference, the month starts at 22:00 UTC the day before."""
    tz = timezone(timedelta(hours=2))
    now = datetime(2025, 3, 1, 0, 30, tzinfo=tz)

    p = periods.period_current_month(now)

    assert p.start == datetime(2025, 2, 28, 22, 0, tzinfo=timezone.utc)
    assert p.contains(datetime(2025, 2, 28, 23, 0, tzinfo=timezone.utc))
    assert not p.contains(datetime(2025, 2, 28, 21, 0, tzinfo=timezone.utc))


def test_as_utc_treats_naive_values_as_utc() -> None:
    naive = datetime(2025, 5, 1, 12, 0)
    assert periods.as_utc(naive) == datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_period_mask_is_half_open() -> None:
    """period_mask keeps timestamps in [start, end)."""
    p = periods.Period(
        start=datetime(2025, 2, 1, tzinfo=timezone.utc),
        end=datetime(2025, 3, 1, tzinfo=timezone.utc),
        label="Test period",
    )
    ts = pd.to_datetime(
        [
            "2025-01-31T23:59:59Z",
            "2025-02-01T00:00:00Z",
            "2025-02-15T10:00:00Z",
            "2025-03-01T00:00:00Z",
        ],
        utc=True,
    )

    mask = periods.period_mask(pd.Series(ts), p)

    assert mask.tolist() == [False, True, True, False]
