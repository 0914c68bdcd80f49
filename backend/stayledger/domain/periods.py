# backend/stayledger/domain/periods.py
from __future__ import annotations

import calendar
from datetime import datetime, timedelta

MONTH_NAMES = list(calendar.month_name)[1:]


def month_name(month: int) -> str:
    if not 1 <= int(month) <= 12:
        raise ValueError(f"month out of range: {month}")
    return MONTH_NAMES[int(month) - 1]


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """
    [start, end) for a calendar month.

    end is the first instant of the following month, so every timestamp
    up to and including 23:59:59.999... on the last day falls inside.
    """
    start = datetime(int(year), int(month), 1)
    if int(month) == 12:
        end = datetime(int(year) + 1, 1, 1)
    else:
        end = datetime(int(year), int(month) + 1, 1)
    return start, end


def trailing_months(now: datetime, count: int = 6) -> list[tuple[int, int]]:
    """(year, month) pairs for the last `count` months ending with now's month, oldest first."""
    out: list[tuple[int, int]] = []
    y, m = now.year, now.month
    for _ in range(count):
        out.append((y, m))
        first = datetime(y, m, 1) - timedelta(days=1)
        y, m = first.year, first.month
    return list(reversed(out))
