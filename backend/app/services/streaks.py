from __future__ import annotations
import math
from datetime import date, timedelta
from typing import Iterable

from app.services.lifecycle import to_utc_date


def normalize_days(values: Iterable) -> set[date]:
    """UTC calendar days for every parseable value; malformed entries are dropped."""
    out: set[date] = set()
    for v in values:
        d = to_utc_date(v)
        if d is not None:
            out.add(d)
    return out


def current_streak(values: Iterable, today) -> int:
    """
    Consecutive submission days ending at the most recent submission.

    The streak is alive only when the most recent submission is today or
    yesterday (UTC); anything older means a day was missed and gives 0.
    Dates after `today` are ignored.
    """
    today_d = to_utc_date(today)
    if today_d is None:
        return 0
    days = {d for d in normalize_days(values) if d <= today_d}
    if not days:
        return 0
    latest = max(days)
    if (today_d - latest).days > 1:
        return 0
    streak = 0
    cursor = latest
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def completion_percentage(values: Iterable, days_count: int) -> int:
    """round(100 * distinct days / days_count), half-up, deliberately unclamped."""
    if not days_count or days_count <= 0:
        return 0
    distinct = len(normalize_days(values))
    return int(math.floor(100 * distinct / days_count + 0.5))


def longest_streak(values: Iterable) -> int:
    """Longest run of consecutive distinct UTC days anywhere in `values`."""
    days = sorted(normalize_days(values))
    best = run = 0
    prev: date | None = None
    for d in days:
        run = run + 1 if prev is not None and d - prev == timedelta(days=1) else 1
        best = max(best, run)
        prev = d
    return best
