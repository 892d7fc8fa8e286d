from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from typing import Iterable, Sequence

LOCATIONS = ("dashboard", "journal", "landing")


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_tz.utc)
    return dt.astimezone(dt_tz.utc)


def is_promo_running(promo, now: datetime) -> bool:
    if not promo.is_enabled:
        return False
    now = as_utc(now)
    return as_utc(promo.start_time) <= now <= as_utc(promo.end_time)


def select_visible_promos(promos: Iterable, dismissed: set, location: str, now: datetime) -> list:
    """
    Promos to show at `location`, highest priority first.

    `dismissed` is the caller's seen/dismissed set of promo ids; it is passed
    in, never read from ambient state.
    """
    visible = [
        p for p in promos
        if is_promo_running(p, now)
        and location in (p.display_locations or [])
        and p.id not in dismissed
    ]
    visible.sort(key=lambda p: (-(p.priority or 0), as_utc(p.start_time)))
    return visible


def top_promo(visible: Sequence):
    return visible[0] if visible else None
