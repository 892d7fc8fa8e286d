from __future__ import annotations
from datetime import date, datetime, timezone as dt_tz

UPCOMING = "upcoming"
LIVE = "live"
ENDED = "ended"
ARCHIVED = "archived"


def to_utc_date(value) -> date | None:
    """
    Coerce a stored date-ish value to a UTC calendar day.

    Accepts `date`, `datetime` (naive values are taken as UTC) and ISO-8601
    strings. Anything else, including malformed strings, gives None.

    Examples:
        >>> to_utc_date("2025-01-05")
        datetime.date(2025, 1, 5)
        >>> to_utc_date("2025-01-05T23:30:00-05:00")
        datetime.date(2025, 1, 6)
        >>> to_utc_date("not a date") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(dt_tz.utc).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            return to_utc_date(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def campaign_status(start, end, now) -> str:
    """
    Derive a campaign's temporal status from wall-clock time.

    Both ends are whole calendar days (UTC), inclusive. Missing or malformed
    dates keep the campaign "upcoming": live is the state that grants
    write access, so it is never the fallback.
    """
    start_d, end_d, today = to_utc_date(start), to_utc_date(end), to_utc_date(now)
    if start_d is None or end_d is None or today is None or end_d < start_d:
        return UPCOMING
    if today < start_d:
        return UPCOMING
    if today <= end_d:
        return LIVE
    return ENDED


def effective_status(stored: str | None, start, end, now) -> str:
    # archived is an admin decision, not a function of time
    if stored == ARCHIVED:
        return ARCHIVED
    return campaign_status(start, end, now)


def current_day_number(start, days_count: int, today) -> int:
    """
    1-based day number for `today`, clamped to [1, days_count].

    Counts calendar days since the campaign start, not since a participant
    joined.
    """
    start_d, today_d = to_utc_date(start), to_utc_date(today)
    upper = max(1, int(days_count or 0))
    if start_d is None or today_d is None:
        return 1
    elapsed = (today_d - start_d).days
    return max(1, min(elapsed + 1, upper))


def is_submission_open(stored: str | None, start, end, today) -> bool:
    return effective_status(stored, start, end, today) == LIVE


def unlocked_day_number(stored: str | None, start, end, days_count: int, today) -> int | None:
    """The only day number that accepts new submissions right now, or None.

    `stored` is the cached status column; an archived campaign never unlocks
    a day whatever its dates say.
    """
    if not is_submission_open(stored, start, end, today):
        return None
    return current_day_number(start, days_count, today)


def day_state(day_date: date, today: date) -> str:
    if day_date == today:
        return "today"
    if day_date < today:
        return "past"
    return "future"
