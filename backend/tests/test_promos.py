import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.services.promos import select_visible_promos, top_promo, is_promo_running

NOW = datetime(2025, 6, 1, 12, tzinfo=timezone.utc)

def _promo(priority=0, locations=("dashboard",), start=-1, end=1, enabled=True, naive=False):
    s, e = NOW + timedelta(days=start), NOW + timedelta(days=end)
    if naive:
        s, e = s.replace(tzinfo=None), e.replace(tzinfo=None)
    return SimpleNamespace(
        id=uuid.uuid4(), priority=priority, display_locations=list(locations),
        start_time=s, end_time=e, is_enabled=enabled,
    )

def test_running_window_and_enabled_flag():
    assert is_promo_running(_promo(), NOW)
    assert not is_promo_running(_promo(start=1, end=2), NOW)
    assert not is_promo_running(_promo(start=-3, end=-1), NOW)
    assert not is_promo_running(_promo(enabled=False), NOW)
    # stored without tzinfo means UTC
    assert is_promo_running(_promo(naive=True), NOW)

def test_selection_filters_location_and_dismissed_then_orders_by_priority():
    low, high, journal_only, dismissed = _promo(1), _promo(9), _promo(5, ("journal",)), _promo(50)
    visible = select_visible_promos([low, high, journal_only, dismissed], {dismissed.id}, "dashboard", NOW)
    assert visible == [high, low]
    assert top_promo(visible) is high

def test_equal_priority_earlier_start_first():
    older, newer = _promo(3, start=-5), _promo(3, start=-1)
    assert select_visible_promos([newer, older], set(), "dashboard", NOW) == [older, newer]

def test_nothing_visible():
    assert top_promo(select_visible_promos([], set(), "landing", NOW)) is None
