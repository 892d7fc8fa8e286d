from datetime import date, timedelta
from types import SimpleNamespace

from app.models.submission import TradeSubmission
from app.services.scoring import (
    DayFlags, score_days, score_submissions, has_analysis, days_in_range,
    RULE_CAP, DISCIPLINE_CAP,
)

START = date(2025, 3, 3)

def _day(n: int, **flags) -> DayFlags:
    return DayFlags(submission_date=START + timedelta(days=n - 1), **flags)

def test_seven_day_campaign_with_gaps():
    full = dict(has_hashtag=True, has_tagged_account=True, has_chart=True, has_analysis=True)
    flags = [_day(1, **full), _day(2, **full), _day(3, has_hashtag=True), _day(5)]
    s = score_days(START, 7, flags)
    assert s.consistency_score == 40
    # (2+1) + (2+1) + 2 + 0
    assert s.rule_score == 8
    assert s.discipline_score == 4
    assert s.total_score == 52
    assert s.completed_days == 4

def test_no_submissions_scores_zero():
    s = score_days(START, 7, [])
    assert s.as_dict() == {
        "consistency_score": 0, "rule_score": 0, "discipline_score": 0,
        "total_score": 0, "completed_days": 0,
    }

def test_rule_and_discipline_caps_apply_to_sums():
    everything = dict(has_hashtag=True, has_tagged_account=True, has_chart=True, has_analysis=True)
    s = score_days(START, 30, [_day(n, **everything) for n in range(1, 31)])
    assert s.consistency_score == 300
    assert s.rule_score == RULE_CAP
    assert s.discipline_score == DISCIPLINE_CAP
    assert s.total_score == 330

def test_dates_outside_campaign_window_do_not_count():
    flags = [
        DayFlags(submission_date=START - timedelta(days=1), has_hashtag=True),
        _day(1),
        _day(7),
        DayFlags(submission_date=START + timedelta(days=7), has_hashtag=True),
    ]
    s = score_days(START, 7, flags)
    assert s.completed_days == 2
    assert s.rule_score == 0

def test_duplicate_dates_count_once_first_record_wins():
    flags = [_day(1, has_hashtag=True), _day(1, has_tagged_account=True, has_chart=True)]
    kept = days_in_range(START, 7, flags)
    assert len(kept) == 1
    s = score_days(START, 7, flags)
    assert (s.consistency_score, s.rule_score, s.discipline_score) == (10, 2, 0)

def test_rejected_submissions_are_ignored():
    flags = [_day(1, verification_status="verified", has_hashtag=True), _day(2, verification_status="rejected", has_hashtag=True), _day(3)]
    s = score_days(START, 7, flags)
    assert s.completed_days == 2
    assert s.rule_score == 2

def test_analysis_threshold():
    assert not has_analysis(None)
    assert not has_analysis("   short    ")
    assert not has_analysis("0123456789")
    assert has_analysis("01234567890")

def test_submission_row_uses_the_same_analysis_rule():
    for idea in (None, "   short    ", "  0123456789  ", "01234567890"):
        assert TradeSubmission(trade_idea=idea).has_analysis == has_analysis(idea)
    assert not TradeSubmission(trade_idea="  0123456789  ").has_analysis

def test_score_submissions_reads_rows_and_string_dates():
    rows = [
        SimpleNamespace(submission_date="2025-03-03", has_hashtag=True, has_tagged_account=False,
                        chart_image_url="k.png", trade_idea="Short gold into resistance", verification_status="pending"),
        SimpleNamespace(submission_date="garbage", has_hashtag=True, has_tagged_account=True,
                        chart_image_url=None, trade_idea="", verification_status="pending"),
    ]
    s = score_submissions("2025-03-03", 7, rows)
    assert s.completed_days == 1
    assert s.rule_score == 2
    assert s.discipline_score == 2
