from __future__ import annotations
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from app.services.lifecycle import to_utc_date

POINTS_PER_DAY = 10
HASHTAG_POINTS = 2
TAGGED_ACCOUNT_POINTS = 1
RULE_CAP = 20
CHART_POINTS = 1
ANALYSIS_POINTS = 1
DISCIPLINE_CAP = 10

# trade ideas at or under this many characters do not count as analysis
ANALYSIS_MIN_CHARS = 10


@dataclass(frozen=True)
class DayFlags:
    """Compliance flags of one submission, detached from the ORM row."""
    submission_date: date
    has_hashtag: bool = False
    has_tagged_account: bool = False
    has_chart: bool = False
    has_analysis: bool = False
    verification_status: str = "pending"

    @property
    def counts(self) -> bool:
        return self.verification_status != "rejected"

    @classmethod
    def from_submission(cls, sub) -> "DayFlags | None":
        d = to_utc_date(getattr(sub, "submission_date", None))
        if d is None:
            return None
        return cls(
            submission_date=d,
            has_hashtag=bool(getattr(sub, "has_hashtag", False)),
            has_tagged_account=bool(getattr(sub, "has_tagged_account", False)),
            has_chart=bool(getattr(sub, "chart_image_url", None)),
            has_analysis=has_analysis(getattr(sub, "trade_idea", None)),
            verification_status=getattr(sub, "verification_status", None) or "pending",
        )


def has_analysis(trade_idea: str | None) -> bool:
    return len((trade_idea or "").strip()) > ANALYSIS_MIN_CHARS


@dataclass(frozen=True)
class ScoreBreakdown:
    consistency_score: int = 0
    rule_score: int = 0
    discipline_score: int = 0
    completed_days: int = 0

    @property
    def total_score(self) -> int:
        return self.consistency_score + self.rule_score + self.discipline_score

    def as_dict(self) -> dict:
        return {
            "consistency_score": self.consistency_score,
            "rule_score": self.rule_score,
            "discipline_score": self.discipline_score,
            "total_score": self.total_score,
            "completed_days": self.completed_days,
        }


def days_in_range(start_date, days_count: int, flags: Iterable[DayFlags]) -> list[DayFlags]:
    """
    Keep counted submissions whose date lies in [start, start + days_count).

    The first record seen for a given date wins; later duplicates are dropped.
    """
    start = to_utc_date(start_date)
    if start is None or days_count <= 0:
        return []
    stop = start + timedelta(days=days_count)
    seen: set[date] = set()
    kept: list[DayFlags] = []
    for f in flags:
        if f is None or not f.counts:
            continue
        if not (start <= f.submission_date < stop):
            continue
        if f.submission_date in seen:
            continue
        seen.add(f.submission_date)
        kept.append(f)
    return kept


def score_days(start_date, days_count: int, flags: Iterable[DayFlags]) -> ScoreBreakdown:
    days = days_in_range(start_date, days_count, flags)

    consistency = POINTS_PER_DAY * len(days)

    rule = 0
    discipline = 0
    for f in days:
        if f.has_hashtag:
            rule += HASHTAG_POINTS
        if f.has_tagged_account:
            rule += TAGGED_ACCOUNT_POINTS
        if f.has_chart:
            discipline += CHART_POINTS
        if f.has_analysis:
            discipline += ANALYSIS_POINTS

    return ScoreBreakdown(
        consistency_score=consistency,
        rule_score=min(rule, RULE_CAP),
        discipline_score=min(discipline, DISCIPLINE_CAP),
        completed_days=len(days),
    )


def score_submissions(start_date, days_count: int, submissions: Iterable) -> ScoreBreakdown:
    """Score one participant's submission rows (ORM objects or look-alikes) for one campaign."""
    return score_days(start_date, days_count, (DayFlags.from_submission(s) for s in submissions))
