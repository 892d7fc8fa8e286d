from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID
from datetime import date, datetime


class ScorecardPublic(BaseModel):
    user_id: UUID
    campaign_id: UUID
    consistency_score: int
    rule_score: int
    discipline_score: int
    total_score: int
    completed_days: int


class MyProgress(BaseModel):
    scorecard: ScorecardPublic
    rank: int | None
    current_streak: int
    completion_percentage: int
    total_submissions: int
    last_submission_date: date | None


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: UUID
    username: str
    full_name: str | None = None
    consistency_score: int
    rule_score: int
    discipline_score: int
    total_score: int
    completed_days: int
    is_completed: bool


class CachedScorecard(ScorecardPublic):
    updated_at: datetime


class WinnerPublic(BaseModel):
    position: int
    user_id: UUID
    username: str
    total_score: int
    completed_days: int
    via_tie_break: bool
    selected_at: datetime


class ParticipantOverview(BaseModel):
    user_id: UUID
    username: str
    full_name: str | None
    total_submissions: int
    current_streak: int
    completion_rate: int
    last_submission_date: date | None
    is_disqualified: bool
    admin_notes: str | None


class HallOfFameEntry(BaseModel):
    rank: int
    user_id: UUID
    username: str
    full_name: str | None = None
    total_score: int
    completed_days: int
    total_submissions: int
    current_streak: int
    longest_streak: int
    completion_rate: int
    is_completer: bool


class HallOfFameCampaign(BaseModel):
    campaign_id: UUID
    title: str
    slug: str | None = None
    start_date: date
    end_date: date
    days_count: int
    status: str
    completers: int
    best_streak: int
    entries: list[HallOfFameEntry]


class HallOfFame(BaseModel):
    campaigns: list[HallOfFameCampaign]
    total_participants: int
    total_completers: int
    best_streak: int
