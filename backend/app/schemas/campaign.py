from __future__ import annotations
from pydantic import BaseModel, Field, model_validator
from typing import Literal
from uuid import UUID
from datetime import date, datetime

CampaignStatus = Literal["upcoming", "live", "ended", "archived"]
DayState = Literal["past", "today", "future"]

class CampaignCreate(BaseModel):
    title: str = Field(min_length=3, max_length=120)
    description: str | None = None
    slug: str | None = Field(default=None, max_length=120, pattern=r"^[a-z0-9-]+$")
    start_date: date
    end_date: date
    days_count: int | None = Field(default=None, ge=1)
    is_active: bool = True
    rules: str | None = None
    rewards: dict | None = None
    required_hashtag: str | None = Field(default=None, max_length=64)
    required_account: str | None = Field(default=None, max_length=64)

    @model_validator(mode="after")
    def check_span(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        span = (self.end_date - self.start_date).days + 1
        if self.days_count is None:
            self.days_count = span
        elif self.days_count != span:
            raise ValueError(f"days_count must equal the number of days spanned ({span})")
        return self

class CampaignUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3, max_length=120)
    description: str | None = None
    slug: str | None = Field(default=None, max_length=120, pattern=r"^[a-z0-9-]+$")
    start_date: date | None = None
    end_date: date | None = None
    days_count: int | None = Field(default=None, ge=1)
    is_active: bool | None = None
    archived: bool | None = None
    rules: str | None = None
    rewards: dict | None = None
    required_hashtag: str | None = Field(default=None, max_length=64)
    required_account: str | None = Field(default=None, max_length=64)

class CampaignPublic(BaseModel):
    id: UUID
    title: str
    description: str | None
    slug: str | None
    start_date: date
    end_date: date
    days_count: int
    status: CampaignStatus          # derived from the lifecycle gate
    stored_status: CampaignStatus   # cached column, may lag
    is_active: bool
    current_day_number: int
    submissions_open: bool
    rules: str | None
    rewards: dict | None
    required_hashtag: str | None
    required_account: str | None
    created_at: datetime

class ParticipantPublic(BaseModel):
    campaign_id: UUID
    user_id: UUID
    joined_at: datetime

class DayStatus(BaseModel):
    day: int
    date: date
    state: DayState
    unlocked: bool
    submitted: bool
    verification_status: str | None = None
    has_hashtag: bool = False
    has_tagged_account: bool = False
    has_chart: bool = False
    has_analysis: bool = False

class StatusChange(BaseModel):
    campaign_id: UUID
    stored: CampaignStatus
    derived: CampaignStatus
