from __future__ import annotations
import re
from pydantic import BaseModel, Field, field_validator
from typing import Literal
from uuid import UUID
from datetime import date, datetime

TWITTER_STATUS_RE = re.compile(r"^https?://(www\.)?(twitter\.com|x\.com)/\w+/status/\d+")

VerificationStatus = Literal["pending", "verified", "rejected"]


def is_twitter_status_link(link: str) -> bool:
    return bool(TWITTER_STATUS_RE.match(link or ""))


class SubmissionCreate(BaseModel):
    trade_idea: str = Field(max_length=5000)
    twitter_link: str = Field(max_length=500)
    market_pair: str | None = Field(default=None, max_length=32)
    has_hashtag: bool = False
    has_tagged_account: bool = False

    @field_validator("trade_idea")
    @classmethod
    def idea_required(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("trade_idea must not be empty")
        return v

    @field_validator("twitter_link")
    @classmethod
    def twitter_link_format(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("twitter_link is required")
        if not is_twitter_status_link(v):
            raise ValueError("twitter_link must be a Twitter/X post link")
        return v


class SubmissionPublic(BaseModel):
    id: UUID
    campaign_id: UUID
    user_id: UUID
    submission_date: date
    day_number: int
    trade_idea: str
    twitter_link: str
    market_pair: str | None = None
    has_hashtag: bool
    has_tagged_account: bool
    has_chart: bool
    has_analysis: bool
    verification_status: VerificationStatus
    admin_comment: str | None = None
    verified_at: datetime | None = None
    # 🔒 do not expose storage keys
    screenshot_url: str | None = None   # served via proxy endpoint
    chart_url: str | None = None
    automated_checks: dict = Field(default_factory=dict)
    created_at: datetime


class ReviewDecision(BaseModel):
    verification_status: Literal["verified", "rejected"]
    admin_comment: str | None = Field(default=None, max_length=1000)
    has_hashtag: bool | None = None
    has_tagged_account: bool | None = None
