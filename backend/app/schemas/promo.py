from __future__ import annotations
from pydantic import BaseModel, Field, model_validator
from typing import Literal, List
from uuid import UUID
from datetime import datetime

Location = Literal["dashboard", "journal", "landing"]
ClickType = Literal["cta_button", "banner_click", "copy_coupon", "dismiss"]

class PromoCreate(BaseModel):
    title: str = Field(min_length=3, max_length=120)
    description: str | None = None
    prop_firm_name: str = Field(min_length=1, max_length=120)
    cta_text: str = Field(default="Learn more", max_length=64)
    cta_link: str = Field(pattern=r"^https?://")
    coupon_code: str | None = Field(default=None, max_length=64)
    start_time: datetime
    end_time: datetime
    priority: int = 0
    is_enabled: bool = True
    display_locations: List[Location] = Field(default_factory=lambda: ["dashboard"])
    campaign_type: str = Field(default="banner", max_length=32)

    @model_validator(mode="after")
    def check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

class PromoUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3, max_length=120)
    description: str | None = None
    cta_text: str | None = Field(default=None, max_length=64)
    cta_link: str | None = Field(default=None, pattern=r"^https?://")
    coupon_code: str | None = Field(default=None, max_length=64)
    start_time: datetime | None = None
    end_time: datetime | None = None
    priority: int | None = None
    is_enabled: bool | None = None
    display_locations: List[Location] | None = None

class PromoPublic(BaseModel):
    id: UUID
    title: str
    description: str | None
    prop_firm_name: str
    cta_text: str
    cta_link: str
    coupon_code: str | None
    start_time: datetime
    end_time: datetime
    priority: int
    is_enabled: bool
    display_locations: List[str]
    campaign_type: str

class PromoFeed(BaseModel):
    top: PromoPublic | None
    promos: List[PromoPublic]

class ClickCreate(BaseModel):
    click_type: ClickType
