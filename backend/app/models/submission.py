from __future__ import annotations
import uuid
from datetime import date, datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, Text, Date, DateTime, ForeignKey, UniqueConstraint, JSON, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from app.db import Base
from app.services.scoring import has_analysis as _has_analysis


class TradeSubmission(Base):
    __tablename__ = "trade_submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False
    )
    campaign_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False
    )

    submission_date: Mapped[date] = mapped_column(Date, nullable=False)  # UTC calendar day
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)     # 1-based offset from campaign start

    trade_idea: Mapped[str] = mapped_column(Text(), nullable=False)
    twitter_link: Mapped[str] = mapped_column(Text(), nullable=False)
    market_pair: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # storage keys, served via proxy endpoints
    twitter_screenshot_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    chart_image_url: Mapped[str | None] = mapped_column(Text(), nullable=True)

    has_hashtag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_tagged_account: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    verification_status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")  # 'pending'|'verified'|'rejected'
    admin_comment: Mapped[str | None] = mapped_column(Text(), nullable=True)
    verifier_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    automated_checks: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "campaign_id", "submission_date", name="uq_submission_one_per_day"),
    )

    @property
    def has_chart(self) -> bool:
        return bool(self.chart_image_url)

    @property
    def has_analysis(self) -> bool:
        return _has_analysis(self.trade_idea)
