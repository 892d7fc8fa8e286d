from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid, func
from app.db import Base

class Scorecard(Base):
    """
    Cached projection of the scoring engine, one row per (campaign, user).
    Rewritten wholesale on every refresh; never patched incrementally.
    """
    __tablename__ = "scorecards"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)

    consistency_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rule_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discipline_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("campaign_id", "user_id", name="uq_scorecard_per_campaign_user"),
    )

class CampaignWinner(Base):
    """Persisted result of a winner draw; reads never re-roll the tie-break."""
    __tablename__ = "campaign_winners"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    total_score: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_days: Mapped[int] = mapped_column(Integer, nullable=False)
    via_tie_break: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    selected_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"))
    selected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("campaign_id", "user_id", name="uq_winner_once_per_campaign"),
    )
