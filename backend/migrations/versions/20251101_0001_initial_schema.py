from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20251101_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=32), nullable=False),
        sa.Column("full_name", sa.String(length=120), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="user"),
        sa.Column("is_disqualified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)
    op.create_index("ix_profiles_username", "profiles", ["username"], unique=True)

    op.create_table(
        "campaigns",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("slug", sa.String(length=120), nullable=True, unique=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("days_count", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="upcoming"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("rules", sa.Text(), nullable=True),
        sa.Column("rewards", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("required_hashtag", sa.String(length=64), nullable=True),
        sa.Column("required_account", sa.String(length=64), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("end_date >= start_date", name="ck_campaign_dates_ordered"),
        sa.CheckConstraint("days_count >= 1", name="ck_campaign_days_positive"),
        sa.CheckConstraint("status IN ('upcoming','live','ended','archived')", name="ck_campaign_status"),
    )

    op.create_table(
        "challenge_participants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("campaign_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("joined_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("campaign_id", "user_id", name="uq_participant_once_per_campaign"),
    )
    op.create_index("ix_challenge_participants_campaign_id", "challenge_participants", ["campaign_id"])
    op.create_index("ix_challenge_participants_user_id", "challenge_participants", ["user_id"])

    op.create_table(
        "trade_submissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("campaign_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("submission_date", sa.Date(), nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("trade_idea", sa.Text(), nullable=False),
        sa.Column("twitter_link", sa.Text(), nullable=False),
        sa.Column("market_pair", sa.String(length=32), nullable=True),
        sa.Column("twitter_screenshot_url", sa.Text(), nullable=True),
        sa.Column("chart_image_url", sa.Text(), nullable=True),
        sa.Column("has_hashtag", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("has_tagged_account", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("verification_status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("admin_comment", sa.Text(), nullable=True),
        sa.Column("verifier_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("verified_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("automated_checks", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("user_id", "campaign_id", "submission_date", name="uq_submission_one_per_day"),
        sa.CheckConstraint("verification_status IN ('pending','verified','rejected')", name="ck_submission_verification_status"),
    )
    op.create_index("ix_trade_submissions_user_id", "trade_submissions", ["user_id"])
    op.create_index("ix_trade_submissions_campaign_id", "trade_submissions", ["campaign_id"])

    op.create_table(
        "scorecards",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("campaign_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("consistency_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rule_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("discipline_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("campaign_id", "user_id", name="uq_scorecard_per_campaign_user"),
    )
    op.create_index("ix_scorecards_campaign_id", "scorecards", ["campaign_id"])
    op.create_index("ix_scorecards_user_id", "scorecards", ["user_id"])

    op.create_table(
        "campaign_winners",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("campaign_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("total_score", sa.Integer(), nullable=False),
        sa.Column("completed_days", sa.Integer(), nullable=False),
        sa.Column("via_tie_break", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("selected_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("selected_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("campaign_id", "user_id", name="uq_winner_once_per_campaign"),
    )
    op.create_index("ix_campaign_winners_campaign_id", "campaign_winners", ["campaign_id"])

    op.create_table(
        "propfirm_campaigns",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("prop_firm_name", sa.String(length=120), nullable=False),
        sa.Column("cta_text", sa.String(length=64), nullable=False, server_default="Learn more"),
        sa.Column("cta_link", sa.Text(), nullable=False),
        sa.Column("coupon_code", sa.String(length=64), nullable=True),
        sa.Column("start_time", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_time", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("display_locations", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("campaign_type", sa.String(length=32), nullable=False, server_default="banner"),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("end_time > start_time", name="ck_promo_window_ordered"),
    )

    op.create_table(
        "promo_dismissals",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("promo_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("propfirm_campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("user_id", "promo_id", name="uq_promo_dismissed_once"),
    )
    op.create_index("ix_promo_dismissals_user_id", "promo_dismissals", ["user_id"])

    op.create_table(
        "promo_clicks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("promo_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("propfirm_campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("click_type", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_promo_clicks_promo_id", "promo_clicks", ["promo_id"])

def downgrade() -> None:
    op.drop_index("ix_promo_clicks_promo_id", table_name="promo_clicks")
    op.drop_table("promo_clicks")
    op.drop_index("ix_promo_dismissals_user_id", table_name="promo_dismissals")
    op.drop_table("promo_dismissals")
    op.drop_table("propfirm_campaigns")
    op.drop_index("ix_campaign_winners_campaign_id", table_name="campaign_winners")
    op.drop_table("campaign_winners")
    op.drop_index("ix_scorecards_user_id", table_name="scorecards")
    op.drop_index("ix_scorecards_campaign_id", table_name="scorecards")
    op.drop_table("scorecards")
    op.drop_index("ix_trade_submissions_campaign_id", table_name="trade_submissions")
    op.drop_index("ix_trade_submissions_user_id", table_name="trade_submissions")
    op.drop_table("trade_submissions")
    op.drop_index("ix_challenge_participants_user_id", table_name="challenge_participants")
    op.drop_index("ix_challenge_participants_campaign_id", table_name="challenge_participants")
    op.drop_table("challenge_participants")
    op.drop_table("campaigns")
    op.drop_index("ix_profiles_username", table_name="profiles")
    op.drop_index("ix_profiles_email", table_name="profiles")
    op.drop_table("profiles")
