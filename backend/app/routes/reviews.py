from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Literal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from uuid import UUID
from datetime import datetime, timezone as dt_tz, timedelta
import structlog

from app.db import get_session
from app.auth_deps import require_admin
from app.models.campaign import Campaign
from app.models.submission import TradeSubmission
from app.models.user import Profile
from app.routes.submissions import to_submission_public
from app.schemas.submission import SubmissionPublic, ReviewDecision
from app.services.realtime import notify_change

router = APIRouter(prefix="/reviews", tags=["reviews"])
log = structlog.get_logger()

StatusFilter = Literal["pending", "verified", "rejected", "all"]

@router.get("", response_model=list[SubmissionPublic])
async def list_for_review(
    status: StatusFilter = Query(default="pending"),
    campaign_id: UUID | None = Query(default=None),
    user_id: UUID | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
    admin: Profile = Depends(require_admin),
):
    q = select(TradeSubmission)
    if status != "all":
        q = q.where(TradeSubmission.verification_status == status)
    if campaign_id:
        q = q.where(TradeSubmission.campaign_id == campaign_id)
    if user_id:
        q = q.where(TradeSubmission.user_id == user_id)
    # oldest first so the queue drains in order
    order = TradeSubmission.created_at.asc() if status == "pending" else TradeSubmission.created_at.desc()
    rows = (await session.execute(q.order_by(order).limit(limit))).scalars().all()
    return [to_submission_public(s) for s in rows]

@router.get("/stats")
async def review_stats(
    campaign_id: UUID | None = Query(default=None),
    session: AsyncSession = Depends(get_session),
    admin: Profile = Depends(require_admin),
):
    """
    Returns per-campaign counts:
      - pending: submissions waiting for review
      - verified_today / rejected_today: review activity (UTC day)
    """
    now = datetime.now(dt_tz.utc)
    day_start = datetime(now.year, now.month, now.day, tzinfo=dt_tz.utc)
    day_end = day_start + timedelta(days=1)

    cq = select(Campaign).order_by(Campaign.start_date.desc())
    if campaign_id:
        cq = cq.where(Campaign.id == campaign_id)
    campaigns = (await session.execute(cq)).scalars().all()

    per = []
    for c in campaigns:
        pending = await session.scalar(
            select(func.count()).select_from(TradeSubmission)
            .where(TradeSubmission.campaign_id == c.id, TradeSubmission.verification_status == "pending")
        ) or 0
        verified_today = await session.scalar(
            select(func.count()).select_from(TradeSubmission)
            .where(TradeSubmission.campaign_id == c.id, TradeSubmission.verification_status == "verified")
            .where(TradeSubmission.verified_at >= day_start, TradeSubmission.verified_at < day_end)
        ) or 0
        rejected_today = await session.scalar(
            select(func.count()).select_from(TradeSubmission)
            .where(TradeSubmission.campaign_id == c.id, TradeSubmission.verification_status == "rejected")
            .where(TradeSubmission.verified_at >= day_start, TradeSubmission.verified_at < day_end)
        ) or 0
        per.append({
            "campaign_id": str(c.id),
            "campaign_title": c.title,
            "pending": int(pending),
            "verified_today": int(verified_today),
            "rejected_today": int(rejected_today),
        })
    return {"per_campaign": per, "pending_total": sum(p["pending"] for p in per)}

@router.post("/{submission_id}", response_model=SubmissionPublic)
async def review_submission(
    submission_id: UUID,
    decision: ReviewDecision,
    session: AsyncSession = Depends(get_session),
    admin: Profile = Depends(require_admin),
):
    s = await session.get(TradeSubmission, submission_id)
    if not s:
        raise HTTPException(status_code=404, detail="Submission not found")

    prev_status = s.verification_status
    s.verification_status = decision.verification_status
    s.admin_comment = decision.admin_comment
    s.verifier_id = admin.id
    s.verified_at = datetime.now(dt_tz.utc)
    # reviewer may correct the participant's own compliance claims
    if decision.has_hashtag is not None:
        s.has_hashtag = decision.has_hashtag
    if decision.has_tagged_account is not None:
        s.has_tagged_account = decision.has_tagged_account
    await session.commit()
    await session.refresh(s)

    log.info(
        "submission_reviewed",
        submission_id=str(s.id),
        admin_id=str(admin.id),
        prev_status=prev_status,
        status=s.verification_status,
    )
    await notify_change("trade_submissions", "UPDATE", s.campaign_id)
    return to_submission_public(s)
