from __future__ import annotations
import json
import uuid
from datetime import datetime, timezone as dt_tz
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Form, UploadFile, File
from fastapi.responses import Response
from pydantic import ValidationError
from redis import Redis
from rq import Queue
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.config import settings
from app.db import get_session
from app.auth_deps import get_current_user
from app.jobs.automated_checks import run_automated_checks
from app.models.campaign import ChallengeParticipant
from app.models.submission import TradeSubmission
from app.models.user import Profile
from app.routes.campaigns import get_campaign_or_404
from app.schemas.submission import SubmissionCreate, SubmissionPublic
from app.services import lifecycle
from app.services.media import validate_image, ext_for_mime, InvalidImage
from app.services.realtime import notify_change
from app.services.storage import put_bytes, get_bytes, delete_bytes, SCREENSHOTS, CHARTS

router = APIRouter(tags=["submissions"])
log = structlog.get_logger()

_queue: Queue | None = None

def job_queue() -> Queue:
    # RQ queue (lazy single instance)
    global _queue
    if _queue is None:
        _queue = Queue("default", connection=Redis.from_url(settings.redis_url))
    return _queue


def to_submission_public(s: TradeSubmission) -> SubmissionPublic:
    return SubmissionPublic(
        id=s.id,
        campaign_id=s.campaign_id,
        user_id=s.user_id,
        submission_date=s.submission_date,
        day_number=s.day_number,
        trade_idea=s.trade_idea,
        twitter_link=s.twitter_link,
        market_pair=s.market_pair,
        has_hashtag=s.has_hashtag,
        has_tagged_account=s.has_tagged_account,
        has_chart=s.has_chart,
        has_analysis=s.has_analysis,
        verification_status=s.verification_status,
        admin_comment=s.admin_comment,
        verified_at=s.verified_at,
        screenshot_url=f"/submissions/{s.id}/screenshot" if s.twitter_screenshot_url else None,
        chart_url=f"/submissions/{s.id}/chart" if s.chart_image_url else None,
        automated_checks=s.automated_checks or {},
        created_at=s.created_at,
    )


def _parse_payload(payload: str) -> SubmissionCreate:
    try:
        return SubmissionCreate.model_validate(json.loads(payload))
    except json.JSONDecodeError:
        raise HTTPException(status_code=422, detail="Invalid JSON in payload")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


def _discard_uploads(*objects: tuple[str, str | None]) -> None:
    for kind, key in objects:
        if not key:
            continue
        try:
            delete_bytes(kind, key)
        except Exception:
            # an orphaned object is harmless; the 409 still goes out
            log.warning("upload_cleanup_failed", kind=kind, key=key)


@router.post("/campaigns/{campaign_id}/submissions", response_model=SubmissionPublic, status_code=201)
async def submit_trade(
    campaign_id: UUID,
    payload: str = Form(..., description="JSON string of submission data"),
    screenshot: UploadFile | None = File(default=None, description="Screenshot of the Twitter/X post"),
    chart: UploadFile | None = File(default=None, description="Optional chart image"),
    session: AsyncSession = Depends(get_session),
    user: Profile = Depends(get_current_user),
):
    # Input validation happens before any storage or database write
    data = _parse_payload(payload)
    if screenshot is None:
        raise HTTPException(status_code=422, detail="Screenshot of your Twitter/X post is required")
    shot_bytes = await screenshot.read()
    chart_bytes = await chart.read() if chart is not None else None
    try:
        shot_mime = validate_image(shot_bytes, settings.max_upload_bytes, "screenshot")
        chart_mime = validate_image(chart_bytes, settings.max_upload_bytes, "chart") if chart_bytes else None
    except InvalidImage as e:
        raise HTTPException(status_code=422, detail=str(e))

    c = await get_campaign_or_404(session, campaign_id)

    # Only today's day number is open, and only while the campaign is live
    now = datetime.now(dt_tz.utc)
    day_number = lifecycle.unlocked_day_number(c.status, c.start_date, c.end_date, c.days_count, now)
    if day_number is None or not c.is_active:
        status = lifecycle.effective_status(c.status, c.start_date, c.end_date, now)
        raise HTTPException(status_code=403, detail=f"Submissions closed (status={status})")
    today = now.date()

    participant = await session.scalar(
        select(ChallengeParticipant).where(ChallengeParticipant.campaign_id == c.id, ChallengeParticipant.user_id == user.id)
    )
    if not participant:
        raise HTTPException(status_code=403, detail="You have not joined this campaign")

    already = await session.scalar(
        select(TradeSubmission.id).where(
            TradeSubmission.user_id == user.id,
            TradeSubmission.campaign_id == c.id,
            TradeSubmission.submission_date == today,
        )
    )
    if already:
        raise HTTPException(status_code=409, detail="Already submitted for today")

    prefix = f"c/{c.id}/u/{user.id}/{today.isoformat()}"
    shot_key = put_bytes(SCREENSHOTS, f"{prefix}/{uuid.uuid4().hex}.{ext_for_mime(shot_mime)}", shot_bytes, shot_mime)
    chart_key = None
    if chart_bytes:
        chart_key = put_bytes(CHARTS, f"{prefix}/{uuid.uuid4().hex}.{ext_for_mime(chart_mime)}", chart_bytes, chart_mime)

    sub = TradeSubmission(
        user_id=user.id,
        campaign_id=c.id,
        submission_date=today,
        day_number=day_number,
        trade_idea=data.trade_idea,
        twitter_link=data.twitter_link,
        market_pair=data.market_pair,
        twitter_screenshot_url=shot_key,
        chart_image_url=chart_key,
        has_hashtag=data.has_hashtag,
        has_tagged_account=data.has_tagged_account,
        verification_status="pending",
        automated_checks={},
    )
    session.add(sub)
    try:
        await session.commit()
    except IntegrityError:
        # unique (user, campaign, day) lost a race
        await session.rollback()
        _discard_uploads((SCREENSHOTS, shot_key), (CHARTS, chart_key))
        raise HTTPException(status_code=409, detail="Already submitted for today")
    await session.refresh(sub)
    log.info("submission_created", submission_id=str(sub.id), campaign_id=str(c.id), day_number=day_number)

    if settings.enable_jobs:
        try:
            job_queue().enqueue(run_automated_checks, str(sub.id), job_timeout=60)
        except Exception:
            # Non-fatal; the reviewer still sees the submission without hints
            log.warning("automated_checks_enqueue_failed", submission_id=str(sub.id))

    await notify_change("trade_submissions", "INSERT", c.id)
    return to_submission_public(sub)


@router.get("/campaigns/{campaign_id}/submissions/mine", response_model=list[SubmissionPublic])
async def my_submissions(campaign_id: UUID, session: AsyncSession = Depends(get_session), user: Profile = Depends(get_current_user)):
    c = await get_campaign_or_404(session, campaign_id)
    rows = (await session.execute(
        select(TradeSubmission)
        .where(TradeSubmission.campaign_id == c.id, TradeSubmission.user_id == user.id)
        .order_by(TradeSubmission.submission_date.asc())
    )).scalars().all()
    return [to_submission_public(s) for s in rows]


async def _image_response(session: AsyncSession, user: Profile, submission_id: UUID, kind: str) -> Response:
    s = await session.get(TradeSubmission, submission_id)
    if not s:
        raise HTTPException(status_code=404, detail="Submission not found")
    if s.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Not your submission")
    key = s.twitter_screenshot_url if kind == SCREENSHOTS else s.chart_image_url
    if not key:
        raise HTTPException(status_code=404, detail="No image associated with this submission")
    try:
        data, content_type = get_bytes(kind, key)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Image file not found in storage")
    return Response(content=data, media_type=content_type)


@router.get("/submissions/{submission_id}/screenshot")
async def get_screenshot(submission_id: UUID, session: AsyncSession = Depends(get_session), user: Profile = Depends(get_current_user)):
    return await _image_response(session, user, submission_id, SCREENSHOTS)


@router.get("/submissions/{submission_id}/chart")
async def get_chart(submission_id: UUID, session: AsyncSession = Depends(get_session), user: Profile = Depends(get_current_user)):
    return await _image_response(session, user, submission_id, CHARTS)
