from __future__ import annotations
from datetime import datetime, timedelta, timezone as dt_tz
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.db import get_session
from app.auth_deps import get_current_user
from app.models.campaign import Campaign, ChallengeParticipant
from app.models.scorecard import CampaignWinner
from app.models.submission import TradeSubmission
from app.models.user import Profile
from app.schemas.campaign import CampaignPublic, ParticipantPublic, DayStatus
from app.schemas.scorecard import (
    HallOfFame, HallOfFameCampaign, HallOfFameEntry, LeaderboardEntry, MyProgress, ScorecardPublic, WinnerPublic,
)
from app.services import lifecycle
from app.services.realtime import notify_change
from app.services.scorecards import compute_campaign_scores, submissions_by_user
from app.services.scoring import DayFlags, score_submissions
from app.services.streaks import current_streak, completion_percentage, longest_streak

router = APIRouter(prefix="/campaigns", tags=["campaigns"])
log = structlog.get_logger()


def campaign_public(c: Campaign, now: datetime) -> CampaignPublic:
    status = lifecycle.effective_status(c.status, c.start_date, c.end_date, now)
    return CampaignPublic(
        id=c.id, title=c.title, description=c.description, slug=c.slug,
        start_date=c.start_date, end_date=c.end_date, days_count=c.days_count,
        status=status, stored_status=c.status, is_active=c.is_active,
        current_day_number=lifecycle.current_day_number(c.start_date, c.days_count, now),
        submissions_open=status == lifecycle.LIVE and c.is_active,
        rules=c.rules, rewards=c.rewards,
        required_hashtag=c.required_hashtag, required_account=c.required_account,
        created_at=c.created_at,
    )


async def get_campaign_or_404(session: AsyncSession, campaign_id: UUID) -> Campaign:
    c = await session.get(Campaign, campaign_id)
    if not c:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return c


def leaderboard_rows(scored, days_count: int) -> list[LeaderboardEntry]:
    return [
        LeaderboardEntry(
            rank=e.rank, user_id=e.user_id, username=e.username, full_name=e.full_name,
            **e.score.as_dict(),
            is_completed=e.completed_days >= days_count,
        )
        for e in scored
    ]


@router.get("", response_model=list[CampaignPublic])
async def list_campaigns(session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    now = datetime.now(dt_tz.utc)
    rows = (await session.execute(select(Campaign).order_by(Campaign.start_date.desc()))).scalars().all()
    return [campaign_public(c, now) for c in rows]


@router.get("/active", response_model=CampaignPublic)
async def active_campaign(session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    now = datetime.now(dt_tz.utc)
    rows = (await session.execute(
        select(Campaign).where(Campaign.is_active.is_(True)).order_by(Campaign.start_date.desc())
    )).scalars().all()
    # derive rather than filter on the cached status column
    for c in rows:
        if lifecycle.effective_status(c.status, c.start_date, c.end_date, now) == lifecycle.LIVE:
            return campaign_public(c, now)
    raise HTTPException(status_code=404, detail="No live campaign")


@router.get("/hall-of-fame", response_model=HallOfFame)
async def hall_of_fame(session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    """Ranked participants of every live or finished campaign, newest first."""
    now = datetime.now(dt_tz.utc)
    rows = (await session.execute(select(Campaign).order_by(Campaign.start_date.desc()))).scalars().all()
    out: list[HallOfFameCampaign] = []
    everyone: set[UUID] = set()
    for c in rows:
        status = lifecycle.effective_status(c.status, c.start_date, c.end_date, now)
        if status not in (lifecycle.LIVE, lifecycle.ENDED):
            continue
        by_user = await submissions_by_user(session, c.id)
        entries = []
        for e in await compute_campaign_scores(session, c):
            dates = [s.submission_date for s in by_user.get(e.user_id, [])]
            entries.append(HallOfFameEntry(
                rank=e.rank, user_id=e.user_id, username=e.username, full_name=e.full_name,
                total_score=e.total_score, completed_days=e.completed_days,
                total_submissions=len(dates),
                current_streak=current_streak(dates, now),
                longest_streak=longest_streak(dates),
                completion_rate=completion_percentage(dates, c.days_count),
                is_completer=e.completed_days >= c.days_count,
            ))
            everyone.add(e.user_id)
        out.append(HallOfFameCampaign(
            campaign_id=c.id, title=c.title, slug=c.slug,
            start_date=c.start_date, end_date=c.end_date, days_count=c.days_count, status=status,
            completers=sum(1 for e in entries if e.is_completer),
            best_streak=max((e.longest_streak for e in entries), default=0),
            entries=entries,
        ))
    return HallOfFame(
        campaigns=out,
        total_participants=len(everyone),
        total_completers=sum(hc.completers for hc in out),
        best_streak=max((hc.best_streak for hc in out), default=0),
    )


@router.get("/{campaign_id}", response_model=CampaignPublic)
async def get_campaign(campaign_id: UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    c = await get_campaign_or_404(session, campaign_id)
    return campaign_public(c, datetime.now(dt_tz.utc))


@router.post("/{campaign_id}/join", response_model=ParticipantPublic, status_code=201)
async def join_campaign(campaign_id: UUID, session: AsyncSession = Depends(get_session), user: Profile = Depends(get_current_user)):
    c = await get_campaign_or_404(session, campaign_id)
    now = datetime.now(dt_tz.utc)
    status = lifecycle.effective_status(c.status, c.start_date, c.end_date, now)
    if status in (lifecycle.ENDED, lifecycle.ARCHIVED) or not c.is_active:
        raise HTTPException(status_code=400, detail=f"Campaign is not open for joining (status={status})")

    existing = await session.scalar(
        select(ChallengeParticipant).where(ChallengeParticipant.campaign_id == c.id, ChallengeParticipant.user_id == user.id)
    )
    if existing:
        return ParticipantPublic(campaign_id=existing.campaign_id, user_id=existing.user_id, joined_at=existing.joined_at)

    p = ChallengeParticipant(campaign_id=c.id, user_id=user.id)
    session.add(p)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Already joined")
    await session.refresh(p)
    log.info("campaign_joined", campaign_id=str(c.id), user_id=str(user.id))
    await notify_change("challenge_participants", "INSERT", c.id)
    return ParticipantPublic(campaign_id=p.campaign_id, user_id=p.user_id, joined_at=p.joined_at)


@router.get("/{campaign_id}/days", response_model=list[DayStatus])
async def my_days(campaign_id: UUID, session: AsyncSession = Depends(get_session), user: Profile = Depends(get_current_user)):
    c = await get_campaign_or_404(session, campaign_id)
    now = datetime.now(dt_tz.utc)
    today = now.date()
    subs = (await session.execute(
        select(TradeSubmission).where(TradeSubmission.campaign_id == c.id, TradeSubmission.user_id == user.id)
    )).scalars().all()
    by_date = {s.submission_date: s for s in subs}
    open_day = lifecycle.unlocked_day_number(c.status, c.start_date, c.end_date, c.days_count, now) if c.is_active else None

    out: list[DayStatus] = []
    for i in range(c.days_count):
        d = c.start_date + timedelta(days=i)
        s = by_date.get(d)
        flags = DayFlags.from_submission(s) if s else None
        out.append(DayStatus(
            day=i + 1,
            date=d,
            state=lifecycle.day_state(d, today),
            unlocked=open_day == i + 1,
            submitted=s is not None,
            verification_status=s.verification_status if s else None,
            has_hashtag=bool(flags and flags.has_hashtag),
            has_tagged_account=bool(flags and flags.has_tagged_account),
            has_chart=bool(flags and flags.has_chart),
            has_analysis=bool(flags and flags.has_analysis),
        ))
    return out


@router.get("/{campaign_id}/me", response_model=MyProgress)
async def my_progress(campaign_id: UUID, session: AsyncSession = Depends(get_session), user: Profile = Depends(get_current_user)):
    c = await get_campaign_or_404(session, campaign_id)
    now = datetime.now(dt_tz.utc)
    subs = (await session.execute(
        select(TradeSubmission)
        .where(TradeSubmission.campaign_id == c.id, TradeSubmission.user_id == user.id)
        .order_by(TradeSubmission.submission_date.asc())
    )).scalars().all()
    score = score_submissions(c.start_date, c.days_count, subs)
    dates = [s.submission_date for s in subs]

    ranked = await compute_campaign_scores(session, c)
    rank = next((e.rank for e in ranked if e.user_id == user.id), None)

    return MyProgress(
        scorecard=ScorecardPublic(user_id=user.id, campaign_id=c.id, **score.as_dict()),
        rank=rank,
        current_streak=current_streak(dates, now),
        completion_percentage=completion_percentage(dates, c.days_count),
        total_submissions=len(subs),
        last_submission_date=dates[-1] if dates else None,
    )


@router.get("/{campaign_id}/leaderboard", response_model=list[LeaderboardEntry])
async def leaderboard(
    campaign_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    c = await get_campaign_or_404(session, campaign_id)
    scored = await compute_campaign_scores(session, c)
    return leaderboard_rows(scored, c.days_count)


@router.get("/{campaign_id}/winners", response_model=list[WinnerPublic])
async def winners(campaign_id: UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    c = await get_campaign_or_404(session, campaign_id)
    rows = (await session.execute(
        select(CampaignWinner, Profile.username)
        .join(Profile, Profile.id == CampaignWinner.user_id)
        .where(CampaignWinner.campaign_id == c.id)
        .order_by(CampaignWinner.position.asc())
    )).all()
    return [
        WinnerPublic(
            position=w.position, user_id=w.user_id, username=uname,
            total_score=w.total_score, completed_days=w.completed_days,
            via_tie_break=w.via_tie_break, selected_at=w.selected_at,
        )
        for (w, uname) in rows
    ]
