from __future__ import annotations
import csv
import io
from collections import defaultdict
from datetime import datetime, timezone as dt_tz
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.config import settings
from app.db import get_session
from app.auth_deps import require_admin
from app.models.campaign import Campaign, ChallengeParticipant
from app.models.promo import PropfirmCampaign, PromoClick
from app.models.scorecard import Scorecard, CampaignWinner
from app.models.submission import TradeSubmission
from app.models.user import Profile
from app.routes.campaigns import campaign_public, get_campaign_or_404, winners as list_winners
from app.schemas.auth import UserAdminUpdate, UserPublic
from app.schemas.campaign import CampaignCreate, CampaignUpdate, CampaignPublic, StatusChange
from app.schemas.promo import PromoCreate, PromoUpdate, PromoPublic
from app.schemas.scorecard import CachedScorecard, ParticipantOverview, WinnerPublic
from app.services import lifecycle
from app.services.promos import as_utc
from app.services.ranking import select_winners
from app.services.realtime import notify_change
from app.services.scorecards import compute_campaign_scores
from app.services.status_refresh import refresh_campaign_statuses, status_drift
from app.services.streaks import current_streak, completion_percentage

router = APIRouter(prefix="/admin", tags=["admin"])
log = structlog.get_logger()


@router.post("/campaigns", response_model=CampaignPublic, status_code=201)
async def create_campaign(payload: CampaignCreate, session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    now = datetime.now(dt_tz.utc)
    c = Campaign(
        title=payload.title,
        description=payload.description,
        slug=payload.slug,
        start_date=payload.start_date,
        end_date=payload.end_date,
        days_count=payload.days_count,
        status=lifecycle.campaign_status(payload.start_date, payload.end_date, now),
        is_active=payload.is_active,
        rules=payload.rules,
        rewards=payload.rewards,
        required_hashtag=payload.required_hashtag,
        required_account=payload.required_account,
        created_by=admin.id,
    )
    session.add(c)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Slug already in use")
    await session.refresh(c)
    log.info("campaign_created", campaign_id=str(c.id), days_count=c.days_count)
    await notify_change("campaigns", "INSERT", c.id)
    return campaign_public(c, now)


@router.patch("/campaigns/{campaign_id}", response_model=CampaignPublic)
async def update_campaign(campaign_id: UUID, payload: CampaignUpdate, session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    c = await get_campaign_or_404(session, campaign_id)
    changes = payload.model_dump(exclude_unset=True)
    archived = changes.pop("archived", None)
    days_count = changes.pop("days_count", None)
    for field, value in changes.items():
        setattr(c, field, value)

    if c.end_date < c.start_date:
        raise HTTPException(status_code=422, detail="end_date must not be before start_date")
    span = (c.end_date - c.start_date).days + 1
    if days_count is not None and days_count != span:
        raise HTTPException(status_code=422, detail=f"days_count must equal the number of days spanned ({span})")
    c.days_count = span

    now = datetime.now(dt_tz.utc)
    if archived is True:
        c.status = lifecycle.ARCHIVED
    elif archived is False or c.status != lifecycle.ARCHIVED:
        c.status = lifecycle.campaign_status(c.start_date, c.end_date, now)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Slug already in use")
    await session.refresh(c)
    log.info("campaign_updated", campaign_id=str(c.id), fields=sorted(payload.model_dump(exclude_unset=True)))
    await notify_change("campaigns", "UPDATE", c.id)
    return campaign_public(c, now)


@router.delete("/campaigns/{campaign_id}", status_code=204)
async def delete_campaign(campaign_id: UUID, session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    c = await get_campaign_or_404(session, campaign_id)
    await session.delete(c)
    await session.commit()
    log.info("campaign_deleted", campaign_id=str(campaign_id), admin_id=str(admin.id))
    await notify_change("campaigns", "DELETE", campaign_id)


@router.post("/campaigns/refresh-status", response_model=list[StatusChange])
async def refresh_status(session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    return await refresh_campaign_statuses(session)


@router.get("/campaigns/status-drift", response_model=list[StatusChange])
async def get_status_drift(session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    return await status_drift(session)


@router.get("/campaigns/{campaign_id}/participants", response_model=list[ParticipantOverview])
async def participants_overview(campaign_id: UUID, session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    c = await get_campaign_or_404(session, campaign_id)
    now = datetime.now(dt_tz.utc)
    people = (await session.execute(
        select(Profile)
        .join(ChallengeParticipant, ChallengeParticipant.user_id == Profile.id)
        .where(ChallengeParticipant.campaign_id == c.id)
        .order_by(ChallengeParticipant.joined_at.asc())
    )).scalars().all()
    dates_by_user: dict[UUID, list] = defaultdict(list)
    for (uid, d) in (await session.execute(
        select(TradeSubmission.user_id, TradeSubmission.submission_date).where(TradeSubmission.campaign_id == c.id)
    )).all():
        dates_by_user[uid].append(d)

    return [
        ParticipantOverview(
            user_id=p.id,
            username=p.username,
            full_name=p.full_name,
            total_submissions=len(dates_by_user[p.id]),
            current_streak=current_streak(dates_by_user[p.id], now),
            completion_rate=completion_percentage(dates_by_user[p.id], c.days_count),
            last_submission_date=max(dates_by_user[p.id]) if dates_by_user[p.id] else None,
            is_disqualified=p.is_disqualified,
            admin_notes=p.admin_notes,
        )
        for p in people
    ]


@router.get("/campaigns/{campaign_id}/scorecards", response_model=list[CachedScorecard])
async def cached_scorecards(campaign_id: UUID, session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    c = await get_campaign_or_404(session, campaign_id)
    rows = (await session.execute(
        select(Scorecard).where(Scorecard.campaign_id == c.id).order_by(Scorecard.total_score.desc())
    )).scalars().all()
    return [
        CachedScorecard(
            user_id=r.user_id, campaign_id=r.campaign_id,
            consistency_score=r.consistency_score, rule_score=r.rule_score,
            discipline_score=r.discipline_score, total_score=r.total_score,
            completed_days=r.completed_days, updated_at=r.updated_at,
        )
        for r in rows
    ]


SCORECARD_CSV_HEADER = [
    "Rank", "Username", "Full Name", "Consistency Score", "Rule Score",
    "Discipline Score", "Total Score", "Completed Days",
]


@router.get("/campaigns/{campaign_id}/scorecards.csv")
async def export_scorecards_csv(
    campaign_id: UUID,
    winners: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
    admin: Profile = Depends(require_admin),
):
    """
    Download the live leaderboard as CSV.

    With `winners=true` only the drawn winners are written, in draw order,
    and the Rank column carries their position.
    """
    c = await get_campaign_or_404(session, campaign_id)
    scored = await compute_campaign_scores(session, c)
    rows = [(e.rank, e) for e in scored]
    if winners:
        by_user = {e.user_id: e for e in scored}
        drawn = (await session.execute(
            select(CampaignWinner.position, CampaignWinner.user_id)
            .where(CampaignWinner.campaign_id == c.id)
            .order_by(CampaignWinner.position.asc())
        )).all()
        rows = [(pos, by_user[uid]) for (pos, uid) in drawn if uid in by_user]

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(SCORECARD_CSV_HEADER)
    for rank, e in rows:
        writer.writerow([
            rank, e.username, e.full_name or "Anonymous",
            e.score.consistency_score, e.score.rule_score, e.score.discipline_score,
            e.total_score, e.completed_days,
        ])
    filename = f"scorecard-leaderboard-{datetime.now(dt_tz.utc).date().isoformat()}.csv"
    log.info("scorecards_exported", campaign_id=str(c.id), rows=len(rows), winners_only=winners)
    return Response(
        content=buf.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/campaigns/{campaign_id}/winners", response_model=list[WinnerPublic], status_code=201)
async def draw_winners(
    campaign_id: UUID,
    k: int | None = Query(default=None, ge=1, le=100),
    redraw: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
    admin: Profile = Depends(require_admin),
):
    c = await get_campaign_or_404(session, campaign_id)
    k = k or settings.winners_default_k

    existing = await session.scalar(select(CampaignWinner.id).where(CampaignWinner.campaign_id == c.id).limit(1))
    if existing and not redraw:
        raise HTTPException(status_code=409, detail="Winners already drawn; pass redraw=true to draw again")

    scored = await compute_campaign_scores(session, c)
    disqualified = set((await session.execute(
        select(Profile.id).where(Profile.id.in_([e.user_id for e in scored]), Profile.is_disqualified.is_(True))
    )).scalars().all())
    picked = select_winners([e for e in scored if e.user_id not in disqualified], k, c.days_count)

    await session.execute(delete(CampaignWinner).where(CampaignWinner.campaign_id == c.id))
    for pos, e in enumerate(picked, start=1):
        session.add(CampaignWinner(
            campaign_id=c.id,
            user_id=e.user_id,
            position=pos,
            total_score=e.total_score,
            completed_days=e.completed_days,
            via_tie_break=e.via_tie_break,
            selected_by=admin.id,
        ))
    await session.commit()
    log.info(
        "winners_drawn",
        campaign_id=str(c.id),
        k=k,
        winners=len(picked),
        tie_break=sum(1 for e in picked if e.via_tie_break),
        redraw=bool(existing),
    )
    return await list_winners(c.id, session=session, user=admin)


@router.patch("/users/{user_id}", response_model=UserPublic)
async def update_user(user_id: UUID, payload: UserAdminUpdate, session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    u = await session.get(Profile, user_id)
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(u, field, value)
    await session.commit()
    await session.refresh(u)
    log.info("user_moderated", user_id=str(u.id), admin_id=str(admin.id), is_disqualified=u.is_disqualified)
    return UserPublic(
        id=u.id, email=u.email, username=u.username,
        full_name=u.full_name, role=u.role, created_at=u.created_at,
    )


def promo_public(p: PropfirmCampaign) -> PromoPublic:
    return PromoPublic(
        id=p.id, title=p.title, description=p.description, prop_firm_name=p.prop_firm_name,
        cta_text=p.cta_text, cta_link=p.cta_link, coupon_code=p.coupon_code,
        start_time=p.start_time, end_time=p.end_time, priority=p.priority,
        is_enabled=p.is_enabled, display_locations=list(p.display_locations or []),
        campaign_type=p.campaign_type,
    )


async def _promo_or_404(session: AsyncSession, promo_id: UUID) -> PropfirmCampaign:
    p = await session.get(PropfirmCampaign, promo_id)
    if not p:
        raise HTTPException(status_code=404, detail="Promo not found")
    return p


@router.get("/promos", response_model=list[PromoPublic])
async def list_promos(session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    rows = (await session.execute(
        select(PropfirmCampaign).order_by(PropfirmCampaign.priority.desc(), PropfirmCampaign.start_time.asc())
    )).scalars().all()
    return [promo_public(p) for p in rows]


@router.post("/promos", response_model=PromoPublic, status_code=201)
async def create_promo(payload: PromoCreate, session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    p = PropfirmCampaign(**payload.model_dump(), created_by=admin.id)
    session.add(p)
    await session.commit()
    await session.refresh(p)
    log.info("promo_created", promo_id=str(p.id), locations=p.display_locations)
    return promo_public(p)


@router.patch("/promos/{promo_id}", response_model=PromoPublic)
async def update_promo(promo_id: UUID, payload: PromoUpdate, session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    p = await _promo_or_404(session, promo_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(p, field, value)
    if as_utc(p.end_time) <= as_utc(p.start_time):
        raise HTTPException(status_code=422, detail="end_time must be after start_time")
    await session.commit()
    await session.refresh(p)
    log.info("promo_updated", promo_id=str(p.id))
    return promo_public(p)


@router.delete("/promos/{promo_id}", status_code=204)
async def delete_promo(promo_id: UUID, session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    p = await _promo_or_404(session, promo_id)
    await session.delete(p)
    await session.commit()
    log.info("promo_deleted", promo_id=str(promo_id))


@router.get("/promos/{promo_id}/clicks")
async def promo_clicks(promo_id: UUID, session: AsyncSession = Depends(get_session), admin: Profile = Depends(require_admin)):
    """Click counts per click_type for one promo."""
    p = await _promo_or_404(session, promo_id)
    rows = (await session.execute(
        select(PromoClick.click_type, func.count())
        .where(PromoClick.promo_id == p.id)
        .group_by(PromoClick.click_type)
    )).all()
    counts = {ctype: int(n) for (ctype, n) in rows}
    return {"promo_id": str(p.id), "counts": counts, "total": sum(counts.values())}
