from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.db import get_session
from app.auth_deps import get_current_user
from app.models.promo import PropfirmCampaign, PromoDismissal, PromoClick
from app.models.user import Profile
from app.routes.admin import promo_public
from app.schemas.promo import PromoFeed, ClickCreate, Location
from app.services.promos import select_visible_promos, top_promo

router = APIRouter(prefix="/promos", tags=["promos"])
log = structlog.get_logger()


async def _dismissed_ids(session: AsyncSession, user_id: UUID) -> set[UUID]:
    return set((await session.execute(
        select(PromoDismissal.promo_id).where(PromoDismissal.user_id == user_id)
    )).scalars().all())


@router.get("", response_model=PromoFeed)
async def visible_promos(
    location: Location = Query(default="dashboard"),
    session: AsyncSession = Depends(get_session),
    user: Profile = Depends(get_current_user),
):
    now = datetime.now(dt_tz.utc)
    candidates = (await session.execute(
        select(PropfirmCampaign).where(PropfirmCampaign.is_enabled.is_(True))
    )).scalars().all()
    visible = select_visible_promos(candidates, await _dismissed_ids(session, user.id), location, now)
    top = top_promo(visible)
    return PromoFeed(top=promo_public(top) if top else None, promos=[promo_public(p) for p in visible])


@router.post("/{promo_id}/dismiss", status_code=204)
async def dismiss_promo(promo_id: UUID, session: AsyncSession = Depends(get_session), user: Profile = Depends(get_current_user)):
    p = await session.get(PropfirmCampaign, promo_id)
    if not p:
        raise HTTPException(status_code=404, detail="Promo not found")
    already = await session.scalar(
        select(PromoDismissal.id).where(PromoDismissal.user_id == user.id, PromoDismissal.promo_id == p.id)
    )
    if already:
        return
    session.add(PromoDismissal(user_id=user.id, promo_id=p.id))
    session.add(PromoClick(promo_id=p.id, user_id=user.id, click_type="dismiss"))
    try:
        await session.commit()
    except IntegrityError:
        # concurrent dismiss already recorded it
        await session.rollback()
        return
    log.info("promo_dismissed", promo_id=str(p.id), user_id=str(user.id))


@router.post("/{promo_id}/click", status_code=204)
async def record_click(promo_id: UUID, payload: ClickCreate, session: AsyncSession = Depends(get_session), user: Profile = Depends(get_current_user)):
    p = await session.get(PropfirmCampaign, promo_id)
    if not p:
        raise HTTPException(status_code=404, detail="Promo not found")
    session.add(PromoClick(promo_id=p.id, user_id=user.id, click_type=payload.click_type))
    await session.commit()
    log.info("promo_click", promo_id=str(p.id), click_type=payload.click_type)
