from __future__ import annotations
from datetime import datetime, timezone as dt_tz

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import SessionLocal
from app.models.campaign import Campaign
from app.services.lifecycle import effective_status
from app.services.realtime import notify_change

log = structlog.get_logger()


async def _drifted(session: AsyncSession, now: datetime | None) -> list[tuple[Campaign, str]]:
    now = now or datetime.now(dt_tz.utc)
    rows = (await session.execute(select(Campaign).order_by(Campaign.start_date.asc()))).scalars().all()
    out = []
    for c in rows:
        derived = effective_status(c.status, c.start_date, c.end_date, now)
        if derived != c.status:
            out.append((c, derived))
    return out


def _change(c: Campaign, derived: str) -> dict:
    return {"campaign_id": str(c.id), "stored": c.status, "derived": derived}


async def status_drift(session: AsyncSession, now: datetime | None = None) -> list[dict]:
    """Campaigns whose cached status disagrees with the lifecycle gate."""
    return [_change(c, derived) for c, derived in await _drifted(session, now)]


async def refresh_campaign_statuses(session: AsyncSession, now: datetime | None = None) -> list[dict]:
    """
    Write the derived status back into every campaign row that drifted.

    The stored column is only a query convenience; the lifecycle gate stays
    authoritative. Archived campaigns are left alone.
    """
    changes = []
    for c, derived in await _drifted(session, now):
        changes.append(_change(c, derived))
        c.status = derived
    if not changes:
        return []
    await session.commit()
    for ch in changes:
        log.info("campaign_status_changed", **ch)
        await notify_change("campaigns", "UPDATE", ch["campaign_id"])
    return changes


async def run_status_refresh() -> None:
    async with SessionLocal() as session:
        try:
            await refresh_campaign_statuses(session)
        except Exception:
            log.exception("campaign_status_refresh_failed")


def build_status_scheduler(interval_seconds: int) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_status_refresh,
        trigger=IntervalTrigger(seconds=interval_seconds),
        id="campaign_status_refresh",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(dt_tz.utc),
    )
    return scheduler
