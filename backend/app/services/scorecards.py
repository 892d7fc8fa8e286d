from __future__ import annotations
from collections import defaultdict
from uuid import UUID

import structlog
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import SessionLocal
from app.models.campaign import Campaign, ChallengeParticipant
from app.models.scorecard import Scorecard
from app.models.submission import TradeSubmission
from app.models.user import Profile
from app.services.ranking import ScoredParticipant, rank_scorecards
from app.services.scoring import score_submissions
from app.services.realtime import ChangeEvent, DebouncedRefresher

log = structlog.get_logger()


async def submissions_by_user(session: AsyncSession, campaign_id: UUID) -> dict[UUID, list[TradeSubmission]]:
    rows = (await session.execute(
        select(TradeSubmission)
        .where(TradeSubmission.campaign_id == campaign_id)
        .order_by(TradeSubmission.submission_date.asc(), TradeSubmission.created_at.asc())
    )).scalars().all()
    out: dict[UUID, list[TradeSubmission]] = defaultdict(list)
    for s in rows:
        out[s.user_id].append(s)
    return out


async def compute_campaign_scores(session: AsyncSession, campaign: Campaign) -> list[ScoredParticipant]:
    """
    Score every participant of `campaign` from its submissions, ranked.

    Participants are everyone who joined plus anyone with a submission; the
    pre-sort order (join time, then username) decides how ties are listed.
    """
    parts = (await session.execute(
        select(ChallengeParticipant.user_id, Profile.username, Profile.full_name)
        .join(Profile, Profile.id == ChallengeParticipant.user_id)
        .where(ChallengeParticipant.campaign_id == campaign.id)
        .order_by(ChallengeParticipant.joined_at.asc(), Profile.username.asc())
    )).all()
    by_user = await submissions_by_user(session, campaign.id)

    people: dict[UUID, tuple[str, str | None]] = {uid: (uname, fname) for (uid, uname, fname) in parts}
    missing = [uid for uid in by_user if uid not in people]
    if missing:
        extra = (await session.execute(
            select(Profile.id, Profile.username, Profile.full_name)
            .where(Profile.id.in_(missing))
            .order_by(Profile.username.asc())
        )).all()
        for (uid, uname, fname) in extra:
            people[uid] = (uname, fname)

    entries = [
        ScoredParticipant(
            user_id=uid,
            username=uname,
            full_name=fname,
            score=score_submissions(campaign.start_date, campaign.days_count, by_user.get(uid, [])),
        )
        for uid, (uname, fname) in people.items()
    ]
    return rank_scorecards(entries)


async def store_scorecards(session: AsyncSession, campaign_id: UUID, entries: list[ScoredParticipant]) -> None:
    """Replace the cached scorecards of a campaign with `entries`."""
    await session.execute(delete(Scorecard).where(Scorecard.campaign_id == campaign_id))
    for e in entries:
        session.add(Scorecard(
            campaign_id=campaign_id,
            user_id=e.user_id,
            consistency_score=e.score.consistency_score,
            rule_score=e.score.rule_score,
            discipline_score=e.score.discipline_score,
            total_score=e.score.total_score,
            completed_days=e.score.completed_days,
        ))


async def recompute_scorecards(campaign_id) -> list[ScoredParticipant] | None:
    async with SessionLocal() as session:
        campaign = await session.get(Campaign, UUID(str(campaign_id)))
        if not campaign:
            return None
        return await compute_campaign_scores(session, campaign)


async def persist_scorecards(campaign_id, entries: list[ScoredParticipant] | None) -> None:
    if entries is None:
        return
    async with SessionLocal() as session:
        async with session.begin():
            await store_scorecards(session, UUID(str(campaign_id)), entries)
    log.info("scorecards_refreshed", campaign_id=str(campaign_id), participants=len(entries))


def build_scorecard_refresher(delay: float) -> DebouncedRefresher:
    return DebouncedRefresher(fetch=recompute_scorecards, apply=persist_scorecards, delay=delay)


def scorecard_change_handler(refresher: DebouncedRefresher):
    async def _on_change(event: ChangeEvent) -> None:
        if event.table in ("trade_submissions", "campaigns", "challenge_participants") and event.campaign_id:
            refresher.notify(event.campaign_id, event.seq)
    return _on_change
