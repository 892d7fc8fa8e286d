from __future__ import annotations
import random
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence
from uuid import UUID

from app.services.scoring import ScoreBreakdown


@dataclass(frozen=True)
class ScoredParticipant:
    user_id: UUID
    username: str
    score: ScoreBreakdown
    full_name: str | None = None
    rank: int = 0
    via_tie_break: bool = field(default=False, compare=False)

    @property
    def total_score(self) -> int:
        return self.score.total_score

    @property
    def completed_days(self) -> int:
        return self.score.completed_days


def rank_scorecards(entries: Iterable[ScoredParticipant]) -> list[ScoredParticipant]:
    """
    Order by total score, highest first, and number the result 1..n.

    Ties keep their input order and still get distinct ranks.
    """
    ordered = sorted(entries, key=lambda e: -e.total_score)
    return [replace(e, rank=i) for i, e in enumerate(ordered, start=1)]


def eligible_for_winning(entries: Iterable[ScoredParticipant], days_count: int) -> list[ScoredParticipant]:
    return [e for e in entries if e.completed_days >= days_count]


def select_winners(
    entries: Sequence[ScoredParticipant],
    k: int,
    days_count: int,
    rng: random.Random | None = None,
) -> list[ScoredParticipant]:
    """
    Pick up to `k` winners among participants who completed every day.

    Everybody scoring strictly above the k-th eligible score is in. The
    remaining seats go to a uniform random sample of those tied exactly at
    the k-th score. With k or fewer eligible participants, all of them win
    and no randomness is used.

    The draw is random on every call; callers persist the result instead of
    calling this again to display it.
    """
    if k <= 0:
        return []
    eligible = rank_scorecards(eligible_for_winning(entries, days_count))
    if len(eligible) <= k:
        return eligible

    cutoff = eligible[k - 1].total_score
    above = [e for e in eligible if e.total_score > cutoff]
    tied = [e for e in eligible if e.total_score == cutoff]

    rng = rng or random.SystemRandom()
    picked = rng.sample(tied, k - len(above))
    # keep tied winners in their leaderboard order
    picked.sort(key=lambda e: e.rank)
    return above + [replace(e, via_tie_break=True) for e in picked]
