import random
import uuid

from app.services.ranking import ScoredParticipant, rank_scorecards, select_winners, eligible_for_winning
from app.services.scoring import ScoreBreakdown

def _p(name: str, total: int, days: int = 7) -> ScoredParticipant:
    return ScoredParticipant(
        user_id=uuid.uuid4(),
        username=name,
        score=ScoreBreakdown(consistency_score=total, completed_days=days),
    )

def test_rank_is_dense_and_stable_on_ties():
    ranked = rank_scorecards([_p("a", 10), _p("b", 30), _p("c", 10), _p("d", 20)])
    assert [e.username for e in ranked] == ["b", "d", "a", "c"]
    assert [e.rank for e in ranked] == [1, 2, 3, 4]

def test_rank_empty():
    assert rank_scorecards([]) == []

def test_only_full_completion_is_eligible():
    entries = [_p("full", 70, 7), _p("partial", 90, 6)]
    assert [e.username for e in eligible_for_winning(entries, 7)] == ["full"]
    assert [e.username for e in select_winners(entries, 7, 7)] == ["full"]

def test_fewer_eligible_than_k_all_win_without_tie_break():
    winners = select_winners([_p("a", 50), _p("b", 50)], k=7, days_count=7)
    assert {w.username for w in winners} == {"a", "b"}
    assert not any(w.via_tie_break for w in winners)

def test_tie_at_cutoff_is_sampled():
    entries = [_p("top", 100), _p("second", 90)] + [_p(f"t{i}", 80) for i in range(5)]
    winners = select_winners(entries, k=4, days_count=7, rng=random.Random(7))
    assert len(winners) == 4
    assert [w.username for w in winners[:2]] == ["top", "second"]
    tied = winners[2:]
    assert all(w.total_score == 80 and w.via_tie_break for w in tied)
    assert len({w.user_id for w in tied}) == 2
    # tied winners keep leaderboard order
    assert [w.rank for w in tied] == sorted(w.rank for w in tied)

def test_same_seed_same_draw():
    entries = [_p(f"t{i}", 80) for i in range(10)]
    a = select_winners(entries, k=3, days_count=7, rng=random.Random(42))
    b = select_winners(entries, k=3, days_count=7, rng=random.Random(42))
    assert [w.user_id for w in a] == [w.user_id for w in b]

def test_k_zero():
    assert select_winners([_p("a", 10)], k=0, days_count=7) == []
