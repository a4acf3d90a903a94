"""Leaderboard ranking."""

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class LeaderboardEntry:
    """A user's ranking metric."""

    user_id: int
    score: int


@dataclass(frozen=True)
class RankedEntry:
    user_id: int
    score: int
    rank: int
    total_users: int


def rank_entries(entries: Sequence[LeaderboardEntry]) -> list[RankedEntry]:
    """Rank entries by descending score.

    Ranks are 1-based positions with no gaps. The sort is stable, so tied
    entries keep their input order; callers pass entries ordered by
    ascending user id to make ties deterministic.

    Args:
        entries: Entries in tie-breaking order

    Returns:
        Ranked entries, best first
    """
    ordered = sorted(entries, key=lambda entry: entry.score, reverse=True)
    total = len(ordered)
    return [
        RankedEntry(user_id=entry.user_id, score=entry.score, rank=position, total_users=total)
        for position, entry in enumerate(ordered, start=1)
    ]
